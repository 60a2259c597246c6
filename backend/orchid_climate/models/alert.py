"""Alert ORM model for persisted climate, watering and seasonal alerts."""

from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class AlertModel(Base):
    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(Text, nullable=False)
    orchid_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    zone_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    alert_type: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(Text, nullable=False)  # info, warning, critical
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_alert_owner_type_created", "owner", "alert_type", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner": self.owner,
            "orchid": self.orchid_id,
            "zone": self.zone_id,
            "alert_type": self.alert_type,
            "severity": self.severity,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "acknowledged_at": (
                self.acknowledged_at.isoformat() if self.acknowledged_at else None
            ),
        }
