"""ClimateReading ORM model for per-zone sensor readings."""

from datetime import datetime, timezone

from sqlalchemy import Integer, Float, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class ClimateReadingModel(Base):
    __tablename__ = "climate_readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    zone_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    zone_name: Mapped[str] = mapped_column(Text, nullable=False)

    # Celsius, percent, kPa, mm
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False)
    vpd: Mapped[float | None] = mapped_column(Float, nullable=True)
    precipitation: Mapped[float | None] = mapped_column(Float, nullable=True)

    source: Mapped[str] = mapped_column(Text, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        Index("idx_climate_zone_recorded", "zone_id", "recorded_at"),
    )
