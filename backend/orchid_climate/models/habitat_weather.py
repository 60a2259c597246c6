"""Native-habitat weather ORM models: raw readings and compacted summaries."""

from datetime import datetime, timezone

from sqlalchemy import Integer, Float, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"


class HabitatWeatherModel(Base):
    __tablename__ = "habitat_weather"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False)
    precipitation: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        Index("idx_habitat_coord_recorded", "latitude", "longitude", "recorded_at"),
    )


class HabitatWeatherSummaryModel(Base):
    __tablename__ = "habitat_weather_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    period_type: Mapped[str] = mapped_column(Text, nullable=False)  # daily, weekly, monthly
    period_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    avg_temperature: Mapped[float] = mapped_column(Float, nullable=False)
    min_temperature: Mapped[float] = mapped_column(Float, nullable=False)
    max_temperature: Mapped[float] = mapped_column(Float, nullable=False)
    avg_humidity: Mapped[float] = mapped_column(Float, nullable=False)
    total_precipitation: Mapped[float] = mapped_column(Float, nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_summary_type_start", "period_type", "period_start"),
        Index("idx_summary_coord", "latitude", "longitude"),
    )

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "period_type": self.period_type,
            "period_start": self.period_start.isoformat(),
            "avg_temperature": self.avg_temperature,
            "min_temperature": self.min_temperature,
            "max_temperature": self.max_temperature,
            "avg_humidity": self.avg_humidity,
            "total_precipitation": self.total_precipitation,
            "sample_count": self.sample_count,
        }
