"""ORM models for the collection records the pipeline reads.

Zones, devices, orchids, push subscriptions and preferences are created and
edited elsewhere; the pipeline only queries them.
"""

from datetime import datetime

from sqlalchemy import Integer, Float, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

LOCATION_INDOOR = "Indoor"
LOCATION_OUTDOOR = "Outdoor"


class HardwareDeviceModel(Base):
    __tablename__ = "hardware_devices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    device_type: Mapped[str] = mapped_column(Text, nullable=False)  # tempest, ac_infinity
    config: Mapped[str] = mapped_column(Text, nullable=False, default="{}")


class GrowingZoneModel(Base):
    __tablename__ = "growing_zones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    location_type: Mapped[str] = mapped_column(Text, nullable=False, default=LOCATION_INDOOR)

    # Legacy per-zone source: provider tag + JSON config
    data_source_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_source_config: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Device-linked source
    hardware_device_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hardware_port: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @property
    def is_outdoor(self) -> bool:
        return self.location_type == LOCATION_OUTDOOR


class OrchidModel(Base):
    __tablename__ = "orchids"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    placement: Mapped[str] = mapped_column(Text, nullable=False, default="")

    water_frequency_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    last_watered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    temp_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    temp_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    humidity_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    humidity_max: Mapped[float | None] = mapped_column(Float, nullable=True)

    pot_medium: Mapped[str | None] = mapped_column(Text, nullable=True)
    light_requirement: Mapped[str] = mapped_column(Text, nullable=False, default="Medium")
    par_ppfd: Mapped[float | None] = mapped_column(Float, nullable=True)

    native_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    native_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Seasonal schedule (months 1-12, Northern Hemisphere reference)
    rest_start_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rest_end_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bloom_start_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bloom_end_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rest_water_multiplier: Mapped[float | None] = mapped_column(Float, nullable=True)
    active_water_multiplier: Mapped[float | None] = mapped_column(Float, nullable=True)


class PushSubscriptionModel(Base):
    __tablename__ = "push_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)


class UserPreferenceModel(Base):
    __tablename__ = "user_preferences"

    owner: Mapped[str] = mapped_column(Text, primary_key=True)
    hemisphere: Mapped[str] = mapped_column(Text, nullable=False, default="N")
