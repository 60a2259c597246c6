"""Pydantic schemas for climate API responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class ClimateSnapshotResponse(BaseModel):
    zone_name: str
    avg_temp_c: float
    avg_humidity_pct: float
    avg_vpd_kpa: float
    precipitation_48h_mm: Optional[float] = None
    newest_reading_at: datetime
    reading_count: int
    quality: str
    is_outdoor: bool


class FactorBreakdownResponse(BaseModel):
    vpd_factor: float
    cold_stress_factor: float
    medium_factor: float
    light_factor: float
    rain_factor: float


class WateringEstimateResponse(BaseModel):
    orchid_id: int
    adjusted_days: int
    base_days: int
    quality: str
    climate_active: bool
    factors: Optional[FactorBreakdownResponse] = None


class HabitatSummaryResponse(BaseModel):
    latitude: float
    longitude: float
    period_type: str
    period_start: datetime
    avg_temperature: float
    min_temperature: float
    max_temperature: float
    avg_humidity: float
    total_precipitation: float
    sample_count: int


class AlertResponse(BaseModel):
    id: int
    owner: str
    orchid: Optional[int] = None
    zone: Optional[int] = None
    alert_type: str
    severity: str
    message: str
    created_at: datetime
    acknowledged_at: Optional[datetime] = None


class PassRunResponse(BaseModel):
    pass_name: str
    status: str
    started_at: Optional[datetime] = None
    duration_sec: Optional[float] = None
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
