"""Climate read endpoints: zone snapshots, watering estimates, habitat summaries."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..models.collection import GrowingZoneModel, OrchidModel, UserPreferenceModel
from ..models.database import get_db
from ..models.habitat_weather import HabitatWeatherSummaryModel
from ..schemas.climate import (
    ClimateSnapshotResponse,
    FactorBreakdownResponse,
    HabitatSummaryResponse,
    WateringEstimateResponse,
)
from ..services.estimation import LightRequirement, PotMedium, climate_adjusted_frequency
from ..services.habitat_poller import round_coordinate
from ..services.seasonal import Hemisphere, effective_water_frequency
from ..services.snapshot import ClimateSnapshot, snapshot_for_zone

router = APIRouter(tags=["climate"])


def _snapshot_response(snap: ClimateSnapshot) -> ClimateSnapshotResponse:
    return ClimateSnapshotResponse(
        zone_name=snap.zone_name,
        avg_temp_c=round(snap.avg_temp_c, 2),
        avg_humidity_pct=round(snap.avg_humidity_pct, 2),
        avg_vpd_kpa=round(snap.avg_vpd_kpa, 3),
        precipitation_48h_mm=snap.precipitation_48h_mm,
        newest_reading_at=snap.newest_reading_at,
        reading_count=snap.reading_count,
        quality=snap.quality.value,
        is_outdoor=snap.is_outdoor,
    )


@router.get("/zones/{zone_name}/snapshot", response_model=ClimateSnapshotResponse)
def get_zone_snapshot(
    zone_name: str,
    owner: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(GrowingZoneModel).filter(GrowingZoneModel.name == zone_name)
    if owner is not None:
        query = query.filter(GrowingZoneModel.owner == owner)
    zone = query.order_by(GrowingZoneModel.id).first()
    if zone is None:
        raise HTTPException(status_code=404, detail=f"Zone not found: {zone_name}")

    snap = snapshot_for_zone(db, zone)
    if snap is None:
        raise HTTPException(status_code=404, detail=f"No readings for zone: {zone_name}")
    return _snapshot_response(snap)


@router.get("/orchids/{orchid_id}/watering", response_model=WateringEstimateResponse)
def get_watering_estimate(orchid_id: int, db: Session = Depends(get_db)):
    orchid = db.get(OrchidModel, orchid_id)
    if orchid is None:
        raise HTTPException(status_code=404, detail="Orchid not found")

    pref = db.get(UserPreferenceModel, orchid.owner)
    hemisphere = Hemisphere.from_code(pref.hemisphere if pref else None)

    zone = (
        db.query(GrowingZoneModel)
        .filter(GrowingZoneModel.owner == orchid.owner)
        .filter(GrowingZoneModel.name == orchid.placement)
        .first()
    )
    snap = snapshot_for_zone(db, zone) if zone is not None else None

    estimate = climate_adjusted_frequency(
        effective_water_frequency(orchid, hemisphere),
        snap,
        PotMedium.parse(orchid.pot_medium),
        LightRequirement.parse(orchid.light_requirement),
        orchid.par_ppfd,
    )

    factors = None
    if estimate.factors is not None:
        f = estimate.factors
        factors = FactorBreakdownResponse(
            vpd_factor=round(f.vpd_factor, 3),
            cold_stress_factor=round(f.cold_stress_factor, 3),
            medium_factor=round(f.medium_factor, 3),
            light_factor=round(f.light_factor, 3),
            rain_factor=round(f.rain_factor, 3),
        )

    return WateringEstimateResponse(
        orchid_id=orchid.id,
        adjusted_days=estimate.adjusted_days,
        base_days=estimate.base_days,
        quality=estimate.quality.value,
        climate_active=estimate.climate_active,
        factors=factors,
    )


@router.get("/habitat/summaries", response_model=list[HabitatSummaryResponse])
def get_habitat_summaries(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    period_type: Optional[str] = Query(None, pattern="^(daily|weekly|monthly)$"),
    db: Session = Depends(get_db),
):
    S = HabitatWeatherSummaryModel
    query = (
        db.query(S)
        .filter(S.latitude == round_coordinate(latitude))
        .filter(S.longitude == round_coordinate(longitude))
    )
    if period_type is not None:
        query = query.filter(S.period_type == period_type)

    return [HabitatSummaryResponse(**row.to_dict()) for row in query.order_by(S.period_start).all()]
