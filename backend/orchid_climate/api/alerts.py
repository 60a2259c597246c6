"""Alert listing and acknowledgement endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..models.alert import AlertModel
from ..models.database import get_db
from ..schemas.climate import AlertResponse
from ..services.alerts import acknowledge_alert

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=list[AlertResponse])
def list_alerts(
    owner: str = Query(...),
    include_acknowledged: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    query = db.query(AlertModel).filter(AlertModel.owner == owner)
    if not include_acknowledged:
        query = query.filter(AlertModel.acknowledged_at.is_(None))
    rows = query.order_by(AlertModel.created_at.desc()).limit(limit).all()
    return [AlertResponse(**row.to_dict()) for row in rows]


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
def acknowledge(alert_id: int, db: Session = Depends(get_db)):
    alert: Optional[AlertModel] = acknowledge_alert(db, alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse(**alert.to_dict())
