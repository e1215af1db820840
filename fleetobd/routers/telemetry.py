# fleetobd/routers/telemetry.py
"""
OBD telemetry endpoints.
PUT /vehicles/{id}/obd          : device push, no session required
GET /vehicles/{id}/obd/history  : paged readings
GET /vehicles/{id}/alerts       : paged unified alert feed
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fleetobd.config import settings
from fleetobd.database import get_db
from fleetobd.dependencies import get_broadcaster, get_identity
from fleetobd.models.enums import Severity
from fleetobd.schemas.telemetry import AlertPage, IngestResult, ObdSample, ReadingPage
from fleetobd.services import history_service, telemetry_service
from fleetobd.services.access_service import Identity, require_vehicle_access
from fleetobd.services.broadcast_service import LiveBroadcaster
from fleetobd.services.vehicle_service import get_vehicle
from fleetobd.utils.retry import run_with_retry

router = APIRouter()


@router.put("/vehicles/{vehicle_id}/obd", response_model=IngestResult, summary="Device push: ingest one OBD sample")
async def ingest_obd(
    vehicle_id: int,
    sample: ObdSample,
    db: Session = Depends(get_db),
    broadcaster: LiveBroadcaster = Depends(get_broadcaster),
):
    """Stores the sample, refreshes the live snapshot and notifies subscribers."""
    return await telemetry_service.ingest(db, vehicle_id, sample, broadcaster)


@router.get("/vehicles/{vehicle_id}/obd/history", response_model=ReadingPage, summary="OBD history, newest first")
def get_obd_history(
    vehicle_id: int,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    require_vehicle_access(identity, get_vehicle(db, vehicle_id))
    return run_with_retry(db, history_service.history, vehicle_id, page, page_size, date_from, date_to)


@router.get("/vehicles/{vehicle_id}/alerts", response_model=AlertPage, summary="Fault and system alerts, newest first")
def get_alerts(
    vehicle_id: int,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
    severity: Optional[Severity] = None,
    alert_type: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    require_vehicle_access(identity, get_vehicle(db, vehicle_id))
    return run_with_retry(
        db, history_service.alerts, vehicle_id, page, page_size,
        severity.value if severity else None, alert_type, date_from, date_to,
    )
