# fleetobd/routers/stats.py
"""Company dashboard: fleet consumption statistics."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from fleetobd.config import settings
from fleetobd.database import get_db
from fleetobd.dependencies import get_identity
from fleetobd.schemas.stats import FleetStatsOut
from fleetobd.services import stats_service
from fleetobd.services.access_service import Identity, require_company_tier
from fleetobd.utils.retry import run_with_retry

router = APIRouter()


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; offset-aware query values are converted to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("/companies/{company_id}/dashboard", response_model=FleetStatsOut, summary="Fleet consumption statistics")
def get_dashboard(
    company_id: int,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
    alert_window_days: Optional[int] = Query(None, ge=1, le=365),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Defaults to the last ALERT_WINDOW_DAYS days when no period is given."""
    require_company_tier(identity, company_id)
    period_start = _as_naive_utc(period_start)
    period_end = _as_naive_utc(period_end) or datetime.utcnow()
    period_start = period_start or period_end - timedelta(days=settings.ALERT_WINDOW_DAYS)
    return run_with_retry(
        db, stats_service.fleet_statistics, company_id, period_start, period_end,
        alert_window_days=alert_window_days,
    )
