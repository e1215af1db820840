# fleetobd/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + live subscriber count.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from fleetobd.database import get_db
from fleetobd.dependencies import get_broadcaster
from fleetobd.services.broadcast_service import LiveBroadcaster
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), broadcaster: LiveBroadcaster = Depends(get_broadcaster)):
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "live_subscribers": broadcaster.subscriber_count(),
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
