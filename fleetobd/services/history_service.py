# fleetobd/services/history_service.py
"""
Paged reads of OBD history and of the unified alert feed.
Always ordered by the stored capture time (newest first), never by insert order.
Date bounds are whole days: [date_from 00:00, date_to + 1 day 00:00).
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from fleetobd.config import settings
from fleetobd.errors import InvalidInputError
from fleetobd.models.telemetry_reading import TelemetryReading
from fleetobd.services import alert_service
from fleetobd.services.vehicle_service import get_vehicle


def check_paging(page: int, page_size: int):
    errors = []
    if page < 1:
        errors.append({"field": "page", "msg": "must be >= 1"})
    if not 1 <= page_size <= settings.MAX_PAGE_SIZE:
        errors.append({"field": "page_size", "msg": f"must be between 1 and {settings.MAX_PAGE_SIZE}"})
    if errors:
        raise InvalidInputError("Invalid pagination", errors=errors)


def day_bounds(date_from: Optional[date], date_to: Optional[date]):
    """Turn inclusive calendar dates into a half-open datetime range."""
    if date_from and date_to and date_to < date_from:
        raise InvalidInputError("date_to is before date_from", errors=[{"field": "date_to", "msg": "before date_from"}])
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    return start, end


def page_envelope(items: list, total: int, page: int, page_size: int) -> dict:
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size) if total else 0,
    }


def _readings_query(db: Session, vehicle_id: int, date_from, date_to):
    start, end = day_bounds(date_from, date_to)
    q = db.query(TelemetryReading).filter(TelemetryReading.vehicle_id == vehicle_id)
    if start:
        q = q.filter(TelemetryReading.created_at >= start)
    if end:
        q = q.filter(TelemetryReading.created_at < end)
    return q


def history(db: Session, vehicle_id: int, page: int = 1, page_size: int = None,
            date_from: date = None, date_to: date = None) -> dict:
    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    check_paging(page, page_size)
    get_vehicle(db, vehicle_id)

    q = _readings_query(db, vehicle_id, date_from, date_to)
    total = q.count()
    items = (
        q.order_by(TelemetryReading.created_at.desc(), TelemetryReading.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return page_envelope(items, total, page, page_size)


def alerts(db: Session, vehicle_id: int, page: int = 1, page_size: int = None,
           severity: str = None, alert_type: str = None,
           date_from: date = None, date_to: date = None) -> dict:
    """Alert rows are expanded in Python, so filters apply after expansion."""
    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    check_paging(page, page_size)
    get_vehicle(db, vehicle_id)

    readings = (
        _readings_query(db, vehicle_id, date_from, date_to)
        .filter(or_(TelemetryReading.dtc_count > 0, TelemetryReading.system_alert_count > 0))
        .options(joinedload(TelemetryReading.driver))
        .order_by(TelemetryReading.created_at.desc(), TelemetryReading.id.desc())
        .all()
    )

    rows = []
    for reading in readings:
        rows.extend(alert_service.expand_alert_rows(reading))
    if severity:
        rows = [r for r in rows if r["severity"] == severity]
    if alert_type:
        rows = [r for r in rows if r["type"] == alert_type]
    # stable: rows of one reading keep their classification order
    rows.sort(key=lambda r: r["created_at"], reverse=True)

    offset = (page - 1) * page_size
    return page_envelope(rows[offset:offset + page_size], len(rows), page, page_size)
