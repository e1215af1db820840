# fleetobd/services/stats_service.py
"""
Fleet fuel-consumption statistics.

Devices report distance and instantaneous efficiency (km/l) but never fuel volume,
so volume is rebuilt per sample as distance / efficiency. Efficiency at or below
EFFICIENCY_GUARD counts as zero fuel instead of blowing up the division.
Consumption figures are km per litre: lower means worse economy.
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from fleetobd.config import settings
from fleetobd.errors import InvalidInputError
from fleetobd.models.telemetry_reading import TelemetryReading
from fleetobd.models.vehicle import Vehicle
from fleetobd.services.vehicle_service import get_company
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)


def fuel_volume(distance: Optional[float], efficiency: Optional[float]) -> float:
    """Litres burned over distance at the given km/l. Non-finite inputs burn nothing."""
    if not distance or efficiency is None or not math.isfinite(distance) or not math.isfinite(efficiency):
        return 0.0
    if efficiency <= settings.EFFICIENCY_GUARD:
        return 0.0
    return distance / efficiency


def consumption(distance: float, fuel: float) -> float:
    """km/l, or 0 when no fuel was recorded."""
    if fuel <= 0:
        return 0.0
    return distance / fuel


def count_alert_readings(db: Session, vehicle_ids: list, since: datetime, until: datetime) -> int:
    if not vehicle_ids:
        return 0
    return (
        db.query(TelemetryReading)
        .filter(
            TelemetryReading.vehicle_id.in_(vehicle_ids),
            TelemetryReading.created_at >= since,
            TelemetryReading.created_at < until,
            or_(
                TelemetryReading.mil_on.is_(True),
                TelemetryReading.dtc_count > 0,
                TelemetryReading.system_alert_count > 0,
            ),
        )
        .count()
    )


def fleet_statistics(db: Session, company_id: int, window_start: datetime, window_end: datetime,
                     alert_window_days: int = None, now: datetime = None) -> dict:
    if window_end <= window_start:
        raise InvalidInputError(
            "Statistics window end must be after its start",
            errors=[{"field": "period_end", "msg": "not after period_start"}],
        )
    alert_window_days = alert_window_days or settings.ALERT_WINDOW_DAYS
    now = now or datetime.utcnow()

    get_company(db, company_id)
    vehicles = {v.id: v for v in db.query(Vehicle).filter(Vehicle.company_id == company_id).all()}
    vehicle_ids = list(vehicles)

    total_distance = 0.0
    total_fuel = 0.0
    per_vehicle = defaultdict(lambda: {"distance": 0.0, "fuel": 0.0})

    if vehicle_ids:
        rows = (
            db.query(TelemetryReading.vehicle_id, TelemetryReading.distance_km, TelemetryReading.efficiency)
            .filter(
                TelemetryReading.vehicle_id.in_(vehicle_ids),
                TelemetryReading.created_at >= window_start,
                TelemetryReading.created_at < window_end,
            )
            .all()
        )
        for vehicle_id, distance, efficiency in rows:
            distance = distance if distance and math.isfinite(distance) else 0.0
            fuel = fuel_volume(distance, efficiency)
            total_distance += distance
            total_fuel += fuel
            per_vehicle[vehicle_id]["distance"] += distance
            per_vehicle[vehicle_id]["fuel"] += fuel

    ranking = []
    for vehicle_id, totals in per_vehicle.items():
        kmpl = consumption(totals["distance"], totals["fuel"])
        if kmpl <= 0:
            continue
        v = vehicles[vehicle_id]
        ranking.append({
            "vehicle_id": vehicle_id,
            "plate": v.plate,
            "make": v.make,
            "model": v.model,
            "distance_km": round(totals["distance"], 2),
            "fuel_liters": round(totals["fuel"], 2),
            "consumption_km_per_liter": round(kmpl, 2),
            "_raw": kmpl,
        })
    ranking.sort(key=lambda r: r["_raw"])
    for r in ranking:
        del r["_raw"]

    alert_count = count_alert_readings(db, vehicle_ids, now - timedelta(days=alert_window_days), now)

    logger.info(
        f"[STATS] company={company_id} vehicles={len(vehicle_ids)} "
        f"dist={total_distance:.1f}km fuel={total_fuel:.1f}l alerts={alert_count}"
    )
    return {
        "company_id": company_id,
        "vehicle_count": len(vehicle_ids),
        "period_start": window_start,
        "period_end": window_end,
        "total_distance_km": round(total_distance, 2),
        "total_fuel_liters": round(total_fuel, 2),
        "avg_consumption_km_per_liter": round(consumption(total_distance, total_fuel), 2),
        "alert_count": alert_count,
        "alert_window_days": alert_window_days,
        "worst_consumption": ranking[:settings.TOP_VEHICLES],
    }
