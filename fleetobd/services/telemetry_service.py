# fleetobd/services/telemetry_service.py
"""
OBD ingestion pipeline. Device → history → live snapshot → subscribers.

Steps:
  1. Resolve vehicle and the driver bound right now (may be none).
  2. Classify alerts and write the immutable TelemetryReading (committed on its own).
  3. Project onto the vehicle: SQL-side odometer increment + snapshot replace,
     the latter only if no newer sample already landed.
  4. Publish {vehicle_id, snapshot, odometer_km} to live subscribers. Fire-and-forget.

Anything failing after step 2 leaves the reading in place.
"""

import math
from datetime import datetime
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from fleetobd.models.telemetry_reading import TelemetryReading
from fleetobd.models.vehicle import Vehicle
from fleetobd.schemas.telemetry import ObdSample
from fleetobd.services import alert_service
from fleetobd.services.broadcast_service import LiveBroadcaster
from fleetobd.services.vehicle_service import get_vehicle
from fleetobd.utils.logger import get_logger
from fleetobd.utils.retry import run_with_retry

logger = get_logger(__name__)


def clamp_distance(distance: Optional[float]) -> float:
    """Missing, non-finite or negative distance counts as zero; odometers never go back."""
    if distance is None or not math.isfinite(distance) or distance < 0:
        return 0.0
    return float(distance)


def _persist_reading(db: Session, vehicle_id: int, sample: ObdSample) -> TelemetryReading:
    vehicle = get_vehicle(db, vehicle_id)
    alerts = alert_service.classify(sample)

    reading = TelemetryReading(
        vehicle_id=vehicle.id,
        company_id=vehicle.company_id,
        driver_id=vehicle.current_driver_id,
        speed=sample.speed,
        rpm=sample.rpm,
        coolant_temp=sample.coolant_temp,
        fuel_level=sample.fuel_level,
        battery_voltage=sample.battery_voltage,
        efficiency=sample.efficiency,
        distance_km=clamp_distance(sample.distance_km),
        mil_on=sample.mil_on,
        dtc_count=sample.dtc_count,
        fault_codes=[fc.model_dump(mode="json") for fc in sample.fault_codes],
        alerts=alerts,
        system_alert_count=len(sample.alerts),
        created_at=datetime.utcnow(),
    )
    db.add(reading)
    db.commit()
    db.refresh(reading)
    return reading


def build_snapshot(sample: ObdSample, reading: TelemetryReading) -> dict:
    snapshot = sample.model_dump(mode="json")
    snapshot["distance_km"] = reading.distance_km
    snapshot["alerts"] = reading.alerts
    snapshot["updated_at"] = reading.created_at.isoformat()
    return snapshot


def _project_onto_vehicle(db: Session, reading: TelemetryReading, snapshot: dict) -> Vehicle:
    (
        db.query(Vehicle)
        .filter(Vehicle.id == reading.vehicle_id)
        .update({Vehicle.odometer_km: Vehicle.odometer_km + reading.distance_km}, synchronize_session=False)
    )
    replaced = (
        db.query(Vehicle)
        .filter(
            Vehicle.id == reading.vehicle_id,
            or_(Vehicle.snapshot_at.is_(None), Vehicle.snapshot_at <= reading.created_at),
        )
        .update({Vehicle.obd_snapshot: snapshot, Vehicle.snapshot_at: reading.created_at}, synchronize_session=False)
    )
    db.commit()
    if not replaced:
        logger.debug(f"Reading {reading.id} is older than the live snapshot of vehicle {reading.vehicle_id}")
    return get_vehicle(db, reading.vehicle_id)


def _publish_safely(broadcaster: Optional[LiveBroadcaster], vehicle_id: int, message: dict):
    if broadcaster is None:
        return
    try:
        broadcaster.publish(vehicle_id, message)
    except Exception as e:
        logger.warning(f"Live broadcast failed for vehicle {vehicle_id}: {e}", exc_info=True)


async def ingest(db: Session, vehicle_id: int, sample: ObdSample,
                 broadcaster: Optional[LiveBroadcaster] = None) -> dict:
    # Session work runs in the threadpool; only the publish stays on the event loop
    reading = await run_in_threadpool(run_with_retry, db, _persist_reading, vehicle_id, sample)
    reading_id = reading.id
    logger.info(
        f"[OBD] vehicle={vehicle_id} reading={reading_id} driver={reading.driver_id} "
        f"speed={reading.speed} rpm={reading.rpm} dist={reading.distance_km}km alerts={len(reading.alerts)}"
    )
    alert_service.log_alerts(vehicle_id, reading.alerts)

    snapshot = build_snapshot(sample, reading)
    vehicle = await run_in_threadpool(run_with_retry, db, _project_onto_vehicle, reading, snapshot)

    result = {
        "reading_id": reading_id,
        "snapshot": vehicle.obd_snapshot,
        "odometer_km": vehicle.odometer_km,
    }
    _publish_safely(broadcaster, vehicle_id, {
        "vehicle_id": vehicle_id,
        "snapshot": vehicle.obd_snapshot,
        "odometer_km": vehicle.odometer_km,
    })
    return result
