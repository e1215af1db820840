# fleetobd/services/alert_service.py
"""
Alert classification for OBD samples.

Two sources end up in one list with one row shape:
  - system alerts already classified by the device (accepted as-is)
  - one synthesized "engine_fault_dtc" alert when the ECU reports trouble codes
is_dtc keeps the provenance so the feed can be filtered uniformly without losing it.
"""

from fleetobd.models.enums import Severity
from fleetobd.models.telemetry_reading import TelemetryReading
from fleetobd.schemas.telemetry import ObdSample
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)

DTC_ALERT_TYPE = "engine_fault_dtc"


def classify(sample: ObdSample) -> list[dict]:
    """System alerts first, then the fault-code alert if any."""
    alerts = [
        {
            "type": a.type,
            "message": a.message,
            "severity": Severity(a.severity).value,
            "is_dtc": False,
        }
        for a in sample.alerts
    ]

    if sample.dtc_count > 0:
        alerts.append({
            "type": DTC_ALERT_TYPE,
            "message": f"{sample.dtc_count} diagnostic trouble code(s) reported by the engine",
            "severity": Severity.HIGH.value,
            "is_dtc": True,
            "fault_codes": [fc.model_dump(mode="json") for fc in sample.fault_codes],
        })

    return alerts


def log_alerts(vehicle_id: int, alerts: list[dict]):
    for alert in alerts:
        logger.warning(
            f"[ALERT][{alert['type'].upper()}] vehicle={vehicle_id} "
            f"severity={alert['severity']} {alert['message']}"
        )


def has_alert_condition(reading: TelemetryReading) -> bool:
    """MIL lit, trouble codes present, or at least one system alert."""
    return bool(reading.mil_on or reading.dtc_count > 0 or reading.system_alert_count > 0)


def expand_alert_rows(reading: TelemetryReading) -> list[dict]:
    """One row per alert, stamped with the reading's time, vehicle and driver."""
    driver_name = reading.driver.name if reading.driver is not None else None
    rows = []
    for alert in reading.alerts or []:
        rows.append({
            "reading_id": reading.id,
            "vehicle_id": reading.vehicle_id,
            "driver_id": reading.driver_id,
            "driver_name": driver_name,
            "type": alert["type"],
            "message": alert["message"],
            "severity": alert["severity"],
            "is_dtc": bool(alert.get("is_dtc")),
            "fault_codes": alert.get("fault_codes"),
            "created_at": reading.created_at,
        })
    return rows
