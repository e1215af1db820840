# fleetobd/models/enums.py
"""String enums shared by the ORM models and the API schemas."""

from enum import Enum


class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class DriverRole(str, Enum):
    DRIVER = "driver"
    STAFF = "staff"
    ADMIN = "admin"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FaultStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PERMANENT = "permanent"
