# fleetobd/schemas/telemetry.py
"""
Contracts for OBD samples pushed by devices and for the history/alert views.
Ranges reflect what an OBD-II adapter can physically report.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from fleetobd.models.enums import Severity, FaultStatus


class FaultCode(BaseModel):
    code: str = Field(..., min_length=1, max_length=10)   # e.g. "P0300"
    description: Optional[str] = None
    status: FaultStatus = FaultStatus.PENDING


class SystemAlert(BaseModel):
    """Alert already classified by the device firmware."""
    type: str = Field(..., min_length=1, max_length=50)
    message: str
    severity: Severity


class ObdSample(BaseModel):
    speed: Optional[float] = Field(None, ge=0, le=400)
    rpm: Optional[float] = Field(None, ge=0, le=20000)
    coolant_temp: Optional[float] = Field(None, ge=-40, le=215)
    fuel_level: Optional[float] = Field(None, ge=0, le=100)
    battery_voltage: Optional[float] = Field(None, ge=0, le=30)
    efficiency: Optional[float] = Field(None, ge=0)       # km/l
    distance_km: Optional[float] = None                   # negative values are clamped to 0 on ingest
    mil_on: bool = False
    dtc_count: int = Field(0, ge=0)
    fault_codes: list[FaultCode] = []
    alerts: list[SystemAlert] = []

    class Config:
        allow_inf_nan = False   # the JSON parser accepts NaN/Infinity literals


class IngestResult(BaseModel):
    reading_id: int
    snapshot: dict
    odometer_km: float


class ReadingOut(BaseModel):
    id: int
    vehicle_id: int
    driver_id: Optional[int]
    speed: Optional[float]
    rpm: Optional[float]
    coolant_temp: Optional[float]
    fuel_level: Optional[float]
    battery_voltage: Optional[float]
    efficiency: Optional[float]
    distance_km: float
    mil_on: bool
    dtc_count: int
    fault_codes: Optional[list]
    alerts: Optional[list]
    created_at: datetime

    class Config:
        from_attributes = True


class AlertRow(BaseModel):
    reading_id: int
    vehicle_id: int
    driver_id: Optional[int]
    driver_name: Optional[str]
    type: str
    message: str
    severity: Severity
    is_dtc: bool
    fault_codes: Optional[list] = None
    created_at: datetime


class ReadingPage(BaseModel):
    items: list[ReadingOut]
    total: int
    page: int
    page_size: int
    total_pages: int


class AlertPage(BaseModel):
    items: list[AlertRow]
    total: int
    page: int
    page_size: int
    total_pages: int
