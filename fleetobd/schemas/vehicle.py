# fleetobd/schemas/vehicle.py
from pydantic import BaseModel, Field, AfterValidator, BeforeValidator
from datetime import datetime, date
from typing import Annotated, Optional
from fleetobd.models.enums import VehicleStatus
from fleetobd.services.vehicle_service import normalize_plate, check_model_year

Plate = Annotated[str, BeforeValidator(normalize_plate)]
ModelYear = Annotated[int, AfterValidator(check_model_year)]


class VehicleCreate(BaseModel):
    plate: Plate
    make: str = Field(..., min_length=2)
    model: str = Field(..., min_length=2)
    year: ModelYear
    color: Optional[str] = None
    chassis: Optional[str] = None
    odometer_km: float = Field(0.0, ge=0)
    next_maintenance: Optional[date] = None


class VehicleUpdate(BaseModel):
    plate: Optional[Plate] = None
    make: Optional[str] = Field(None, min_length=2)
    model: Optional[str] = Field(None, min_length=2)
    year: Optional[ModelYear] = None
    color: Optional[str] = None
    chassis: Optional[str] = None
    odometer_km: Optional[float] = Field(None, ge=0)
    next_maintenance: Optional[date] = None
    status: Optional[VehicleStatus] = None


class BindRequest(BaseModel):
    driver_id: int


class VehicleOut(BaseModel):
    id: int
    plate: str
    make: str
    model: str
    year: int
    color: Optional[str]
    chassis: Optional[str]
    status: VehicleStatus
    company_id: int
    current_driver_id: Optional[int]
    odometer_km: float
    next_maintenance: Optional[date]
    obd_snapshot: Optional[dict]
    snapshot_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
