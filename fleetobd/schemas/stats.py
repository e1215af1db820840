# fleetobd/schemas/stats.py
from pydantic import BaseModel
from datetime import datetime


class VehicleConsumptionOut(BaseModel):
    vehicle_id: int
    plate: str
    make: str
    model: str
    distance_km: float
    fuel_liters: float
    consumption_km_per_liter: float


class FleetStatsOut(BaseModel):
    company_id: int
    vehicle_count: int
    period_start: datetime
    period_end: datetime
    total_distance_km: float
    total_fuel_liters: float
    avg_consumption_km_per_liter: float
    alert_count: int
    alert_window_days: int
    worst_consumption: list[VehicleConsumptionOut]
