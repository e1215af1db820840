# fleetobd/models/telemetry_reading.py
"""
OBD telemetry history table.
Append-only: rows are written once by telemetry_service and never updated or
deleted. created_at orders and windows every history, alert and statistics query.
"""

from sqlalchemy import Column, Integer, DateTime, Float, Boolean, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from fleetobd.database import Base


class TelemetryReading(Base):
    __tablename__ = "telemetry_readings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"))    # driver bound at capture time

    speed = Column(Float)              # km/h
    rpm = Column(Float)
    coolant_temp = Column(Float)       # °C
    fuel_level = Column(Float)         # %
    battery_voltage = Column(Float)    # V
    efficiency = Column(Float)         # km/l, instantaneous
    distance_km = Column(Float, default=0.0, nullable=False)   # since previous sample, never negative
    mil_on = Column(Boolean, default=False, nullable=False)
    dtc_count = Column(Integer, default=0, nullable=False)
    fault_codes = Column(JSON)         # [{code, description, status}]

    alerts = Column(JSON)              # unified list from alert_service.classify
    system_alert_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, nullable=False)

    driver = relationship("Driver")

    __table_args__ = (
        Index("ix_telemetry_vehicle_created", "vehicle_id", "created_at"),
        Index("ix_telemetry_driver_created", "driver_id", "created_at"),
    )

    def __repr__(self):
        return f"<TelemetryReading {self.id} vehicle={self.vehicle_id} at={self.created_at}>"
