# fleetobd/models/vehicle.py
"""
Fleet vehicles table.
Holds the live OBD snapshot (last sample + its timestamp) and the cumulative
odometer, both maintained by telemetry_service. Invariant:
status == "in_use" exactly when current_driver_id is set.
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship
from fleetobd.database import Base
from fleetobd.models.enums import VehicleStatus


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate = Column(String(10), unique=True, nullable=False, index=True)   # uppercase, no spaces
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(50))
    chassis = Column(String(50))
    status = Column(String(20), default=VehicleStatus.AVAILABLE.value, nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    current_driver_id = Column(Integer, ForeignKey("drivers.id"), unique=True)
    odometer_km = Column(Float, default=0.0, nullable=False)
    next_maintenance = Column(Date)
    obd_snapshot = Column(JSON)
    snapshot_at = Column(DateTime)
    created_at = Column(DateTime)

    company = relationship("Company", back_populates="vehicles")
    current_driver = relationship("Driver", foreign_keys=[current_driver_id])

    def __repr__(self):
        return f"<Vehicle {self.plate} status={self.status} driver={self.current_driver_id}>"
