# fleetobd/models/driver.py
"""
Drivers table (company employees).
current_vehicle_id is unique when set, so the database itself rejects two
drivers pointing at the same vehicle. Kept in sync with vehicles.current_driver_id
by binding_service only.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from fleetobd.database import Base
from fleetobd.models.enums import DriverRole


class Driver(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    national_id = Column(String(20), unique=True, nullable=False)   # CPF
    email = Column(String(200), unique=True, nullable=False)        # stored lowercase
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(30))
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    current_vehicle_id = Column(Integer, ForeignKey("vehicles.id", use_alter=True), unique=True)
    role = Column(String(20), default=DriverRole.DRIVER.value, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)

    company = relationship("Company", back_populates="drivers")

    def __repr__(self):
        return f"<Driver {self.id} {self.name} vehicle={self.current_vehicle_id}>"
