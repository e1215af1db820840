# fleetobd/models/company.py
"""
Companies table: owners of vehicles and employers of drivers.
Created and edited by the account service; this backend only reads it.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from fleetobd.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    tax_id = Column(String(20), unique=True, nullable=False)   # CNPJ / legal identifier
    email = Column(String(200))
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)

    drivers = relationship("Driver", back_populates="company")
    vehicles = relationship("Vehicle", back_populates="company")

    def __repr__(self):
        return f"<Company {self.id} {self.name} active={self.active}>"
