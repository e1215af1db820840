# tests/conftest.py
"""Shared fixtures: in-memory SQLite session + entity factories."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before fleetobd.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TRANSIENT_RETRY_BACKOFF_SECONDS"] = "0"

import itertools
import pytest
from datetime import datetime
from fleetobd.database import SessionLocal, create_tables, drop_tables
from fleetobd.models.company import Company
from fleetobd.models.driver import Driver
from fleetobd.models.telemetry_reading import TelemetryReading
from fleetobd.models.vehicle import Vehicle

_seq = itertools.count(1)


@pytest.fixture
def db():
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def make_company(db):
    def _make(name=None, active=True):
        n = next(_seq)
        company = Company(name=name or f"Transportes {n}", tax_id=f"{n:014d}",
                          email=f"fleet{n}@example.com", active=active, created_at=datetime.utcnow())
        db.add(company)
        db.commit()
        db.refresh(company)
        return company
    return _make


@pytest.fixture
def make_driver(db):
    def _make(company, name=None, active=True, role="driver"):
        n = next(_seq)
        driver = Driver(name=name or f"Driver {n}", national_id=f"{n:011d}", email=f"driver{n}@example.com",
                        password_hash="$argon2id$stub", phone="11999990000", company_id=company.id,
                        role=role, active=active, created_at=datetime.utcnow())
        db.add(driver)
        db.commit()
        db.refresh(driver)
        return driver
    return _make


@pytest.fixture
def make_vehicle(db):
    def _make(company, plate=None, make="Fiat", model="Strada", status="available", odometer_km=0.0):
        n = next(_seq)
        vehicle = Vehicle(plate=plate or f"ABC{n % 10000:04d}", make=make, model=model, year=2022,
                          status=status, company_id=company.id, odometer_km=odometer_km,
                          created_at=datetime.utcnow())
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle
    return _make


@pytest.fixture
def make_reading(db):
    """Insert a reading directly, bypassing ingestion, to control created_at."""
    def _make(vehicle, created_at=None, distance_km=0.0, efficiency=None, dtc_count=0,
              mil_on=False, alerts=None, system_alert_count=0, driver=None):
        reading = TelemetryReading(
            vehicle_id=vehicle.id,
            company_id=vehicle.company_id,
            driver_id=driver.id if driver else None,
            speed=60.0, rpm=2200.0,
            efficiency=efficiency,
            distance_km=distance_km,
            mil_on=mil_on,
            dtc_count=dtc_count,
            fault_codes=[],
            alerts=alerts or [],
            system_alert_count=system_alert_count,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(reading)
        db.commit()
        db.refresh(reading)
        return reading
    return _make
