# fleetobd/services/vehicle_service.py
"""
Entity store for vehicles, drivers and companies.
Lookups raise NotFoundError instead of returning None, except plate lookup.
The claim/release helpers are single conditional UPDATEs used by binding_service;
each returns True only if the expected row state was still in place.
"""

import re
from datetime import datetime, date
from sqlalchemy.orm import Session
from fleetobd.errors import ConflictError, InvalidInputError, NotFoundError
from fleetobd.models.company import Company
from fleetobd.models.driver import Driver
from fleetobd.models.enums import VehicleStatus
from fleetobd.models.vehicle import Vehicle
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)

# ABC1234, ABC-1234 and Mercosul ABC1D23
PLATE_PATTERN = re.compile(r"^[A-Z]{3}-?\d[A-Z0-9]\d{2}$")


def normalize_plate(plate) -> str:
    """Uppercase, strip all whitespace, then validate the format."""
    if not isinstance(plate, str):
        raise InvalidInputError("Plate must be a string", errors=[{"field": "plate", "msg": "not a string"}])
    normalized = re.sub(r"\s", "", plate).upper()
    if not PLATE_PATTERN.match(normalized):
        raise InvalidInputError(
            f"Invalid plate '{plate}'. Use ABC-1234 or ABC1D23",
            errors=[{"field": "plate", "msg": "invalid format"}],
        )
    return normalized


def max_model_year() -> int:
    return date.today().year + 1


def check_model_year(year: int) -> int:
    if not 1900 <= year <= max_model_year():
        raise InvalidInputError(
            f"Year must be between 1900 and {max_model_year()}",
            errors=[{"field": "year", "msg": "out of range"}],
        )
    return year


# ── Lookups ───────────────────────────────────────────────────────────────────

def get_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFoundError(f"Vehicle {vehicle_id} not found")
    return vehicle


def get_driver(db: Session, driver_id: int) -> Driver:
    driver = db.get(Driver, driver_id)
    if driver is None:
        raise NotFoundError(f"Driver {driver_id} not found")
    return driver


def get_company(db: Session, company_id: int) -> Company:
    company = db.get(Company, company_id)
    if company is None:
        raise NotFoundError(f"Company {company_id} not found")
    return company


def lookup_vehicle_by_plate(db: Session, plate: str):
    """Find a vehicle by plate number. Returns None if not found."""
    return db.query(Vehicle).filter(Vehicle.plate == normalize_plate(plate)).first()


def list_vehicles(db: Session, company_id: int, status: str = None) -> list:
    q = db.query(Vehicle).filter(Vehicle.company_id == company_id)
    if status:
        q = q.filter(Vehicle.status == status)
    return q.order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).all()


def driver_vehicle(db: Session, driver_id: int) -> Vehicle:
    """The vehicle currently bound to a driver."""
    driver = get_driver(db, driver_id)
    if driver.current_vehicle_id is None:
        raise NotFoundError(f"Driver {driver_id} has no vehicle assigned")
    return get_vehicle(db, driver.current_vehicle_id)


# ── Vehicle management ────────────────────────────────────────────────────────

def create_vehicle(db: Session, company_id: int, data: dict) -> Vehicle:
    get_company(db, company_id)
    plate = normalize_plate(data["plate"])
    if db.query(Vehicle).filter(Vehicle.plate == plate).first():
        raise ConflictError(f"Plate {plate} already registered")

    vehicle = Vehicle(
        plate=plate,
        make=data["make"],
        model=data["model"],
        year=check_model_year(data["year"]),
        color=data.get("color"),
        chassis=data.get("chassis"),
        next_maintenance=data.get("next_maintenance"),
        odometer_km=data.get("odometer_km") or 0.0,
        status=VehicleStatus.AVAILABLE.value,
        company_id=company_id,
        created_at=datetime.utcnow(),
    )
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info(f"[FLEET] Vehicle {vehicle.plate} registered for company {company_id}")
    return vehicle


def update_vehicle(db: Session, vehicle_id: int, data: dict) -> Vehicle:
    """Partial update. Binding-owned fields (driver, in_use) cannot be set here."""
    vehicle = get_vehicle(db, vehicle_id)

    if data.get("plate"):
        plate = normalize_plate(data["plate"])
        taken = db.query(Vehicle).filter(Vehicle.plate == plate, Vehicle.id != vehicle_id).first()
        if taken:
            raise ConflictError(f"Plate {plate} already registered to another vehicle")
        vehicle.plate = plate

    if data.get("odometer_km") is not None:
        if data["odometer_km"] < vehicle.odometer_km:
            raise InvalidInputError(
                "Odometer cannot move backwards",
                errors=[{"field": "odometer_km", "msg": f"below current {vehicle.odometer_km}"}],
            )
        vehicle.odometer_km = data["odometer_km"]

    status = data.get("status")
    if status is not None:
        status = VehicleStatus(status)
        if status == VehicleStatus.IN_USE or vehicle.current_driver_id is not None:
            raise ConflictError("Vehicle usage is controlled by driver binding; bind or unbind instead")
        vehicle.status = status.value

    if data.get("year") is not None:
        vehicle.year = check_model_year(data["year"])
    for field in ("make", "model", "color", "chassis", "next_maintenance"):
        if data.get(field) is not None:
            setattr(vehicle, field, data[field])

    db.commit()
    db.refresh(vehicle)
    return vehicle


def delete_vehicle(db: Session, vehicle_id: int):
    vehicle = get_vehicle(db, vehicle_id)
    if vehicle.current_driver_id is not None:
        raise ConflictError("Cannot delete a vehicle with a bound driver. Unbind it first.")
    db.delete(vehicle)
    db.commit()
    logger.info(f"[FLEET] Vehicle {vehicle.plate} removed")


def delete_driver(db: Session, driver_id: int):
    driver = get_driver(db, driver_id)
    if driver.current_vehicle_id is not None:
        raise ConflictError("Cannot delete a driver bound to a vehicle. Unbind it first.")
    db.delete(driver)
    db.commit()
    logger.info(f"[FLEET] Driver {driver_id} removed")


# ── Atomic conditional updates ────────────────────────────────────────────────

def claim_vehicle(db: Session, vehicle_id: int, driver_id: int) -> bool:
    rows = (
        db.query(Vehicle)
        .filter(Vehicle.id == vehicle_id, Vehicle.current_driver_id.is_(None))
        .update(
            {Vehicle.current_driver_id: driver_id, Vehicle.status: VehicleStatus.IN_USE.value},
            synchronize_session=False,
        )
    )
    return rows == 1


def claim_driver(db: Session, driver_id: int, vehicle_id: int) -> bool:
    rows = (
        db.query(Driver)
        .filter(Driver.id == driver_id, Driver.current_vehicle_id.is_(None))
        .update({Driver.current_vehicle_id: vehicle_id}, synchronize_session=False)
    )
    return rows == 1


def release_vehicle(db: Session, vehicle_id: int, driver_id: int) -> bool:
    rows = (
        db.query(Vehicle)
        .filter(Vehicle.id == vehicle_id, Vehicle.current_driver_id == driver_id)
        .update(
            {Vehicle.current_driver_id: None, Vehicle.status: VehicleStatus.AVAILABLE.value},
            synchronize_session=False,
        )
    )
    return rows == 1


def release_driver(db: Session, driver_id: int, vehicle_id: int) -> bool:
    rows = (
        db.query(Driver)
        .filter(Driver.id == driver_id, Driver.current_vehicle_id == vehicle_id)
        .update({Driver.current_vehicle_id: None}, synchronize_session=False)
    )
    return rows == 1
