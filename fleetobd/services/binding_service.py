# fleetobd/services/binding_service.py
"""
Vehicle ↔ driver binding (strict one-to-one).

Both sides are written in one transaction:
  1. Lock the vehicle row, then the driver row (fixed order, SELECT ... FOR UPDATE
     where the backend supports it).
  2. Validate existence, company, status and current links.
  3. Conditional UPDATEs that only match while the link is still empty.
     If either matches zero rows another request won the race: roll back, Conflict.
The unique constraints on vehicles.current_driver_id and drivers.current_vehicle_id
reject anything that slips past both steps.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fleetobd.errors import ConflictError, NotFoundError
from fleetobd.models.driver import Driver
from fleetobd.models.enums import VehicleStatus
from fleetobd.models.vehicle import Vehicle
from fleetobd.services import vehicle_service
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)

UNBINDABLE_STATUSES = {VehicleStatus.MAINTENANCE.value, VehicleStatus.INACTIVE.value}


def _lock_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).with_for_update().first()
    if vehicle is None:
        raise NotFoundError(f"Vehicle {vehicle_id} not found")
    return vehicle


def _lock_driver(db: Session, driver_id: int) -> Driver:
    driver = db.query(Driver).filter(Driver.id == driver_id).with_for_update().first()
    if driver is None:
        raise NotFoundError(f"Driver {driver_id} not found")
    return driver


def bind(db: Session, vehicle_id: int, driver_id: int) -> Vehicle:
    """Assign a driver to a vehicle. Returns the refreshed vehicle."""
    try:
        vehicle = _lock_vehicle(db, vehicle_id)
        driver = _lock_driver(db, driver_id)

        if vehicle.current_driver_id is not None:
            raise ConflictError(f"Vehicle {vehicle.plate} already has a driver. Unbind it first.")
        if driver.current_vehicle_id is not None:
            raise ConflictError(f"Driver {driver_id} is already bound to another vehicle")
        if vehicle.company_id != driver.company_id:
            raise ConflictError("Driver and vehicle must belong to the same company")
        if vehicle.status in UNBINDABLE_STATUSES:
            raise ConflictError(f"Vehicle {vehicle.plate} is {vehicle.status} and cannot take a driver")
        if not driver.active:
            raise ConflictError(f"Driver {driver_id} is inactive")

        if not vehicle_service.claim_vehicle(db, vehicle_id, driver_id):
            raise ConflictError(f"Vehicle {vehicle_id} was bound by a concurrent request")
        if not vehicle_service.claim_driver(db, driver_id, vehicle_id):
            raise ConflictError(f"Driver {driver_id} was bound by a concurrent request")

        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"[BIND] Unique link violated for vehicle={vehicle_id} driver={driver_id}: {e.orig}")
        raise ConflictError("Vehicle or driver was bound by a concurrent request") from e
    except Exception:
        db.rollback()
        raise

    logger.info(f"[BIND] Driver {driver_id} → vehicle {vehicle_id}")
    db.refresh(vehicle)
    return vehicle


def unbind(db: Session, vehicle_id: int) -> Vehicle:
    """Release the vehicle's driver. Returns the refreshed vehicle."""
    try:
        vehicle = _lock_vehicle(db, vehicle_id)
        driver_id = vehicle.current_driver_id
        if driver_id is None:
            raise ConflictError(f"Vehicle {vehicle.plate} has no driver bound")
        _lock_driver(db, driver_id)

        if not vehicle_service.release_vehicle(db, vehicle_id, driver_id):
            raise ConflictError(f"Vehicle {vehicle_id} was unbound by a concurrent request")
        if not vehicle_service.release_driver(db, driver_id, vehicle_id):
            raise ConflictError(f"Driver {driver_id} is no longer bound to vehicle {vehicle_id}")

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"[UNBIND] Driver {driver_id} released from vehicle {vehicle_id}")
    db.refresh(vehicle)
    return vehicle
