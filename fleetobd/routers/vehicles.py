# fleetobd/routers/vehicles.py
"""Fleet management: vehicle CRUD, driver binding, driver lookups."""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fleetobd.database import get_db
from fleetobd.dependencies import get_identity
from fleetobd.errors import NotFoundError
from fleetobd.models.enums import VehicleStatus
from fleetobd.schemas.vehicle import BindRequest, VehicleCreate, VehicleOut, VehicleUpdate
from fleetobd.services import binding_service, vehicle_service
from fleetobd.services.access_service import (
    Identity, require_company_tier, require_driver_self, require_vehicle_access,
)

router = APIRouter()


@router.post("/vehicles", response_model=VehicleOut, status_code=201, summary="Register a vehicle")
def create_vehicle(body: VehicleCreate, db: Session = Depends(get_db),
                   identity: Identity = Depends(get_identity)):
    require_company_tier(identity, identity.company_id)
    return vehicle_service.create_vehicle(db, identity.company_id, body.model_dump())


@router.get("/vehicles", response_model=list[VehicleOut], summary="List the company's vehicles")
def list_vehicles(status: Optional[VehicleStatus] = None, db: Session = Depends(get_db),
                  identity: Identity = Depends(get_identity)):
    if not identity.is_company_tier:
        # Plain drivers only ever see their own vehicle
        try:
            return [vehicle_service.driver_vehicle(db, identity.driver_id)]
        except NotFoundError:
            return []
    return vehicle_service.list_vehicles(db, identity.company_id, status.value if status else None)


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut, summary="Vehicle with live snapshot")
def get_vehicle(vehicle_id: int, db: Session = Depends(get_db),
                identity: Identity = Depends(get_identity)):
    vehicle = vehicle_service.get_vehicle(db, vehicle_id)
    require_vehicle_access(identity, vehicle)
    return vehicle


@router.put("/vehicles/{vehicle_id}", response_model=VehicleOut, summary="Update a vehicle")
def update_vehicle(vehicle_id: int, body: VehicleUpdate, db: Session = Depends(get_db),
                   identity: Identity = Depends(get_identity)):
    vehicle = vehicle_service.get_vehicle(db, vehicle_id)
    require_company_tier(identity, vehicle.company_id)
    return vehicle_service.update_vehicle(db, vehicle_id, body.model_dump(exclude_unset=True))


@router.delete("/vehicles/{vehicle_id}", summary="Remove a vehicle")
def delete_vehicle(vehicle_id: int, db: Session = Depends(get_db),
                   identity: Identity = Depends(get_identity)):
    vehicle = vehicle_service.get_vehicle(db, vehicle_id)
    require_company_tier(identity, vehicle.company_id)
    vehicle_service.delete_vehicle(db, vehicle_id)
    return {"status": "removed", "vehicle_id": vehicle_id}


@router.post("/vehicles/{vehicle_id}/driver", response_model=VehicleOut, summary="Bind a driver to the vehicle")
def bind_driver(vehicle_id: int, body: BindRequest, db: Session = Depends(get_db),
                identity: Identity = Depends(get_identity)):
    vehicle = vehicle_service.get_vehicle(db, vehicle_id)
    require_company_tier(identity, vehicle.company_id)
    return binding_service.bind(db, vehicle_id, body.driver_id)


@router.delete("/vehicles/{vehicle_id}/driver", response_model=VehicleOut, summary="Release the vehicle's driver")
def unbind_driver(vehicle_id: int, db: Session = Depends(get_db),
                  identity: Identity = Depends(get_identity)):
    vehicle = vehicle_service.get_vehicle(db, vehicle_id)
    require_company_tier(identity, vehicle.company_id)
    return binding_service.unbind(db, vehicle_id)


@router.get("/drivers/{driver_id}/vehicle", response_model=VehicleOut, summary="Vehicle assigned to a driver")
def get_driver_vehicle(driver_id: int, db: Session = Depends(get_db),
                       identity: Identity = Depends(get_identity)):
    driver = vehicle_service.get_driver(db, driver_id)
    require_driver_self(identity, driver.company_id, driver_id)
    return vehicle_service.driver_vehicle(db, driver_id)


@router.delete("/drivers/{driver_id}", summary="Remove a driver")
def delete_driver(driver_id: int, db: Session = Depends(get_db),
                  identity: Identity = Depends(get_identity)):
    driver = vehicle_service.get_driver(db, driver_id)
    require_company_tier(identity, driver.company_id)
    vehicle_service.delete_driver(db, driver_id)
    return {"status": "removed", "driver_id": driver_id}
