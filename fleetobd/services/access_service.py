# fleetobd/services/access_service.py
"""
Authorization checks on an identity already authenticated by the gateway.

Company tier = the company account itself (no driver id) or a driver with the
admin role. Everyone else is a plain driver and only sees the vehicle bound to them.
"""

from dataclasses import dataclass
from typing import Optional
from fleetobd.errors import ForbiddenError
from fleetobd.models.enums import DriverRole
from fleetobd.models.vehicle import Vehicle


@dataclass(frozen=True)
class Identity:
    company_id: int
    driver_id: Optional[int] = None
    role: DriverRole = DriverRole.DRIVER

    @property
    def is_company_tier(self) -> bool:
        return self.driver_id is None or self.role == DriverRole.ADMIN


def require_company_tier(identity: Identity, company_id: int):
    if not identity.is_company_tier:
        raise ForbiddenError("Only company accounts can access this resource")
    if identity.company_id != company_id:
        raise ForbiddenError("Resources of another company are not accessible")


def require_vehicle_access(identity: Identity, vehicle: Vehicle):
    if identity.company_id != vehicle.company_id:
        raise ForbiddenError("Resources of another company are not accessible")
    if identity.is_company_tier:
        return
    if vehicle.current_driver_id is None or vehicle.current_driver_id != identity.driver_id:
        raise ForbiddenError("Drivers can only access the vehicle currently assigned to them")


def require_driver_self(identity: Identity, driver_company_id: int, driver_id: int):
    if identity.company_id != driver_company_id:
        raise ForbiddenError("Resources of another company are not accessible")
    if not identity.is_company_tier and identity.driver_id != driver_id:
        raise ForbiddenError("You can only access your own data")
