# fleetobd/dependencies.py
"""
FastAPI dependencies for the identity set by the auth gateway and for the
live broadcaster created at startup.
"""

from typing import Optional
from fastapi import Header, HTTPException, Request, status
from fleetobd.models.enums import DriverRole
from fleetobd.services.access_service import Identity
from fleetobd.services.broadcast_service import LiveBroadcaster


def get_identity(
    x_company_id: Optional[int] = Header(None),
    x_driver_id: Optional[int] = Header(None),
    x_role: Optional[DriverRole] = Header(None),
) -> Identity:
    """Gateway headers → Identity. No company header means the request never passed auth."""
    if x_company_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated identity",
        )
    return Identity(
        company_id=x_company_id,
        driver_id=x_driver_id,
        role=x_role or DriverRole.DRIVER,
    )


def get_broadcaster(request: Request) -> LiveBroadcaster:
    return request.app.state.broadcaster
