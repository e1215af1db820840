# fleetobd/routers/live.py
"""
Live vehicle updates over WebSocket.
WS /ws/vehicles/{id}: same gateway identity headers as the REST endpoints.
Every ingested sample for the vehicle is relayed as {vehicle_id, snapshot, odometer_km}.
"""

import asyncio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fleetobd.database import SessionLocal
from fleetobd.errors import FleetError
from fleetobd.models.enums import DriverRole
from fleetobd.services.access_service import Identity, require_vehicle_access
from fleetobd.services.vehicle_service import get_vehicle
from fleetobd.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _identity_from_headers(websocket: WebSocket) -> Identity:
    headers = websocket.headers
    driver_id = headers.get("x-driver-id")
    return Identity(
        company_id=int(headers["x-company-id"]),
        driver_id=int(driver_id) if driver_id else None,
        role=DriverRole(headers.get("x-role", DriverRole.DRIVER.value)),
    )


@router.websocket("/ws/vehicles/{vehicle_id}")
async def vehicle_updates(websocket: WebSocket, vehicle_id: int):
    db = SessionLocal()
    try:
        require_vehicle_access(_identity_from_headers(websocket), get_vehicle(db, vehicle_id))
    except (KeyError, ValueError, FleetError) as e:
        logger.warning(f"Live subscription to vehicle {vehicle_id} refused: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    await websocket.accept()
    broadcaster = websocket.app.state.broadcaster
    queue = broadcaster.subscribe(vehicle_id)

    async def _relay():
        while True:
            await websocket.send_json(await queue.get())

    relay = asyncio.create_task(_relay(), name=f"live-{vehicle_id}")
    try:
        # Client messages are ignored; receiving only detects disconnects
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Live client for vehicle {vehicle_id} disconnected")
    finally:
        relay.cancel()
        broadcaster.unsubscribe(vehicle_id, queue)
        try:
            await relay
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Live relay for vehicle {vehicle_id} stopped: {e!r}")
