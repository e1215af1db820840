# fleetobd/services/broadcast_service.py
"""
Live update fan-out, scoped by vehicle.

One LiveBroadcaster is created at startup and handed to whoever needs it
(app.state → dependency → telemetry_service.ingest). Each subscriber owns a
bounded asyncio.Queue. publish() never awaits: when a queue is full the oldest
message is dropped so a slow client always sees the latest snapshot.
Must be used from the event loop thread.
"""

import asyncio
from typing import Optional
from fleetobd.config import settings
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)


class LiveBroadcaster:
    def __init__(self, queue_size: int = None):
        self._queue_size = queue_size or settings.BROADCAST_QUEUE_SIZE
        self._subscribers: dict[int, set[asyncio.Queue]] = {}

    def subscribe(self, vehicle_id: int) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.setdefault(vehicle_id, set()).add(queue)
        logger.info(f"📡 Subscriber added for vehicle {vehicle_id} ({len(self._subscribers[vehicle_id])} total)")
        return queue

    def unsubscribe(self, vehicle_id: int, queue: asyncio.Queue):
        queues = self._subscribers.get(vehicle_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            self._subscribers.pop(vehicle_id, None)
        logger.info(f"Subscriber removed for vehicle {vehicle_id}")

    def publish(self, vehicle_id: int, message: dict) -> int:
        """Queue message for every subscriber of vehicle_id. Returns how many were reached."""
        queues = self._subscribers.get(vehicle_id)
        if not queues:
            return 0

        delivered = 0
        for queue in list(queues):
            try:
                if queue.full():
                    queue.get_nowait()
                    logger.warning(f"Live queue full for vehicle {vehicle_id}, dropped oldest update")
                queue.put_nowait(message)
                delivered += 1
            except (asyncio.QueueFull, asyncio.QueueEmpty) as e:
                logger.warning(f"Live delivery skipped for vehicle {vehicle_id}: {e!r}")
        return delivered

    def subscriber_count(self, vehicle_id: Optional[int] = None) -> int:
        if vehicle_id is not None:
            return len(self._subscribers.get(vehicle_id, ()))
        return sum(len(q) for q in self._subscribers.values())
