# tests/test_broadcast_service.py
"""Tests for per-vehicle live update fan-out."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fleetobd.services.broadcast_service import LiveBroadcaster


class TestLiveBroadcaster:
    @pytest.mark.asyncio
    async def test_delivery_scoped_to_vehicle(self):
        broadcaster = LiveBroadcaster(queue_size=5)
        watching_1 = broadcaster.subscribe(1)
        watching_2 = broadcaster.subscribe(2)

        reached = broadcaster.publish(1, {"vehicle_id": 1, "odometer_km": 10.0})

        assert reached == 1
        assert (await watching_1.get())["vehicle_id"] == 1
        assert watching_2.empty()

    @pytest.mark.asyncio
    async def test_every_subscriber_of_vehicle_receives(self):
        broadcaster = LiveBroadcaster(queue_size=5)
        queues = [broadcaster.subscribe(7) for _ in range(3)]

        assert broadcaster.publish(7, {"n": 1}) == 3
        for q in queues:
            assert q.get_nowait() == {"n": 1}

    def test_publish_without_subscribers_is_noop(self):
        broadcaster = LiveBroadcaster()
        assert broadcaster.publish(99, {"n": 1}) == 0
        assert broadcaster.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_oldest(self):
        broadcaster = LiveBroadcaster(queue_size=2)
        queue = broadcaster.subscribe(3)

        for n in range(1, 4):
            broadcaster.publish(3, {"n": n})

        assert queue.qsize() == 2
        assert [queue.get_nowait()["n"], queue.get_nowait()["n"]] == [2, 3]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self):
        broadcaster = LiveBroadcaster()
        queue = broadcaster.subscribe(4)
        other = broadcaster.subscribe(4)
        broadcaster.unsubscribe(4, queue)

        broadcaster.publish(4, {"n": 1})

        assert queue.empty()
        assert other.get_nowait() == {"n": 1}
        assert broadcaster.subscriber_count(4) == 1

        broadcaster.unsubscribe(4, other)
        assert broadcaster.subscriber_count() == 0
        broadcaster.unsubscribe(4, other)   # already gone
