"""
Unit tests for the WebSocket broadcast service.
"""

import json
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from broadcast import BroadcastService, notify_safely
from models import EventType


def make_client(fail: bool = False):
    """Fake WebSocket; optionally its send always fails."""
    client = Mock()
    client.send_text = AsyncMock(side_effect=RuntimeError("socket closed") if fail else None)
    return client


class TestPublish:
    """Test fan-out to connected clients."""

    @pytest.mark.asyncio
    async def test_every_client_receives_event(self):
        """Test all clients get the same JSON frame."""
        service = BroadcastService()
        first, second = make_client(), make_client()
        await service.add(first)
        await service.add(second)

        await service.publish(EventType.OUTPUT, "line 1\n")

        for client in (first, second):
            frame = json.loads(client.send_text.await_args.args[0])
            assert frame == {"type": "output", "message": "line 1\n"}

    @pytest.mark.asyncio
    async def test_failing_client_is_removed(self):
        """Test a dead client is dropped and the others still receive."""
        service = BroadcastService()
        healthy, dead = make_client(), make_client(fail=True)
        await service.add(healthy)
        await service.add(dead)

        await service.publish(EventType.STATUS, "hello")

        assert service.client_count == 1
        healthy.send_text.assert_awaited_once()

        await service.publish(EventType.STATUS, "again")
        assert dead.send_text.await_count == 1

    @pytest.mark.asyncio
    async def test_publish_without_clients(self):
        """Test publishing to nobody is fine."""
        service = BroadcastService()

        await service.publish(EventType.SUCCESS, "done")

        assert service.client_count == 0

    @pytest.mark.asyncio
    async def test_service_is_a_notifier(self):
        """Test the service can be called like a notify function."""
        service = BroadcastService()
        client = make_client()
        await service.add(client)

        await service(EventType.ERROR, "boom")

        assert json.loads(client.send_text.await_args.args[0])["type"] == "error"

    @pytest.mark.asyncio
    async def test_remove(self):
        """Test removed clients stop receiving events."""
        service = BroadcastService()
        client = make_client()
        await service.add(client)
        await service.remove(client)
        await service.remove(client)

        await service.publish(EventType.STATUS, "x")

        client.send_text.assert_not_awaited()


class TestSendTo:
    """Test sending to a single client."""

    @pytest.mark.asyncio
    async def test_send_to_one_client(self):
        """Test only the addressed client gets the event."""
        service = BroadcastService()
        target, other = make_client(), make_client()
        await service.add(other)

        await service.send_to(target, EventType.CONNECTED, "Connected to Intellyo")

        assert json.loads(target.send_text.await_args.args[0]) == {
            "type": "connected", "message": "Connected to Intellyo"
        }
        other.send_text.assert_not_awaited()


class TestNotifySafely:
    """Test the fire-and-forget notifier wrapper."""

    @pytest.mark.asyncio
    async def test_none_notifier(self):
        """Test no notifier is a no-op."""
        await notify_safely(None, EventType.STATUS, "ignored")

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self):
        """Test a raising notifier does not propagate."""
        notify = AsyncMock(side_effect=RuntimeError("down"))

        await notify_safely(notify, EventType.STATUS, "msg")

        notify.assert_awaited_once_with(EventType.STATUS, "msg")
