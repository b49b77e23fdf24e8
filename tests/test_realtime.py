"""Tests for change notifications."""

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from gastro.core.security import create_access_token
from gastro.main import changes_websocket
from gastro.services.realtime import ChangeNotifier, notifier


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def close(self, code: int = 1000):
        self.closed_with = code

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection gone")
        self.sent.append(message)


class TestChangeNotifier:
    def test_notifies_only_the_restaurant_channel(self):
        notifier = ChangeNotifier()
        mine, theirs = FakeWebSocket(), FakeWebSocket()

        async def scenario():
            await notifier.connect(mine, 1)
            await notifier.connect(theirs, 2)
            await notifier.notify(1, "orders", "items")

        asyncio.run(scenario())

        assert mine.accepted
        assert [m["table"] for m in mine.sent] == ["orders", "items"]
        assert all(m["event"] == "changed" for m in mine.sent)
        assert theirs.sent == []

    def test_broken_connection_is_dropped(self):
        notifier = ChangeNotifier()
        broken = FakeWebSocket(fail=True)

        async def scenario():
            await notifier.connect(broken, 1)
            await notifier.notify(1, "orders")

        asyncio.run(scenario())
        assert notifier.connection_count(1) == 0

    def test_channel_capacity(self):
        notifier = ChangeNotifier()
        notifier.MAX_CONNECTIONS_PER_CHANNEL = 1
        first, second = FakeWebSocket(), FakeWebSocket()

        async def scenario():
            return await notifier.connect(first, 1), await notifier.connect(second, 1)

        assert asyncio.run(scenario()) == (True, False)
        assert not second.accepted


class TestWebSocketEndpoint:
    def test_invalid_token_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/changes?token=bad") as websocket:
                websocket.receive_json()

    def test_failed_receive_releases_the_slot(self):
        class DroppingWebSocket(FakeWebSocket):
            async def receive_text(self):
                raise RuntimeError("transport error")

        websocket = DroppingWebSocket()
        token = create_access_token(data={"sub": "9", "role": "staff", "restaurant_id": 77})

        with pytest.raises(RuntimeError):
            asyncio.run(changes_websocket(websocket, token=token))

        assert websocket.accepted
        assert notifier.connection_count(77) == 0
