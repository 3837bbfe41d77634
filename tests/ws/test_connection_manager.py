"""Tests for the WebSocket connection manager and pub/sub bridge."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from movibeers.ws.bridge import PubSubBridge
from movibeers.ws.manager import ConnectionManager


def _socket() -> AsyncMock:
    return AsyncMock()


class TestConnectionManager:
    @pytest.mark.asyncio
    async def test_connect_and_send(self):
        mgr = ConnectionManager()
        ws1, ws2 = _socket(), _socket()
        assert await mgr.connect(ws1, "c1", "alice") is True
        await mgr.connect(ws2, "c2", "alice")

        sent = await mgr.send_to_user("alice", {"type": "notification"})

        assert sent == 2
        ws1.send_text.assert_awaited_once_with(json.dumps({"type": "notification"}))
        assert mgr.get_stats() == {"total_connections": 2, "unique_users": 1}

    @pytest.mark.asyncio
    async def test_limit_per_user(self):
        mgr = ConnectionManager(max_per_user=1)
        await mgr.connect(_socket(), "c1", "alice")
        rejected = _socket()

        assert await mgr.connect(rejected, "c2", "alice") is False
        rejected.close.assert_awaited_once()
        assert rejected.close.await_args.kwargs["code"] == 4008
        assert mgr.user_connection_count("alice") == 1

    @pytest.mark.asyncio
    async def test_disconnect(self):
        mgr = ConnectionManager()
        await mgr.connect(_socket(), "c1", "alice")
        await mgr.disconnect("c1")
        await mgr.disconnect("c1")
        assert mgr.connection_count == 0
        assert await mgr.send_to_user("alice", {}) == 0

    @pytest.mark.asyncio
    async def test_broken_socket_dropped(self):
        mgr = ConnectionManager()
        broken = _socket()
        broken.send_text.side_effect = RuntimeError("closed")
        await mgr.connect(broken, "c1", "alice")

        assert await mgr.send_to_user("alice", {"type": "x"}) == 0
        assert mgr.user_connection_count("alice") == 0


class TestPubSubBridge:
    @pytest.mark.asyncio
    async def test_routes_user_channel(self):
        mgr = ConnectionManager()
        ws = _socket()
        await mgr.connect(ws, "c1", "alice")
        bridge = PubSubBridge(AsyncMock(), connections=mgr)

        message = {
            "type": "pmessage",
            "channel": b"ws:user:alice",
            "data": json.dumps({"event": "notification", "data": {"message": "bob liked your post"}}).encode(),
        }
        assert await bridge.handle_message(message) == 1
        delivered = json.loads(ws.send_text.await_args.args[0])
        assert delivered == {"type": "notification", "payload": {"message": "bob liked your post"}}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            {"type": "psubscribe", "channel": "ws:user:*", "data": 1},
            {"type": "pmessage", "channel": "other:alice", "data": "{}"},
            {"type": "pmessage", "channel": "ws:user:alice", "data": "not json"},
        ],
    )
    async def test_ignored_messages(self, message):
        mgr = ConnectionManager()
        ws = _socket()
        await mgr.connect(ws, "c1", "alice")
        bridge = PubSubBridge(AsyncMock(), connections=mgr)

        assert await bridge.handle_message(message) == 0
        ws.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listen_loop_survives_a_failing_message(self):
        mgr = ConnectionManager()
        ws = _socket()
        await mgr.connect(ws, "c1", "alice")

        pubsub = AsyncMock()
        redis = MagicMock()
        redis.pubsub.return_value = pubsub
        bridge = PubSubBridge(redis, connections=mgr)

        queued = [
            # Valid JSON that is not an object fails inside handle_message.
            {"type": "pmessage", "channel": b"ws:user:alice", "data": b"[1]"},
            {
                "type": "pmessage",
                "channel": b"ws:user:alice",
                "data": json.dumps({"event": "notification", "data": {"message": "second"}}).encode(),
            },
        ]

        async def next_message(**kwargs):
            if queued:
                return queued.pop(0)
            await bridge.stop()
            return None

        pubsub.get_message.side_effect = next_message

        await bridge.start()

        delivered = json.loads(ws.send_text.await_args.args[0])
        assert delivered == {"type": "notification", "payload": {"message": "second"}}
        pubsub.punsubscribe.assert_awaited_once()
        pubsub.aclose.assert_awaited_once()
