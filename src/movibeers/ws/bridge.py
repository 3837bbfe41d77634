"""Bridges Redis pub/sub to WebSocket clients.

Pattern-subscribes to ``ws:user:*``, where the notification dispatcher
publishes, and routes each message to that user's open sockets.
"""

from __future__ import annotations

import asyncio
import json

import redis.asyncio as aioredis
import structlog

from movibeers.ws.manager import ConnectionManager, manager

logger = structlog.get_logger()

USER_CHANNEL_PATTERN = "ws:user:*"
USER_CHANNEL_PREFIX = "ws:user:"


class PubSubBridge:
    """Subscribes to Redis pub/sub and pushes messages to WebSocket clients."""

    def __init__(self, redis_client: aioredis.Redis, connections: ConnectionManager = manager) -> None:
        self.redis = redis_client
        self.connections = connections
        self._running = False

    async def handle_message(self, message: dict) -> int:
        """Route one pub/sub message. Returns the number of sockets reached."""
        if message.get("type") != "pmessage":
            return 0

        channel = message.get("channel", "")
        if isinstance(channel, bytes):
            channel = channel.decode()
        if not channel.startswith(USER_CHANNEL_PREFIX):
            return 0
        user_id = channel[len(USER_CHANNEL_PREFIX) :]

        try:
            data = message.get("data", b"")
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("pubsub_invalid_message", channel=channel)
            return 0

        event_type = payload.get("event", "notification")
        sent = await self.connections.send_to_user(
            user_id,
            {"type": event_type, "payload": payload.get("data", payload)},
        )
        if sent > 0:
            logger.debug("user_notification_sent", user_id=user_id, event_type=event_type, recipients=sent)
        return sent

    async def start(self) -> None:
        """Listen until ``stop`` is called or the task is cancelled."""
        self._running = True
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(USER_CHANNEL_PATTERN)
        logger.info("pubsub_bridge_started", patterns=[USER_CHANNEL_PATTERN])

        try:
            while self._running:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    continue
                try:
                    await self.handle_message(message)
                except Exception:
                    logger.exception("pubsub_message_failed", channel=message.get("channel"))
        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()
            logger.info("pubsub_bridge_stopped")

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False
