"""
Push delivery of new messages to open thread views.

ThreadBroker fans messages out to in-process subscribers. PostgresThreadBroker
routes publishes through LISTEN/NOTIFY so every app instance behind the load
balancer sees every message.
"""

import asyncio
import json
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Set

import asyncpg  # type: ignore

from homesocial.errors import BackendError
from homesocial.services.social_service import serialize_message

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

NOTIFY_CHANNEL = "thread_messages"


class ThreadBroker:
    def __init__(self):
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscriber_count(self, thread_id) -> int:
        return len(self._subscribers.get(str(thread_id), ()))

    @asynccontextmanager
    async def subscribe(self, thread_id) -> AsyncIterator[asyncio.Queue]:
        """Queue receiving every message published to the thread until the block exits."""
        key = str(thread_id)
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[key].add(queue)
        logger.info(f"Subscribed to thread {key} ({len(self._subscribers[key])} open)")
        try:
            yield queue
        finally:
            self._subscribers[key].discard(queue)
            if not self._subscribers[key]:
                del self._subscribers[key]
            logger.info(f"Unsubscribed from thread {key}")

    async def publish(self, message: dict) -> None:
        self.dispatch(message)

    def dispatch(self, message: dict) -> None:
        for queue in list(self._subscribers.get(str(message["thread_id"]), ())):
            queue.put_nowait(message)


class PostgresThreadBroker(ThreadBroker):
    """
    Fan-out across app instances.

    Subscribers on the publishing instance get the message directly. Other
    instances get a notification carrying only ids (NOTIFY payloads are capped
    at 8000 bytes) and load the row themselves.
    """

    def __init__(self, store):
        super().__init__()
        self.store = store
        self.pool = store.pool
        self.instance_id = uuid.uuid4().hex
        self._listen_conn: asyncpg.Connection | None = None

    async def start(self) -> None:
        self._listen_conn = await self.pool.acquire()
        await self._listen_conn.add_listener(NOTIFY_CHANNEL, self._on_notify)
        logger.info(f"Listening on channel {NOTIFY_CHANNEL}")

    async def stop(self) -> None:
        if self._listen_conn is None:
            return
        try:
            await self._listen_conn.remove_listener(NOTIFY_CHANNEL, self._on_notify)
        finally:
            await self.pool.release(self._listen_conn)
            self._listen_conn = None
            logger.info(f"Stopped listening on channel {NOTIFY_CHANNEL}")

    async def publish(self, message: dict) -> None:
        self.dispatch(message)

        notification = {
            "origin": self.instance_id,
            "thread_id": str(message["thread_id"]),
            "id": str(message["id"]),
        }
        # The message row is already committed; a failed notify only delays
        # delivery on other instances until the client reloads the thread.
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("SELECT pg_notify($1, $2)", NOTIFY_CHANNEL, json.dumps(notification))
        except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to notify thread {message['thread_id']}: {e}", exc_info=True)

    async def _on_notify(self, connection, pid, channel, payload) -> None:
        try:
            notification = json.loads(payload)
            origin, message_id = notification["origin"], notification["id"]
        except (ValueError, KeyError, TypeError):
            logger.error(f"Ignoring malformed notification on {channel}: {payload!r}")
            return
        if origin == self.instance_id:
            return

        try:
            row = await self.store.get_message(message_id)
        except BackendError as e:
            logger.error(f"Failed to load message {message_id} for delivery: {e}")
            return
        if row is None:
            logger.warning(f"Notified message {message_id} does not exist")
            return
        self.dispatch(serialize_message(row))
