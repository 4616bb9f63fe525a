from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import redis.asyncio as redis

from booking_engine.booking.models import RoomEvent

logger = logging.getLogger(__name__)


def decode_room_event(data: Any) -> RoomEvent | None:
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8", errors="replace")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Dropping non-JSON room event: %r", data)
            return None
    event = RoomEvent.from_message(data)
    if event is None:
        logger.debug("Ignoring unsupported push message: %r", data)
    return event


class RoomEventSubscription:
    """Открытая подписка: поток событий до закрытия."""

    def events(self) -> AsyncIterator[RoomEvent]:
        raise NotImplementedError

    async def aclose(self) -> None:
        raise NotImplementedError


class RoomEventChannel:
    async def subscribe(self, hotel_id: str) -> RoomEventSubscription:
        raise NotImplementedError


# ---- in-memory -------------------------------------------------------------


class _QueueSubscription(RoomEventSubscription):
    def __init__(self, owner: InMemoryRoomEventChannel, hotel_id: str) -> None:
        self._owner = owner
        self.hotel_id = hotel_id
        self._queue: asyncio.Queue[RoomEvent | None] = asyncio.Queue()
        self.closed = False

    def put(self, event: RoomEvent) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[RoomEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._owner._detach(self)
        self._queue.put_nowait(None)


class InMemoryRoomEventChannel(RoomEventChannel):
    """Широковещательный канал в памяти: каждое событие получают все подписчики."""

    def __init__(self) -> None:
        self._subscriptions: list[_QueueSubscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, hotel_id: str) -> RoomEventSubscription:
        subscription = _QueueSubscription(self, hotel_id)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, message: RoomEvent | dict[str, Any] | str) -> None:
        event = message if isinstance(message, RoomEvent) else decode_room_event(message)
        if event is None:
            return
        for subscription in list(self._subscriptions):
            subscription.put(event)

    def _detach(self, subscription: _QueueSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


# ---- redis -----------------------------------------------------------------


class _RedisSubscription(RoomEventSubscription):
    def __init__(self, pubsub: redis.client.PubSub, channel: str, poll_interval: float) -> None:
        self._pubsub = pubsub
        self._channel = channel
        self._poll_interval = poll_interval
        self._closed = False

    async def events(self) -> AsyncIterator[RoomEvent]:
        while not self._closed:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self._poll_interval
                )
            except (redis.ConnectionError, RuntimeError):
                if self._closed:
                    return
                raise
            if message is None or message.get("type") != "message":
                continue
            event = decode_room_event(message.get("data"))
            if event is not None:
                yield event

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self._channel)
        except redis.RedisError as exc:
            logger.warning("Failed to unsubscribe from %s: %s", self._channel, exc)
        finally:
            await self._pubsub.aclose()


class RedisRoomEventChannel(RoomEventChannel):
    """Pub/sub канал Redis, по одному каналу на отель."""

    def __init__(
        self,
        redis_client: redis.Redis,
        *,
        prefix: str = "rooms:hotel:",
        poll_interval: float = 1.0,
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._poll_interval = poll_interval

    def channel_name(self, hotel_id: str) -> str:
        return f"{self._prefix}{hotel_id}"

    async def subscribe(self, hotel_id: str) -> RoomEventSubscription:
        pubsub = self._redis.pubsub()
        channel = self.channel_name(hotel_id)
        await pubsub.subscribe(channel)
        logger.info("Subscribed to room events channel %s", channel)
        return _RedisSubscription(pubsub, channel, self._poll_interval)

    async def publish(self, event: RoomEvent) -> int:
        payload = json.dumps(event.to_message(), ensure_ascii=False)
        return await self._redis.publish(self.channel_name(event.hotel_id), payload)


__all__ = [
    "InMemoryRoomEventChannel",
    "RedisRoomEventChannel",
    "RoomEventChannel",
    "RoomEventSubscription",
    "decode_room_event",
]
