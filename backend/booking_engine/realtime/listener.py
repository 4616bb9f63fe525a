from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Callable

from booking_engine.booking.models import RoomEvent, RoomEventKind
from booking_engine.notifications import NotificationSink
from booking_engine.realtime.channel import RoomEventChannel, RoomEventSubscription

logger = logging.getLogger(__name__)

EVENT_NOTIFICATIONS: dict[RoomEventKind, tuple[str, str]] = {
    RoomEventKind.CREATED: ("New room added!", "Room inventory has been updated."),
    RoomEventKind.UPDATED: ("Room updated!", "Room information has been updated."),
    RoomEventKind.DELETED: ("Room removed!", "A room has been removed from inventory."),
}


class InvalidationListener:
    """Слушает события номеров одного отеля и инвалидирует инвентарь.

    Каждое подходящее событие даёт ровно одно уведомление и один вызов
    `on_invalidate`. События обрабатываются одной задачей в порядке
    поступления. Остановка закрывает подписку и дожидается задачи.
    """

    def __init__(
        self,
        channel: RoomEventChannel,
        notifications: NotificationSink,
        on_invalidate: Callable[[RoomEvent], None],
        *,
        shutdown_timeout: float = 1.0,
    ) -> None:
        self._channel = channel
        self._notifications = notifications
        self._on_invalidate = on_invalidate
        self._shutdown_timeout = shutdown_timeout
        self._hotel_id: str | None = None
        self._subscription: RoomEventSubscription | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def hotel_id(self) -> str | None:
        return self._hotel_id

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> InvalidationListener:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self, hotel_id: str) -> None:
        if self._hotel_id == hotel_id and self.is_running:
            return
        await self.stop()

        subscription = await self._channel.subscribe(hotel_id)
        self._hotel_id = hotel_id
        self._subscription = subscription
        self._task = asyncio.create_task(
            self._consume(subscription, hotel_id), name=f"room-events:{hotel_id}"
        )
        logger.info("Room event listener started for hotel %s", hotel_id)

    async def stop(self) -> None:
        subscription, task = self._subscription, self._task
        hotel_id = self._hotel_id
        self._subscription = None
        self._task = None
        self._hotel_id = None

        if subscription is not None:
            await subscription.aclose()
        if task is not None:
            done, _ = await asyncio.wait({task}, timeout=self._shutdown_timeout)
            if not done:
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            elif not task.cancelled() and task.exception() is not None:
                logger.error(
                    "Room event listener for hotel %s ended with error: %s",
                    hotel_id,
                    task.exception(),
                )
        if subscription is not None or task is not None:
            logger.info("Room event listener stopped for hotel %s", hotel_id)

    async def _consume(self, subscription: RoomEventSubscription, hotel_id: str) -> None:
        async for event in subscription.events():
            if event.hotel_id != hotel_id:
                logger.debug(
                    "Skipping %s for hotel %s (listening to %s)",
                    event.kind.value,
                    event.hotel_id,
                    hotel_id,
                )
                continue
            self._handle(event)

    def _handle(self, event: RoomEvent) -> None:
        title, description = EVENT_NOTIFICATIONS[event.kind]
        self._notifications.notify(title, description)
        logger.info(
            "Room event %s hotel=%s room=%s", event.kind.value, event.hotel_id, event.room_id
        )
        try:
            self._on_invalidate(event)
        except Exception:
            logger.exception("Inventory invalidation failed for %s", event.kind.value)


__all__ = ["EVENT_NOTIFICATIONS", "InvalidationListener"]
