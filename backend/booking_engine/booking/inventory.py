from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, Sequence

from booking_engine.booking.errors import BookingEngineError
from booking_engine.booking.models import AVAILABLE, RoomRecord, StayWindow
from booking_engine.booking.placeholder import placeholder_rooms

logger = logging.getLogger(__name__)


class RoomFetcher(Protocol):
    async def fetch_rooms(self, hotel_id: str, stay: StayWindow) -> list[RoomRecord]:
        ...


class RefreshTrigger(Enum):
    STAY_CHANGE = "stay_change"
    INVALIDATION = "invalidation"
    MANUAL = "manual"


@dataclass(frozen=True)
class RefreshResult:
    rooms: tuple[RoomRecord, ...]
    error: BookingEngineError | None = None
    is_placeholder: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class InventoryStore:
    """Последний известный снимок номеров отеля для выбранных дат.

    Снимок заменяется целиком. Пока идёт запрос, наружу отдаётся
    предыдущий снимок. Параллельные запросы одного источника с теми же
    аргументами склеиваются в один; запросы разных источников не
    отменяют друг друга, и побеждает ответ, пришедший последним.
    """

    def __init__(
        self,
        fetcher: RoomFetcher,
        *,
        placeholder_factory: Callable[[str | None], Sequence[RoomRecord]] = placeholder_rooms,
    ) -> None:
        self._fetcher = fetcher
        self._placeholder_factory = placeholder_factory
        self._rooms: tuple[RoomRecord, ...] = ()
        self._is_placeholder = False
        self._has_real_snapshot = False
        self._stale = False
        self._last_error: BookingEngineError | None = None
        self._updated_at: float | None = None
        self._inflight: dict[tuple[RefreshTrigger, str, StayWindow], asyncio.Task[RefreshResult]] = {}

    # ---- чтение ---------------------------------------------------------

    @property
    def rooms(self) -> tuple[RoomRecord, ...]:
        return self._rooms

    @property
    def is_placeholder(self) -> bool:
        return self._is_placeholder

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def is_refreshing(self) -> bool:
        return any(not task.done() for task in self._inflight.values())

    @property
    def last_error(self) -> BookingEngineError | None:
        return self._last_error

    @property
    def updated_at(self) -> float | None:
        return self._updated_at

    def get(self, room_id: str) -> RoomRecord | None:
        return next((room for room in self._rooms if room.room_id == room_id), None)

    def available_rooms(self) -> list[RoomRecord]:
        return [room for room in self._rooms if room.is_bookable]

    def sold_out_rooms(self) -> list[RoomRecord]:
        return [room for room in self._rooms if room.is_sold_out]

    def unavailable_rooms(self) -> list[RoomRecord]:
        return [room for room in self._rooms if room.availability != AVAILABLE]

    # ---- обновление -----------------------------------------------------

    def mark_stale(self) -> None:
        self._stale = True

    def reset(self) -> None:
        """Сбрасывает снимок при смене отеля."""
        self.cancel_pending()
        self._rooms = ()
        self._is_placeholder = False
        self._has_real_snapshot = False
        self._stale = False
        self._last_error = None
        self._updated_at = None

    def cancel_pending(self) -> None:
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()

    async def refresh(
        self,
        hotel_id: str,
        stay: StayWindow,
        *,
        trigger: RefreshTrigger = RefreshTrigger.MANUAL,
    ) -> RefreshResult:
        key = (trigger, hotel_id, stay)
        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._fetch(hotel_id, stay, trigger))
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.debug("Joining in-flight %s refresh for hotel %s", trigger.value, hotel_id)
        return await asyncio.shield(task)

    def _forget(self, key: tuple[RefreshTrigger, str, StayWindow], task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _fetch(self, hotel_id: str, stay: StayWindow, trigger: RefreshTrigger) -> RefreshResult:
        try:
            rooms = await self._fetcher.fetch_rooms(hotel_id, stay)
        except BookingEngineError as exc:
            self._last_error = exc
            if not self._has_real_snapshot:
                self._rooms = tuple(self._placeholder_factory(hotel_id))
                self._is_placeholder = True
                logger.warning(
                    "Rooms fetch for hotel %s failed (%s), serving placeholder catalog",
                    hotel_id,
                    exc,
                )
            else:
                logger.warning(
                    "Rooms fetch for hotel %s failed (%s), keeping last snapshot",
                    hotel_id,
                    exc,
                )
            return RefreshResult(rooms=self._rooms, error=exc, is_placeholder=self._is_placeholder)

        self._rooms = tuple(rooms)
        self._is_placeholder = False
        self._has_real_snapshot = True
        self._stale = False
        self._last_error = None
        self._updated_at = time.time()
        logger.info(
            "Inventory refreshed: hotel=%s trigger=%s rooms=%d",
            hotel_id,
            trigger.value,
            len(self._rooms),
        )
        return RefreshResult(rooms=self._rooms)


__all__ = ["InventoryStore", "RefreshResult", "RefreshTrigger", "RoomFetcher"]
