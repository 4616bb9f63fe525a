from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable

import redis.asyncio as redis

from booking_engine.booking.errors import BookingEngineError, NotFoundError, ValidationError
from booking_engine.booking.fsm import BookingContext, BookingState
from booking_engine.booking.hotel_client import HotelApiClient
from booking_engine.booking.inventory import InventoryStore, RefreshResult, RefreshTrigger
from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import (
    BookingConfirmation,
    Hotel,
    PaymentProof,
    PricingTotals,
    RoomEvent,
    RoomRecord,
    SelectionEntry,
    StayWindow,
)
from booking_engine.booking.submission import generate_confirmation_id
from booking_engine.core.config import Settings, get_settings
from booking_engine.core.logging import setup_logging
from booking_engine.notifications import Notification, NotificationSink
from booking_engine.realtime.channel import RedisRoomEventChannel, RoomEventChannel
from booking_engine.realtime.listener import InvalidationListener
from booking_engine.realtime.redis_client import close_redis_client, create_redis_client
from booking_engine.services.booking_flow_service import BookingFlowService

logger = logging.getLogger(__name__)


class BookingEngine:
    """Движок бронирования для одного отеля.

    Собирает вместе клиент API, снимок инвентаря, выбор номеров, слушателя
    push-событий и FSM оформления. Вся конфигурация приходит через
    `Settings`; глобального состояния нет. Интерфейс вызывает только
    публичные методы и рисует то, что они возвращают.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: HotelApiClient | None = None,
        channel: RoomEventChannel | None = None,
        notifications: NotificationSink | None = None,
        id_factory: Callable[[], str] = generate_confirmation_id,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or HotelApiClient(settings)

        self._redis: redis.Redis | None = None
        if channel is None:
            self._redis = create_redis_client(settings)
            channel = RedisRoomEventChannel(
                self._redis, prefix=settings.room_events_channel_prefix
            )

        self.notifications = notifications or NotificationSink()
        self.inventory = InventoryStore(self._client)
        self.ledger = SelectionLedger()
        self._id_factory = id_factory
        self.flow = self._new_flow()
        self.listener = InvalidationListener(channel, self.notifications, self._on_invalidate)

        self._hotel: Hotel | None = None
        self._hotel_id: str | None = None
        self._hotel_error: str | None = None
        self._stay = StayWindow()
        self._background: set[asyncio.Task[RefreshResult]] = set()

    async def __aenter__(self) -> BookingEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---- контекст отеля -------------------------------------------------

    @property
    def hotel(self) -> Hotel | None:
        return self._hotel

    @property
    def hotel_id(self) -> str | None:
        return self._hotel_id

    @property
    def hotel_error(self) -> str | None:
        return self._hotel_error

    @property
    def stay(self) -> StayWindow:
        return self._stay

    async def open_hotel(self, hotel_path: str | None) -> Hotel | None:
        """Находит отель по пути и открывает для него контекст.

        Если отель не найден или API недоступен, используется `HOTEL_ID`
        из настроек; без него ошибка пробрасывается дальше.
        """
        hotel: Hotel | None = None
        self._hotel_error = None
        if hotel_path:
            try:
                hotel = await self._client.fetch_hotel(hotel_path)
            except BookingEngineError as exc:
                self._hotel_error = str(exc)
                logger.warning("Hotel lookup for path %r failed: %s", hotel_path, exc)
                self.notifications.error(
                    "Error", "Failed to load hotel details. Please try again."
                )
                if not self._settings.hotel_id:
                    raise
        else:
            self._hotel_error = "Hotel path not provided"

        hotel_id = hotel.hotel_id if hotel else self._settings.hotel_id
        if not hotel_id:
            raise NotFoundError("Hotel ID not available")
        self._hotel = hotel
        await self.use_hotel(hotel_id)
        return hotel

    async def use_hotel(self, hotel_id: str) -> RefreshResult:
        if hotel_id != self._hotel_id:
            if self._hotel_id is not None:
                logger.info("Switching hotel context %s -> %s", self._hotel_id, hotel_id)
            await self._cancel_background()
            self.inventory.reset()
            self.ledger.clear()
            self.flow = self._new_flow()
            self._hotel_id = hotel_id
        await self.listener.start(hotel_id)
        return await self.inventory.refresh(hotel_id, self._stay, trigger=RefreshTrigger.MANUAL)

    async def aclose(self) -> None:
        await self.listener.stop()
        await self._cancel_background()
        self.inventory.cancel_pending()
        if self._owns_client:
            await self._client.close()
        if self._redis is not None:
            await close_redis_client(self._redis)
            self._redis = None

    # ---- даты и инвентарь -----------------------------------------------

    async def set_stay_window(
        self, check_in: date | str | None, check_out: date | str | None
    ) -> RefreshResult | None:
        self._stay = StayWindow.of(check_in, check_out)
        if self._hotel_id is None:
            return None
        return await self.inventory.refresh(
            self._hotel_id, self._stay, trigger=RefreshTrigger.STAY_CHANGE
        )

    async def check_availability(self) -> RefreshResult:
        if not self._stay.is_complete:
            self.notifications.error(
                "Please select dates", "Check-in and check-out dates are required"
            )
            raise ValidationError({"dates": "Check-in and check-out dates are required"})
        self.notifications.notify(
            "Checking availability...", "Updating room availability for your dates"
        )
        return await self.refresh()

    async def refresh(self) -> RefreshResult:
        hotel_id = self._require_hotel()
        return await self.inventory.refresh(hotel_id, self._stay, trigger=RefreshTrigger.MANUAL)

    def available_rooms(self) -> list[RoomRecord]:
        return self.inventory.available_rooms()

    def sold_out_rooms(self) -> list[RoomRecord]:
        return self.inventory.sold_out_rooms()

    def unavailable_rooms(self) -> list[RoomRecord]:
        return self.inventory.unavailable_rooms()

    # ---- выбор и цена ---------------------------------------------------

    def select_room(
        self,
        room_id: str,
        *,
        room_count: int,
        adults: int = 0,
        child_age_5_to_12: int = 0,
        child_below_5: int = 0,
    ) -> SelectionEntry:
        entry = SelectionEntry(
            room_id=room_id,
            room_count=room_count,
            adults=adults,
            child_age_5_to_12=child_age_5_to_12,
            child_below_5=child_below_5,
        )
        self.ledger.set_selection(room_id, entry)
        return entry

    @property
    def nights(self) -> int:
        return self._stay.nights

    @property
    def totals(self) -> PricingTotals:
        return self.flow.totals(self._stay)

    # ---- оформление -----------------------------------------------------

    @property
    def booking(self) -> BookingContext:
        return self.flow.context

    @property
    def state(self) -> BookingState:
        return self.flow.state

    def book_now(self) -> RoomRecord | None:
        """Выбор номеров подтверждён: переходим к данным гостя."""
        self.flow.choose_rooms(self._stay)
        primary = self.flow.proceed_to_guest_info()
        return self.inventory.get(primary)

    def update_guest_info(self, **fields: str) -> None:
        self.flow.update_guest_info(**fields)

    def set_payment_method(self, method: str) -> None:
        self.flow.set_payment_method(method)

    def attach_payment_proof(self, proof: PaymentProof | None) -> None:
        self.flow.attach_payment_proof(proof)

    async def submit(self) -> BookingConfirmation:
        hotel_id = self._require_hotel()
        return await self.flow.submit(hotel_id=hotel_id, stay=self._stay)

    def start_new_booking(self) -> None:
        self.flow.reset()

    def drain_notifications(self) -> list[Notification]:
        return self.notifications.drain()

    # ---- push-события ---------------------------------------------------

    def _on_invalidate(self, event: RoomEvent) -> None:
        if event.hotel_id != self._hotel_id:
            return
        self.inventory.mark_stale()
        task = asyncio.ensure_future(
            self.inventory.refresh(
                event.hotel_id, self._stay, trigger=RefreshTrigger.INVALIDATION
            )
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_refreshes(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _cancel_background(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()

    # ---- внутреннее -----------------------------------------------------

    def _new_flow(self) -> BookingFlowService:
        return BookingFlowService(
            self._settings,
            self.inventory,
            self.ledger,
            self._client,
            self.notifications,
            id_factory=self._id_factory,
        )

    def _require_hotel(self) -> str:
        if self._hotel_id is None:
            raise NotFoundError("Hotel ID not available")
        return self._hotel_id


def create_engine(settings: Settings | None = None) -> BookingEngine:
    """Точка сборки: настройки из окружения, логирование, Redis-канал."""
    settings = settings or get_settings()
    setup_logging(settings)
    logger.info("Booking engine for %s (env=%s)", settings.api_root, settings.app_env)
    return BookingEngine(settings)


__all__ = ["BookingEngine", "create_engine"]
