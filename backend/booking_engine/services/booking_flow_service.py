from __future__ import annotations

import asyncio
import logging
from typing import Callable, Mapping, Protocol

from booking_engine.booking.errors import (
    GENERIC_BOOKING_ERROR,
    NETWORK_FAILURE_MESSAGE,
    BookingEngineError,
    ValidationError,
)
from booking_engine.booking.fsm import BookingContext, BookingState, initial_booking_context
from booking_engine.booking.inventory import InventoryStore
from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import (
    GUEST_FIELDS,
    BookingConfirmation,
    PaymentProof,
    PricingTotals,
    StayWindow,
)
from booking_engine.booking.pricing import calculate_totals
from booking_engine.booking.schemas import SubmissionResponse
from booking_engine.booking.submission import build_submission, generate_confirmation_id
from booking_engine.core.config import Settings
from booking_engine.notifications import NotificationSink

logger = logging.getLogger(__name__)

REQUIRED_FIELD = "This field is required"


class BookingSubmitter(Protocol):
    async def submit_booking(
        self,
        fields: Mapping[str, str],
        files: Mapping[str, tuple[str, bytes, str]],
    ) -> SubmissionResponse:
        ...


class BookingFlowService:
    """Сервис для управления FSM оформления брони.

    Держит контекст оформления (гость, оплата, подтверждение) и проводит
    его через состояния от выбора номеров до подтверждения. Выбор номеров
    и инвентарь передаются извне и здесь только читаются; очищается выбор
    исключительно после успешного подтверждения.
    """

    def __init__(
        self,
        settings: Settings,
        inventory: InventoryStore,
        ledger: SelectionLedger,
        submitter: BookingSubmitter,
        notifications: NotificationSink,
        *,
        id_factory: Callable[[], str] = generate_confirmation_id,
    ) -> None:
        self._settings = settings
        self._inventory = inventory
        self._ledger = ledger
        self._submitter = submitter
        self._notifications = notifications
        self._id_factory = id_factory
        self._context = initial_booking_context()

    @property
    def context(self) -> BookingContext:
        return self._context

    @property
    def state(self) -> BookingState:
        return self._context.state

    def totals(self, stay: StayWindow) -> PricingTotals:
        return calculate_totals(
            self._inventory.rooms,
            self._ledger,
            stay.nights,
            tax_rate=self._settings.tax_rate,
        )

    # ---- выбор номеров --------------------------------------------------

    def choose_rooms(self, stay: StayWindow) -> None:
        self._context.require(BookingState.IDLE)
        errors: dict[str, str] = {}
        if not self._ledger.has_any_selection():
            errors["rooms"] = "You need to select at least one room to proceed"
        if not stay.is_complete:
            errors["dates"] = "Check-in and check-out dates are required"
        if errors:
            self._reject("Please select rooms and dates", errors)
        self._context.transition(BookingState.ROOMS_CHOSEN)
        logger.info("BOOKING_FLOW rooms chosen ctx=%s", self._context.compact())

    def proceed_to_guest_info(self) -> str:
        """Переходит к данным гостя; первый выбранный номер становится основным.

        Основной номер нужен только для отображения, в заявку уходит
        весь выбор целиком.
        """
        self._context.require(BookingState.ROOMS_CHOSEN)
        primary = self._ledger.first_selected_room_id()
        if primary is None:
            self._reject(
                "Please select rooms",
                {"rooms": "You need to select at least one room to proceed"},
            )
        self._context.primary_room_id = primary
        self._context.transition(BookingState.GUEST_INFO_PENDING)
        self._notifications.notify(
            "Rooms selected!",
            "Please fill in your details below to complete the booking.",
        )
        return primary

    def cancel(self) -> None:
        """Возвращает к выбору номеров, не трогая введённые данные."""
        self._context.require(BookingState.ROOMS_CHOSEN, BookingState.GUEST_INFO_PENDING)
        self._context.primary_room_id = None
        self._context.transition(BookingState.IDLE)

    # ---- данные гостя и оплата ------------------------------------------

    def update_guest_info(self, **fields: str) -> None:
        self._ensure_editable()
        unknown = sorted(set(fields) - set(GUEST_FIELDS))
        if unknown:
            raise ValidationError({name: "Unknown guest field" for name in unknown})
        for name, value in fields.items():
            setattr(self._context.guest, name, (value or "").strip())

    def set_payment_method(self, method: str) -> None:
        self._ensure_editable()
        self._context.payment_method = (method or "").strip()

    def attach_payment_proof(self, proof: PaymentProof | None) -> None:
        self._ensure_editable()
        if proof is not None and not proof.content:
            raise ValidationError({"payment_proof": "Payment proof file is empty"})
        self._context.payment_proof = proof

    def validate_submission(self) -> dict[str, str]:
        errors = {name: REQUIRED_FIELD for name in self._context.guest.missing_fields()}
        if self._context.payment_proof is None:
            errors["payment_proof"] = "Payment proof image is required to confirm the booking"
        if self._context.primary_room_id is None or not self._ledger.has_any_selection():
            errors["rooms"] = "You need to select a room before making payment"
        else:
            conflicts = self._ledger.conflicts(self._inventory.rooms)
            if conflicts:
                errors["rooms"] = "; ".join(
                    f"{room_id}: {reason}" for room_id, reason in conflicts.items()
                )
        return errors

    # ---- отправка -------------------------------------------------------

    def retry(self) -> None:
        self._context.require(BookingState.FAILED)
        self._context.transition(BookingState.GUEST_INFO_PENDING)

    async def submit(self, *, hotel_id: str, stay: StayWindow) -> BookingConfirmation:
        self._context.require(BookingState.GUEST_INFO_PENDING, BookingState.FAILED)

        errors = self.validate_submission()
        if errors:
            self._reject("Please complete your booking details", errors)
        if self._context.state is BookingState.FAILED:
            self.retry()

        context = self._context
        context.primary_room_id = self._resolve_primary_room()
        room = self._inventory.get(context.primary_room_id)  # type: ignore[arg-type]
        totals = self.totals(stay)
        payment_method = context.payment_method or self._settings.default_payment_method
        provisional_id = self._id_factory()
        package = build_submission(
            hotel_id=hotel_id,
            stay=stay,
            guest=context.guest,
            room=room,  # type: ignore[arg-type]
            ledger=self._ledger,
            totals=totals,
            payment_method=payment_method,
            payment_proof=context.payment_proof,  # type: ignore[arg-type]
            currency=self._settings.currency,
            booking_source=self._settings.booking_source,
            client_environment=self._settings.client_environment,
            provisional_id=provisional_id,
        )

        context.provisional_id = provisional_id
        context.error = None
        context.error_kind = None
        context.transition(BookingState.SUBMITTING)
        logger.info(
            "BOOKING_FLOW submitting hotel=%s provisional=%s total=%s",
            hotel_id,
            provisional_id,
            totals.total,
        )

        try:
            response = await self._submitter.submit_booking(package.fields, package.files)
        except BookingEngineError as exc:
            self._fail(exc, str(exc))
            raise
        except asyncio.CancelledError as exc:
            self._fail(exc, NETWORK_FAILURE_MESSAGE)
            raise
        except Exception as exc:
            logger.exception("Unexpected booking submission error")
            self._fail(exc, GENERIC_BOOKING_ERROR)
            raise

        server_id = response.server_confirmation_id()
        confirmation = BookingConfirmation(
            confirmation_id=server_id or provisional_id,
            provisional_id=provisional_id,
            is_authoritative=server_id is not None,
            grand_total=totals.total,
            currency=self._settings.currency,
        )
        context.confirmation = confirmation
        context.transition(BookingState.CONFIRMED)
        self._ledger.clear()
        context.clear_checkout_fields()

        if not confirmation.is_authoritative:
            logger.warning(
                "Server returned no confirmation id, using provisional %s", provisional_id
            )
        self._notifications.notify(
            "Booking Confirmed!",
            "Your reservation has been confirmed! "
            f"Confirmation ID: {confirmation.confirmation_id}",
        )
        return confirmation

    def reset(self) -> None:
        """Начинает новое оформление после подтверждения."""
        self._context.require(BookingState.CONFIRMED, BookingState.IDLE)
        self._context = initial_booking_context()

    # ---- внутреннее -----------------------------------------------------

    def _ensure_editable(self) -> None:
        self._context.require(
            BookingState.IDLE,
            BookingState.ROOMS_CHOSEN,
            BookingState.GUEST_INFO_PENDING,
            BookingState.FAILED,
        )

    def _resolve_primary_room(self) -> str | None:
        """Основной номер, если он всё ещё выбран и есть в снимке, иначе первый такой."""
        current = self._context.primary_room_id
        entry = self._ledger.get(current) if current else None
        if entry is not None and entry.room_count > 0 and self._inventory.get(current) is not None:
            return current
        for entry in self._ledger.active_entries():
            if self._inventory.get(entry.room_id) is not None:
                return entry.room_id
        return self._ledger.first_selected_room_id()

    def _reject(self, title: str, errors: dict[str, str]) -> None:
        logger.info("BOOKING_FLOW validation failed state=%s errors=%s", self.state.value, errors)
        self._notifications.error(title, "; ".join(errors.values()))
        raise ValidationError(errors)

    def _fail(self, exc: BaseException, message: str) -> None:
        self._context.error = message
        self._context.error_kind = type(exc).__name__
        self._context.transition(BookingState.FAILED)
        logger.warning(
            "BOOKING_FLOW submission failed kind=%s error=%s", self._context.error_kind, message
        )
        self._notifications.error("Booking Failed", message)


__all__ = ["BookingFlowService", "BookingSubmitter", "REQUIRED_FIELD"]
