from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from booking_engine.booking.errors import InvalidTransitionError
from booking_engine.booking.models import BookingConfirmation, GuestInfo, PaymentProof


class BookingState(Enum):
    IDLE = "idle"
    ROOMS_CHOSEN = "rooms_chosen"
    GUEST_INFO_PENDING = "guest_info_pending"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TRANSITIONS: dict[BookingState, frozenset[BookingState]] = {
    BookingState.IDLE: frozenset({BookingState.ROOMS_CHOSEN}),
    BookingState.ROOMS_CHOSEN: frozenset({BookingState.GUEST_INFO_PENDING, BookingState.IDLE}),
    BookingState.GUEST_INFO_PENDING: frozenset({BookingState.SUBMITTING, BookingState.IDLE}),
    BookingState.SUBMITTING: frozenset({BookingState.CONFIRMED, BookingState.FAILED}),
    BookingState.FAILED: frozenset({BookingState.GUEST_INFO_PENDING}),
    BookingState.CONFIRMED: frozenset(),
}


@dataclass
class BookingContext:
    state: BookingState = BookingState.IDLE
    primary_room_id: str | None = None
    guest: GuestInfo = field(default_factory=GuestInfo)
    payment_method: str = ""
    payment_proof: PaymentProof | None = None
    provisional_id: str | None = None
    confirmation: BookingConfirmation | None = None
    error: str | None = None
    error_kind: str | None = None
    updated_at: float = field(default_factory=lambda: datetime.now(timezone.utc).timestamp())

    def transition(self, target: BookingState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move booking from {self.state.value} to {target.value}"
            )
        self.state = target
        self.updated_at = datetime.now(timezone.utc).timestamp()

    def require(self, *states: BookingState) -> None:
        if self.state not in states:
            expected = ", ".join(state.value for state in states)
            raise InvalidTransitionError(
                f"Booking is {self.state.value}, expected one of: {expected}"
            )

    def clear_checkout_fields(self) -> None:
        self.primary_room_id = None
        self.guest = GuestInfo()
        self.payment_method = ""
        self.payment_proof = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "primary_room_id": self.primary_room_id,
            "guest": self.guest.to_dict(),
            "payment_method": self.payment_method,
            "has_payment_proof": self.payment_proof is not None,
            "provisional_id": self.provisional_id,
            "confirmation_id": self.confirmation.confirmation_id if self.confirmation else None,
            "error": self.error,
            "error_kind": self.error_kind,
            "updated_at": self.updated_at,
        }

    def compact(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "primary_room_id": self.primary_room_id,
            "missing_guest_fields": self.guest.missing_fields(),
            "has_payment_proof": self.payment_proof is not None,
            "error": self.error,
        }


def initial_booking_context() -> BookingContext:
    return BookingContext(state=BookingState.IDLE)


__all__ = ["BookingState", "BookingContext", "TRANSITIONS", "initial_booking_context"]
