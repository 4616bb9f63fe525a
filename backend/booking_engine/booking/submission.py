from __future__ import annotations

import json
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import (
    GuestInfo,
    PaymentProof,
    PricingTotals,
    RoomRecord,
    StayWindow,
)

CONFIRMATION_ALPHABET = string.ascii_uppercase + string.digits
CONFIRMATION_ID_LENGTH = 8
_BASE36 = string.digits + string.ascii_lowercase


def generate_confirmation_id() -> str:
    return "".join(secrets.choice(CONFIRMATION_ALPHABET) for _ in range(CONFIRMATION_ID_LENGTH))


def generate_transaction_id(now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"TXN_{stamp}_{suffix}"


@dataclass(frozen=True)
class SubmissionPackage:
    """Готовый multipart-пакет брони: либо уходит целиком, либо не уходит."""

    fields: Mapping[str, str]
    files: Mapping[str, tuple[str, bytes, str]]
    provisional_id: str


def _dump(block: Mapping[str, Any]) -> str:
    return json.dumps(block, ensure_ascii=False)


def build_submission(
    *,
    hotel_id: str,
    stay: StayWindow,
    guest: GuestInfo,
    room: RoomRecord,
    ledger: SelectionLedger,
    totals: PricingTotals,
    payment_method: str,
    payment_proof: PaymentProof,
    currency: str,
    booking_source: str,
    client_environment: str,
    provisional_id: str | None = None,
    now: datetime | None = None,
) -> SubmissionPackage:
    moment = now or datetime.now(timezone.utc)
    timestamp = moment.isoformat()
    provisional_id = provisional_id or generate_confirmation_id()

    booking_details = {
        "checkIn": stay.check_in.isoformat() if stay.check_in else "",
        "checkOut": stay.check_out.isoformat() if stay.check_out else "",
        "numberOfRooms": totals.total_rooms,
        "numberOfAdults": totals.total_adults,
        "numberOfChildren": totals.total_children,
        "numberOfNights": stay.nights,
        "hotelId": hotel_id,
        # полный выбор, даже если на экране показан один основной номер
        "roomSelections": ledger.snapshot(),
    }
    payment_details = {
        "paymentMethod": payment_method,
        "paymentStatus": "pending",
        "transactionId": generate_transaction_id(int(moment.timestamp() * 1000)),
        "paymentDate": timestamp,
    }
    metadata = {
        "bookingDate": timestamp,
        "bookingSource": booking_source,
        "userAgent": client_environment,
        "ipAddress": "unknown",
        "frontendConfirmationId": provisional_id,
    }

    fields = {
        "guestDetails": _dump(guest.to_dict()),
        "roomDetails": _dump(room.to_room_details()),
        "bookingDetails": _dump(booking_details),
        "amountDetails": _dump(totals.to_amount_details(currency)),
        "paymentDetails": _dump(payment_details),
        "bookingMetadata": _dump(metadata),
    }
    return SubmissionPackage(
        fields=fields,
        files={"paymentProof": payment_proof.as_file()},
        provisional_id=provisional_id,
    )


__all__ = [
    "CONFIRMATION_ALPHABET",
    "CONFIRMATION_ID_LENGTH",
    "SubmissionPackage",
    "build_submission",
    "generate_confirmation_id",
    "generate_transaction_id",
]
