from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from booking_engine.booking.errors import ValidationError

AVAILABLE = "Available"

GUEST_FIELDS = ("first_name", "last_name", "email", "phone", "city", "country")


@dataclass(frozen=True)
class RoomRecord:
    room_id: str
    room_type: str
    price_per_night: float
    per_adult_price: float = 0.0
    per_child_price: float = 0.0
    discount: float = 0.0
    tax_percentage: float = 0.0
    max_guests: int = 0
    total_rooms: int = 0
    available_count: int = 0
    availability: str = ""
    hotel_id: str | None = None
    description: str = ""
    bed_type: str = ""
    room_size: str = ""
    image: str | None = None

    @property
    def is_bookable(self) -> bool:
        return self.availability == AVAILABLE and self.available_count > 0

    @property
    def is_sold_out(self) -> bool:
        return self.availability == AVAILABLE and self.available_count == 0

    def to_room_details(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "roomType": self.room_type,
            "pricePerNight": self.price_per_night,
            "maxGuests": self.max_guests,
            "bedType": self.bed_type,
            "roomSize": self.room_size,
        }


@dataclass(frozen=True)
class Hotel:
    hotel_id: str
    name: str
    address: str = ""
    contact: str = ""
    images: tuple[str, ...] = ()
    path: str = ""


def _coerce_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValidationError({"dates": f"Invalid date: {text}"}) from exc


@dataclass(frozen=True)
class StayWindow:
    check_in: date | None = None
    check_out: date | None = None

    @classmethod
    def of(cls, check_in: date | str | None, check_out: date | str | None) -> StayWindow:
        return cls(check_in=_coerce_date(check_in), check_out=_coerce_date(check_out))

    @property
    def is_complete(self) -> bool:
        return self.check_in is not None and self.check_out is not None

    @property
    def nights(self) -> int:
        """Число ночей; 1, если даты не заданы или совпадают.

        Значение 1 используется только для отображения и расчёта цены,
        валидной бронью без дат оно не становится.
        """
        if not self.is_complete:
            return 1
        delta = abs(self.check_out - self.check_in)  # type: ignore[operator]
        nights = math.ceil(delta.total_seconds() / 86400)
        return max(1, nights)

    def to_query_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.check_in:
            params["checkIn"] = self.check_in.isoformat()
        if self.check_out:
            params["checkOut"] = self.check_out.isoformat()
        return params


@dataclass(frozen=True)
class SelectionEntry:
    room_id: str
    room_count: int = 0
    adults: int = 0
    child_age_5_to_12: int = 0
    child_below_5: int = 0

    def __post_init__(self) -> None:
        errors: dict[str, str] = {}
        for name in ("room_count", "adults", "child_age_5_to_12", "child_below_5"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors[name] = "Must be a non-negative integer"
        if not self.room_id:
            errors["room_id"] = "Room id is required"
        if errors:
            raise ValidationError(errors)

    @property
    def children(self) -> int:
        return self.child_age_5_to_12 + self.child_below_5

    def to_dict(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "roomCount": self.room_count,
            "adults": self.adults,
            "childAge5to12": self.child_age_5_to_12,
            "childBelow5": self.child_below_5,
        }


@dataclass(frozen=True)
class PricingTotals:
    room_charges: float = 0
    guest_charges: float = 0
    subtotal: float = 0
    taxes: int = 0
    discount: float = 0
    total: float = 0
    total_rooms: int = 0
    total_adults: int = 0
    total_children: int = 0

    def to_amount_details(self, currency: str) -> dict[str, Any]:
        return {
            "roomCharges": self.room_charges,
            "guestCharges": self.guest_charges,
            "subtotal": self.subtotal,
            "taxesAndFees": self.taxes,
            "discount": self.discount,
            "grandTotal": self.total,
            "currency": currency,
        }


@dataclass
class GuestInfo:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    country: str = ""

    def missing_fields(self) -> list[str]:
        return [name for name in GUEST_FIELDS if not str(getattr(self, name) or "").strip()]

    def is_empty(self) -> bool:
        return len(self.missing_fields()) == len(GUEST_FIELDS)

    def to_dict(self) -> dict[str, str]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "city": self.city,
            "country": self.country,
        }


@dataclass(frozen=True)
class PaymentProof:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"

    def as_file(self) -> tuple[str, bytes, str]:
        return (self.filename, self.content, self.content_type)


class RoomEventKind(Enum):
    CREATED = "roomCreated"
    UPDATED = "roomUpdated"
    DELETED = "roomDeleted"


@dataclass(frozen=True)
class RoomEvent:
    kind: RoomEventKind
    hotel_id: str
    room_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_message(cls, raw: dict[str, Any] | None) -> RoomEvent | None:
        if not isinstance(raw, dict):
            return None
        try:
            kind = RoomEventKind(raw.get("event"))
        except ValueError:
            return None
        data = raw.get("data") if isinstance(raw.get("data"), dict) else raw
        hotel_id = data.get("hotelId")
        if not hotel_id:
            return None
        room_id = data.get("roomId")
        return cls(
            kind=kind,
            hotel_id=str(hotel_id),
            room_id=str(room_id) if room_id is not None else None,
            payload=dict(data),
        )

    def to_message(self) -> dict[str, Any]:
        return {
            "event": self.kind.value,
            "data": {**self.payload, "hotelId": self.hotel_id, "roomId": self.room_id},
        }


@dataclass(frozen=True)
class BookingConfirmation:
    confirmation_id: str
    provisional_id: str
    is_authoritative: bool
    grand_total: float
    currency: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "AVAILABLE",
    "GUEST_FIELDS",
    "RoomRecord",
    "Hotel",
    "StayWindow",
    "SelectionEntry",
    "PricingTotals",
    "GuestInfo",
    "PaymentProof",
    "RoomEventKind",
    "RoomEvent",
    "BookingConfirmation",
]
