from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import PricingTotals, RoomRecord, StayWindow

DEFAULT_TAX_RATE = 0.18


def calculate_nights(stay: StayWindow) -> int:
    return stay.nights


def round_half_up(value: float | Decimal) -> int:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_totals(
    rooms: Iterable[RoomRecord],
    ledger: SelectionLedger,
    nights: int,
    *,
    tax_rate: float = DEFAULT_TAX_RATE,
) -> PricingTotals:
    """Считает итог по выбору пользователя.

    Налог берётся фиксированной ставкой от суммы и округляется до целого
    по правилу half-up. Скидка номера (`RoomRecord.discount`) в итог не
    входит: агрегированная скидка всегда 0. Записи, для которых номера
    нет в снимке, молча пропускаются.
    """
    by_id = {room.room_id: room for room in rooms}

    room_charges: float = 0
    guest_charges: float = 0
    total_rooms = total_adults = total_children = 0

    for entry in ledger.active_entries():
        room = by_id.get(entry.room_id)
        if room is None:
            continue
        room_charges += room.price_per_night * nights * entry.room_count
        guest_charges += entry.adults * room.per_adult_price
        # обе детские группы по одной ставке
        guest_charges += entry.child_age_5_to_12 * room.per_child_price
        guest_charges += entry.child_below_5 * room.per_child_price

        total_rooms += entry.room_count
        total_adults += entry.adults
        total_children += entry.children

    subtotal = room_charges + guest_charges
    taxes = round_half_up(Decimal(str(subtotal)) * Decimal(str(tax_rate)))
    discount = 0
    return PricingTotals(
        room_charges=room_charges,
        guest_charges=guest_charges,
        subtotal=subtotal,
        taxes=taxes,
        discount=discount,
        total=subtotal + taxes - discount,
        total_rooms=total_rooms,
        total_adults=total_adults,
        total_children=total_children,
    )


__all__ = ["DEFAULT_TAX_RATE", "calculate_nights", "calculate_totals", "round_half_up"]
