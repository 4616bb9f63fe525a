from __future__ import annotations

from typing import Any, Iterable, Iterator

from booking_engine.booking.models import RoomRecord, SelectionEntry


class SelectionLedger:
    """Выбор пользователя по типам номеров, ключом служит идентификатор номера.

    Обновление инвентаря записи не трогает: сверка с наличием
    выполняется только перед отправкой брони.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SelectionEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SelectionEntry]:
        return iter(self._entries.values())

    def set_selection(self, room_id: str, entry: SelectionEntry) -> None:
        if entry.room_id != room_id:
            entry = SelectionEntry(
                room_id=room_id,
                room_count=entry.room_count,
                adults=entry.adults,
                child_age_5_to_12=entry.child_age_5_to_12,
                child_below_5=entry.child_below_5,
            )
        self._entries[room_id] = entry

    def get(self, room_id: str) -> SelectionEntry | None:
        return self._entries.get(room_id)

    @property
    def entries(self) -> list[SelectionEntry]:
        return list(self._entries.values())

    def active_entries(self) -> list[SelectionEntry]:
        return [entry for entry in self._entries.values() if entry.room_count > 0]

    def total_selected_rooms(self) -> int:
        return sum(entry.room_count for entry in self._entries.values())

    def has_any_selection(self) -> bool:
        return any(entry.room_count > 0 for entry in self._entries.values())

    def first_selected_room_id(self) -> str | None:
        return next((entry.room_id for entry in self.active_entries()), None)

    def conflicts(self, rooms: Iterable[RoomRecord]) -> dict[str, str]:
        """Записи, которые текущий снимок инвентаря уже не покрывает."""
        by_id = {room.room_id: room for room in rooms}
        problems: dict[str, str] = {}
        for entry in self.active_entries():
            room = by_id.get(entry.room_id)
            if room is None:
                problems[entry.room_id] = "Room is no longer offered"
            elif not room.is_bookable or room.available_count < entry.room_count:
                problems[entry.room_id] = (
                    f"Only {room.available_count if room.is_bookable else 0} "
                    f"{room.room_type or 'room'}(s) left, {entry.room_count} selected"
                )
        return problems

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {room_id: entry.to_dict() for room_id, entry in self._entries.items()}

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["SelectionLedger"]
