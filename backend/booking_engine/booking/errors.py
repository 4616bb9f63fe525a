from __future__ import annotations

from typing import Mapping

GENERIC_BOOKING_ERROR = "There was an error processing your booking. Please try again."
HOTEL_NOT_FOUND = "Hotel not found"
NETWORK_FAILURE_MESSAGE = (
    "Unable to connect to the server. Please check your internet connection and try again."
)


class BookingEngineError(RuntimeError):
    """Базовая ошибка движка бронирования."""


class NotFoundError(BookingEngineError):
    """Отель или номер не найден (HTTP 404)."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or HOTEL_NOT_FOUND)


class NetworkFailureError(BookingEngineError):
    """Ответ от сервера не получен: таймаут или нет соединения."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or NETWORK_FAILURE_MESSAGE)


class ServerError(BookingEngineError):
    """Сервер ответил статусом вне диапазона 2xx."""

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message or GENERIC_BOOKING_ERROR)
        self.status_code = status_code


class ValidationError(BookingEngineError):
    """Локальная проверка не пройдена, до сети дело не доходит."""

    def __init__(self, field_errors: Mapping[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__("; ".join(f"{key}: {value}" for key, value in self.field_errors.items()))


class InvalidTransitionError(BookingEngineError):
    """Переход недопустим из текущего состояния FSM."""


__all__ = [
    "BookingEngineError",
    "NotFoundError",
    "NetworkFailureError",
    "ServerError",
    "ValidationError",
    "InvalidTransitionError",
    "GENERIC_BOOKING_ERROR",
    "HOTEL_NOT_FOUND",
    "NETWORK_FAILURE_MESSAGE",
]
