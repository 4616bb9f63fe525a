from __future__ import annotations

import asyncio
from typing import Any, Mapping
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import ValidationError as PayloadValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from booking_engine.booking.errors import (
    HOTEL_NOT_FOUND,
    NetworkFailureError,
    NotFoundError,
    ServerError,
)
from booking_engine.booking.models import Hotel, RoomRecord, StayWindow
from booking_engine.booking.schemas import HotelPayload, RoomPayload, SubmissionResponse
from booking_engine.core.config import Settings

FormFile = tuple[str, bytes, str]


class HotelApiClient:
    """Асинхронный клиент REST API отеля: карточка отеля, номера, брони."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._root = settings.api_root
        self._submission_timeout = settings.submission_timeout
        self._client = client or httpx.AsyncClient(timeout=None)
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=4)

    async def close(self) -> None:
        await self._client.aclose()

    # ---- отель ----------------------------------------------------------

    async def fetch_hotel(self, hotel_path: str) -> Hotel:
        url = f"{self._root}/hotel/path/{quote(hotel_path, safe='')}"
        try:
            # Чтение идемпотентно, повторяем только сетевые сбои, но не HTTP-статусы
            async for attempt in AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(3),
                wait=self._retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
            ):
                with attempt:
                    response = await self._client.get(url)
        except httpx.RequestError as exc:
            logger.warning("Hotel API unreachable at {url}: {error}", url=url, error=exc)
            raise NetworkFailureError() from exc

        data = self._checked_json(response, url=url, not_found=HOTEL_NOT_FOUND)
        try:
            return HotelPayload.model_validate(data).to_hotel()
        except PayloadValidationError as exc:
            raise ServerError("Malformed hotel payload", status_code=response.status_code) from exc

    # ---- номера ---------------------------------------------------------

    async def fetch_rooms(self, hotel_id: str, stay: StayWindow) -> list[RoomRecord]:
        url = f"{self._root}/rooms/hotel/{quote(hotel_id, safe='')}"
        response = await self._send("GET", url, params=stay.to_query_params())
        data = self._checked_json(response, url=url, not_found="Rooms not found")

        raw_rooms = data.get("data") if isinstance(data, dict) else data
        if not isinstance(raw_rooms, list):
            raise ServerError("Malformed rooms payload", status_code=response.status_code)

        rooms: list[RoomRecord] = []
        for item in raw_rooms:
            if not isinstance(item, dict):
                continue
            try:
                rooms.append(RoomPayload.model_validate(item).to_record())
            except PayloadValidationError as exc:
                logger.warning("Skipping malformed room record: {error}", error=exc)
        return rooms

    # ---- бронирование ---------------------------------------------------

    async def submit_booking(
        self,
        fields: Mapping[str, str],
        files: Mapping[str, FormFile],
    ) -> SubmissionResponse:
        url = f"{self._root}/bookings"
        response = await self._send(
            "POST",
            url,
            data=dict(fields),
            files=dict(files),
            timeout=self._submission_timeout,
            total_timeout=self._submission_timeout,
        )
        data = self._checked_json(response, url=url, not_found="Booking endpoint not found")
        if not isinstance(data, dict):
            return SubmissionResponse()
        return SubmissionResponse.model_validate(data)

    # ---- общие HTTP-хелперы ---------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        *,
        total_timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        # таймаут httpx действует на каждую фазу отдельно, общий срок ограничивает wait_for
        request = self._client.request(method, url, **kwargs)
        try:
            if total_timeout is None:
                return await request
            return await asyncio.wait_for(request, total_timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.warning("Hotel API timeout at {url}", url=url)
            raise NetworkFailureError() from exc
        except httpx.RequestError as exc:
            logger.warning("Hotel API unreachable at {url}: {error}", url=url, error=exc)
            raise NetworkFailureError() from exc

    def _checked_json(self, response: httpx.Response, *, url: str, not_found: str) -> Any:
        if not response.is_success:
            logger.error(
                "Hotel API HTTP {status} at {url}: {body}",
                status=response.status_code,
                url=url,
                body=response.text,
            )
            message = self._error_message(response)
            if response.status_code == 404:
                raise NotFoundError(message or not_found)
            raise ServerError(message, status_code=response.status_code)
        return self._safe_json(response)

    @staticmethod
    def _safe_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {}

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        payload = HotelApiClient._safe_json(response)
        if not isinstance(payload, dict):
            return None
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None


__all__ = ["HotelApiClient", "FormFile"]
