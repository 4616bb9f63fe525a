from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_engine.booking.models import Hotel, RoomRecord

logger = logging.getLogger(__name__)


class RoomPayload(BaseModel):
    """Номер в том виде, в котором его отдаёт `/rooms/hotel/{hotelId}`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    hotel: str | None = None
    type: str = ""
    room_description: str = Field("", alias="roomDescription")
    total_rooms: int = Field(0, alias="totalRooms")
    price_per_night: float = Field(0, alias="pricePerNight")
    bed_type: str = Field("", alias="bedType")
    per_adult_price: float = Field(0, alias="perAdultPrice")
    per_child_price: float = Field(0, alias="perChildPrice")
    discount: float = 0
    tax_percentage: float = Field(0, alias="taxPercentage")
    max_guests: int = Field(0, alias="maxGuests")
    room_size: str = Field("", alias="roomSize")
    availability: str = ""
    image: str | None = None
    available_count: int = Field(0, alias="availableCount")

    @field_validator(
        "total_rooms",
        "price_per_night",
        "per_adult_price",
        "per_child_price",
        "discount",
        "tax_percentage",
        "max_guests",
        "available_count",
        mode="before",
    )
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("type", "room_description", "bed_type", "room_size", "availability", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_record(self) -> RoomRecord:
        available = max(0, self.available_count)
        if available > self.total_rooms:
            logger.warning(
                "Room %s reports availableCount=%s above totalRooms=%s, clamping",
                self.id,
                self.available_count,
                self.total_rooms,
            )
            available = max(0, self.total_rooms)
        return RoomRecord(
            room_id=self.id,
            room_type=self.type,
            price_per_night=self.price_per_night,
            per_adult_price=self.per_adult_price,
            per_child_price=self.per_child_price,
            discount=self.discount,
            tax_percentage=self.tax_percentage,
            max_guests=self.max_guests,
            total_rooms=self.total_rooms,
            available_count=available,
            availability=self.availability,
            hotel_id=self.hotel,
            description=self.room_description,
            bed_type=self.bed_type,
            room_size=self.room_size,
            image=self.image,
        )


class HotelPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    name: str = ""
    address: str = ""
    contact: str = ""
    images: list[str] = Field(default_factory=list)
    path: str = ""

    def to_hotel(self) -> Hotel:
        return Hotel(
            hotel_id=self.id,
            name=self.name,
            address=self.address,
            contact=self.contact,
            images=tuple(self.images),
            path=self.path,
        )


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    confirmation_id: str | None = Field(None, alias="confirmationId")
    booking_id: str | None = Field(None, alias="bookingId")
    id: str | None = None

    @field_validator("confirmation_id", "booking_id", "id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def server_confirmation_id(self) -> str | None:
        return self.confirmation_id or self.booking_id or self.id


__all__ = ["RoomPayload", "HotelPayload", "SubmissionResponse"]
