import pytest

from booking_engine.booking.errors import ValidationError
from booking_engine.booking.models import (
    GuestInfo,
    RoomEvent,
    RoomEventKind,
    SelectionEntry,
    StayWindow,
)
from booking_engine.booking.schemas import HotelPayload, RoomPayload, SubmissionResponse


def test_room_payload_maps_api_aliases():
    record = RoomPayload.model_validate(
        {
            "_id": "r1",
            "hotel": "h1",
            "type": "Deluxe Room",
            "pricePerNight": 2500,
            "perAdultPrice": 100,
            "perChildPrice": 50,
            "discount": 200,
            "taxPercentage": 18,
            "maxGuests": 2,
            "totalRooms": 10,
            "availableCount": 8,
            "availability": "Available",
            "bedType": "King Bed",
            "roomSize": "35 sq m",
        }
    ).to_record()

    assert record.room_id == "r1"
    assert record.hotel_id == "h1"
    assert record.price_per_night == 2500
    assert record.available_count == 8
    assert record.is_bookable
    assert record.to_room_details()["bedType"] == "King Bed"


def test_room_payload_defaults_missing_fields():
    record = RoomPayload.model_validate({"_id": "r2", "pricePerNight": None}).to_record()

    assert record.price_per_night == 0
    assert record.available_count == 0
    assert record.availability == ""
    assert not record.is_bookable
    assert not record.is_sold_out


def test_room_payload_clamps_available_count():
    over = RoomPayload.model_validate(
        {"_id": "r3", "totalRooms": 2, "availableCount": 5, "availability": "Available"}
    ).to_record()
    negative = RoomPayload.model_validate(
        {"_id": "r4", "totalRooms": 2, "availableCount": -1, "availability": "Available"}
    ).to_record()

    assert over.available_count == 2
    assert negative.available_count == 0
    assert negative.is_sold_out


def test_hotel_payload():
    hotel = HotelPayload.model_validate(
        {"_id": "h1", "name": "Sea View", "images": ["a.jpg"], "path": "sea-view"}
    ).to_hotel()

    assert hotel.hotel_id == "h1"
    assert hotel.images == ("a.jpg",)


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"confirmationId": "C1", "bookingId": "B1", "id": "I1"}, "C1"),
        ({"bookingId": "B1", "id": "I1"}, "B1"),
        ({"id": 42}, "42"),
        ({"confirmationId": "  ", "success": True}, None),
        ({}, None),
    ],
)
def test_submission_response_confirmation_precedence(payload, expected):
    assert SubmissionResponse.model_validate(payload).server_confirmation_id() == expected


def test_selection_entry_rejects_negative_counts():
    with pytest.raises(ValidationError) as exc_info:
        SelectionEntry("r1", room_count=-1, adults=-2)

    assert set(exc_info.value.field_errors) == {"room_count", "adults"}


def test_selection_entry_rejects_boolean_counts():
    with pytest.raises(ValidationError) as exc_info:
        SelectionEntry("r1", room_count=True, child_below_5=False)

    assert set(exc_info.value.field_errors) == {"room_count", "child_below_5"}


def test_guest_info_missing_fields():
    guest = GuestInfo(first_name="Asha", last_name=" ", email="a@example.com")

    assert guest.missing_fields() == ["last_name", "phone", "city", "country"]
    assert GuestInfo().is_empty()


def test_stay_window_rejects_garbage_dates():
    with pytest.raises(ValidationError):
        StayWindow.of("not-a-date", None)


@pytest.mark.parametrize(
    "message,kind",
    [
        ({"event": "roomCreated", "data": {"hotelId": "h1", "roomId": "r9"}}, RoomEventKind.CREATED),
        ({"event": "roomUpdated", "hotelId": "h1", "roomId": "r9"}, RoomEventKind.UPDATED),
        ({"event": "roomDeleted", "data": {"hotelId": "h1", "roomId": "r9"}}, RoomEventKind.DELETED),
    ],
)
def test_room_event_from_message(message, kind):
    event = RoomEvent.from_message(message)

    assert event is not None
    assert event.kind is kind
    assert event.hotel_id == "h1"
    assert event.room_id == "r9"


@pytest.mark.parametrize(
    "message",
    [
        None,
        {"event": "hotelUpdated", "data": {"hotelId": "h1"}},
        {"event": "roomCreated", "data": {"roomId": "r1"}},
    ],
)
def test_room_event_ignores_unsupported_messages(message):
    assert RoomEvent.from_message(message) is None
