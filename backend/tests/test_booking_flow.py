import asyncio
import json

import pytest

from _helpers import DummyHotelClient, make_room
from booking_engine.booking.errors import (
    InvalidTransitionError,
    NetworkFailureError,
    ServerError,
    ValidationError,
)
from booking_engine.booking.fsm import BookingState
from booking_engine.booking.inventory import InventoryStore
from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import PaymentProof, SelectionEntry, StayWindow
from booking_engine.booking.submission import CONFIRMATION_ALPHABET, CONFIRMATION_ID_LENGTH
from booking_engine.notifications import NotificationSink
from booking_engine.services.booking_flow_service import REQUIRED_FIELD, BookingFlowService

STAY = StayWindow.of("2024-12-19", "2024-12-21")
GUEST = {
    "first_name": "Asha",
    "last_name": "Rao",
    "email": "asha@example.com",
    "phone": "+91 98765 43210",
    "city": "Pune",
    "country": "India",
}
PROOF = PaymentProof("upi.png", b"\x89PNG-proof", "image/png")


def _flow(settings, rooms=None):
    client = DummyHotelClient(rooms if rooms is not None else [make_room("r1")])
    inventory = InventoryStore(client)
    asyncio.run(inventory.refresh("h1", STAY))
    ledger = SelectionLedger()
    notifications = NotificationSink()
    flow = BookingFlowService(
        settings,
        inventory,
        ledger,
        client,
        notifications,
        id_factory=lambda: "PROV1234",
    )
    return flow, client, ledger, notifications


def _select(ledger, room_id="r1", **counts):
    values = {"room_count": 2, "adults": 2}
    values.update(counts)
    ledger.set_selection(room_id, SelectionEntry(room_id=room_id, **values))


def _ready(flow, ledger):
    _select(ledger, child_age_5_to_12=1)
    flow.choose_rooms(STAY)
    flow.proceed_to_guest_info()
    flow.update_guest_info(**GUEST)
    flow.set_payment_method("UPI")
    flow.attach_payment_proof(PROOF)


def test_happy_path_confirms_with_server_id(settings):
    flow, client, ledger, notifications = _flow(settings)
    _ready(flow, ledger)

    confirmation = asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert flow.state is BookingState.CONFIRMED
    assert confirmation.confirmation_id == "SRV-1"
    assert confirmation.is_authoritative is True
    assert confirmation.provisional_id == "PROV1234"
    # 2500*2*2 + 2*100 + 1*50 = 10250, налог 1845
    assert confirmation.grand_total == 12095
    assert len(ledger) == 0
    assert flow.context.guest.is_empty()
    assert flow.context.payment_proof is None
    titles = [note.title for note in notifications.drain()]
    assert titles == ["Rooms selected!", "Booking Confirmed!"]


def test_submission_payload_carries_full_selection(settings):
    flow, client, ledger, _ = _flow(settings, [make_room("r1"), make_room("r2", room_type="Suite")])
    _select(ledger, "r2", room_count=1, adults=1)
    _ready(flow, ledger)

    asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert len(client.submissions) == 1
    fields = client.submissions[0]["fields"]
    files = client.submissions[0]["files"]
    assert files["paymentProof"] == ("upi.png", b"\x89PNG-proof", "image/png")

    guest = json.loads(fields["guestDetails"])
    assert guest["firstName"] == "Asha"
    assert guest["country"] == "India"

    booking = json.loads(fields["bookingDetails"])
    assert booking["hotelId"] == "h1"
    assert booking["checkIn"] == "2024-12-19"
    assert booking["numberOfNights"] == 2
    assert booking["numberOfRooms"] == 3
    assert set(booking["roomSelections"]) == {"r1", "r2"}

    amount = json.loads(fields["amountDetails"])
    assert amount["discount"] == 0
    assert amount["currency"] == "INR"

    payment = json.loads(fields["paymentDetails"])
    assert payment["paymentMethod"] == "UPI"
    assert payment["paymentStatus"] == "pending"
    assert payment["transactionId"].startswith("TXN_")

    metadata = json.loads(fields["bookingMetadata"])
    assert metadata["frontendConfirmationId"] == "PROV1234"
    assert metadata["bookingSource"] == "web"


def test_missing_server_id_falls_back_to_provisional(settings):
    client = DummyHotelClient([make_room("r1")])
    inventory = InventoryStore(client)
    asyncio.run(inventory.refresh("h1", STAY))
    ledger = SelectionLedger()
    flow = BookingFlowService(settings, inventory, ledger, client, NotificationSink())
    client.submit_response = {"message": "ok"}
    _ready(flow, ledger)

    confirmation = asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert confirmation.is_authoritative is False
    assert confirmation.confirmation_id == confirmation.provisional_id
    assert len(confirmation.confirmation_id) == CONFIRMATION_ID_LENGTH
    assert set(confirmation.confirmation_id) <= set(CONFIRMATION_ALPHABET)


def test_server_rejection_keeps_selection_and_guest(settings):
    flow, client, ledger, notifications = _flow(settings)
    _ready(flow, ledger)
    client.submit_error = ServerError("insufficient inventory", status_code=500)

    with pytest.raises(ServerError):
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert flow.state is BookingState.FAILED
    assert flow.context.error == "insufficient inventory"
    assert flow.context.error_kind == "ServerError"
    assert ledger.get("r1") is not None
    assert flow.context.guest.first_name == "Asha"
    assert flow.context.payment_proof is PROOF
    last = notifications.drain()[-1]
    assert (last.title, last.level) == ("Booking Failed", "error")


def test_resubmit_after_failure(settings):
    flow, client, ledger, _ = _flow(settings)
    _ready(flow, ledger)
    client.submit_error = NetworkFailureError()

    with pytest.raises(NetworkFailureError):
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))
    assert flow.context.error.startswith("Unable to connect")

    client.submit_error = None
    confirmation = asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert flow.state is BookingState.CONFIRMED
    assert flow.context.error is None
    assert confirmation.confirmation_id == "SRV-1"
    assert len(client.submissions) == 2


def test_unexpected_error_maps_to_generic_message(settings):
    flow, client, ledger, _ = _flow(settings)
    _ready(flow, ledger)

    async def broken(fields, files):
        raise KeyError("boom")

    client.submit_booking = broken

    with pytest.raises(KeyError):
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert flow.state is BookingState.FAILED
    assert flow.context.error == "There was an error processing your booking. Please try again."


def test_choose_rooms_requires_selection_and_dates(settings):
    flow, _, ledger, notifications = _flow(settings)

    with pytest.raises(ValidationError) as exc_info:
        flow.choose_rooms(StayWindow())

    assert set(exc_info.value.field_errors) == {"rooms", "dates"}
    assert flow.state is BookingState.IDLE
    assert notifications.drain()[0].level == "error"


def test_zero_count_selection_does_not_count(settings):
    flow, _, ledger, _ = _flow(settings)
    _select(ledger, room_count=0, adults=0)

    with pytest.raises(ValidationError) as exc_info:
        flow.choose_rooms(STAY)

    assert "rooms" in exc_info.value.field_errors


def test_submit_validates_before_network(settings):
    flow, client, ledger, _ = _flow(settings)
    _select(ledger)
    flow.choose_rooms(STAY)
    flow.proceed_to_guest_info()
    flow.update_guest_info(first_name="Asha", email="  ")

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    errors = exc_info.value.field_errors
    assert errors["email"] == REQUIRED_FIELD
    assert "first_name" not in errors
    assert "payment_proof" in errors
    assert client.submissions == []
    assert flow.state is BookingState.GUEST_INFO_PENDING


def test_conflicting_selection_blocks_submission(settings):
    flow, client, ledger, _ = _flow(settings, [make_room("r1", available_count=1)])
    _ready(flow, ledger)

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert "r1" in exc_info.value.field_errors["rooms"]
    assert client.submissions == []


def test_empty_payment_proof_rejected(settings):
    flow, _, _, _ = _flow(settings)

    with pytest.raises(ValidationError):
        flow.attach_payment_proof(PaymentProof("empty.png", b""))


def test_unknown_guest_field_rejected(settings):
    flow, _, _, _ = _flow(settings)

    with pytest.raises(ValidationError) as exc_info:
        flow.update_guest_info(passport="X123")

    assert "passport" in exc_info.value.field_errors


def test_out_of_order_transitions_are_refused(settings):
    flow, _, ledger, _ = _flow(settings)

    with pytest.raises(InvalidTransitionError):
        flow.proceed_to_guest_info()
    with pytest.raises(InvalidTransitionError):
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))
    with pytest.raises(InvalidTransitionError):
        flow.retry()


def test_cancel_returns_to_idle_and_keeps_input(settings):
    flow, _, ledger, _ = _flow(settings)
    _select(ledger)
    flow.choose_rooms(STAY)
    flow.proceed_to_guest_info()
    flow.update_guest_info(first_name="Asha")

    flow.cancel()

    assert flow.state is BookingState.IDLE
    assert flow.context.primary_room_id is None
    assert flow.context.guest.first_name == "Asha"
    assert ledger.get("r1") is not None


def test_reset_after_confirmation(settings):
    flow, _, ledger, _ = _flow(settings)
    _ready(flow, ledger)
    asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    flow.reset()

    assert flow.state is BookingState.IDLE
    assert flow.context.confirmation is None
    with pytest.raises(InvalidTransitionError):
        flow.retry()


def test_primary_room_is_rederived_when_dropped_after_guest_info(settings):
    client = DummyHotelClient([make_room("r1"), make_room("r2", room_type="Suite")])
    inventory = InventoryStore(client)
    asyncio.run(inventory.refresh("h1", STAY))
    ledger = SelectionLedger()
    flow = BookingFlowService(settings, inventory, ledger, client, NotificationSink())
    _select(ledger, "r1")
    _select(ledger, "r2", room_count=1, adults=1)
    flow.choose_rooms(STAY)
    assert flow.proceed_to_guest_info() == "r1"
    flow.update_guest_info(**GUEST)
    flow.attach_payment_proof(PROOF)

    _select(ledger, "r1", room_count=0, adults=0)
    client.rooms = [make_room("r2", room_type="Suite")]
    asyncio.run(inventory.refresh("h1", STAY))

    asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    fields = client.submissions[0]["fields"]
    assert json.loads(fields["roomDetails"])["roomId"] == "r2"
    assert json.loads(fields["bookingDetails"])["numberOfRooms"] == 1
    assert flow.state is BookingState.CONFIRMED


def test_selection_emptied_after_guest_info_blocks_submission(settings):
    flow, client, ledger, _ = _flow(settings)
    _ready(flow, ledger)
    _select(ledger, room_count=0, adults=0, child_age_5_to_12=0)

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(flow.submit(hotel_id="h1", stay=STAY))

    assert "rooms" in exc_info.value.field_errors
    assert client.submissions == []
    assert flow.state is BookingState.GUEST_INFO_PENDING
