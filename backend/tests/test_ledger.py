from _helpers import make_room
from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import SelectionEntry


def test_set_selection_is_last_write_wins():
    ledger = SelectionLedger()
    ledger.set_selection("r1", SelectionEntry("r1", room_count=1, adults=2))
    ledger.set_selection("r1", SelectionEntry("r1", room_count=3, adults=1))

    assert len(ledger) == 1
    assert ledger.get("r1").room_count == 3
    assert ledger.total_selected_rooms() == 3


def test_set_selection_keys_by_room_id_argument():
    ledger = SelectionLedger()
    ledger.set_selection("r2", SelectionEntry("r1", room_count=1))

    assert ledger.get("r2").room_id == "r2"
    assert ledger.get("r1") is None


def test_zero_count_entries_stay_but_do_not_count():
    ledger = SelectionLedger()
    ledger.set_selection("r1", SelectionEntry("r1", room_count=0, adults=2))

    assert len(ledger) == 1
    assert not ledger.has_any_selection()
    assert ledger.first_selected_room_id() is None

    ledger.set_selection("r2", SelectionEntry("r2", room_count=2))
    ledger.set_selection("r3", SelectionEntry("r3", room_count=1))

    assert ledger.has_any_selection()
    assert ledger.first_selected_room_id() == "r2"
    assert ledger.total_selected_rooms() == 3


def test_conflicts_against_snapshot():
    ledger = SelectionLedger()
    ledger.set_selection("r1", SelectionEntry("r1", room_count=2))
    ledger.set_selection("r2", SelectionEntry("r2", room_count=1))
    ledger.set_selection("r3", SelectionEntry("r3", room_count=1))
    ledger.set_selection("r4", SelectionEntry("r4", room_count=0))
    rooms = [
        make_room("r1", available_count=1),
        make_room("r2", available_count=5),
        make_room("r4", available_count=0),
    ]

    conflicts = ledger.conflicts(rooms)

    assert set(conflicts) == {"r1", "r3"}
    assert "Only 1" in conflicts["r1"]


def test_snapshot_and_clear():
    ledger = SelectionLedger()
    ledger.set_selection("r1", SelectionEntry("r1", room_count=1, adults=2, child_age_5_to_12=1))

    assert ledger.snapshot() == {
        "r1": {
            "roomId": "r1",
            "roomCount": 1,
            "adults": 2,
            "childAge5to12": 1,
            "childBelow5": 0,
        }
    }

    ledger.clear()
    assert len(ledger) == 0
    assert ledger.snapshot() == {}
