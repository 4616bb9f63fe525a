import asyncio
from datetime import datetime, timedelta
from pathlib import Path
import sys
from zoneinfo import ZoneInfo

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booking_engine.booking.hotel_client import HotelApiClient
from booking_engine.booking.ledger import SelectionLedger
from booking_engine.booking.models import SelectionEntry, StayWindow
from booking_engine.booking.pricing import calculate_totals
from booking_engine.core.config import get_settings
from booking_engine.core.logging import setup_logging


async def main(hotel_path: str | None) -> None:
    settings = get_settings()
    setup_logging(settings)
    client = HotelApiClient(settings)
    today = datetime.now(ZoneInfo("UTC")).date()
    stay = StayWindow(check_in=today + timedelta(days=7), check_out=today + timedelta(days=9))
    try:
        hotel_id = settings.hotel_id
        if hotel_path:
            hotel = await client.fetch_hotel(hotel_path)
            print("Hotel:", hotel)
            hotel_id = hotel.hotel_id
        rooms = await client.fetch_rooms(hotel_id, stay)
    finally:
        await client.close()

    print("Check-in:", stay.check_in)
    print("Check-out:", stay.check_out)
    ledger = SelectionLedger()
    for room in rooms:
        print(room.room_id, room.room_type, room.availability, room.available_count)
        if room.is_bookable:
            ledger.set_selection(room.room_id, SelectionEntry(room.room_id, room_count=1, adults=2))
    print(calculate_totals(rooms, ledger, stay.nights, tax_rate=settings.tax_rate))


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
