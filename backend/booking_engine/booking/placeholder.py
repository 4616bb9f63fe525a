from __future__ import annotations

from booking_engine.booking.models import AVAILABLE, RoomRecord


def placeholder_rooms(hotel_id: str | None) -> list[RoomRecord]:
    """Демо-каталог на случай, когда API номеров ни разу не ответил."""
    return [
        RoomRecord(
            room_id="room1",
            hotel_id=hotel_id,
            room_type="Deluxe Room",
            description="Elegant room with comfortable amenities and stunning views.",
            total_rooms=10,
            price_per_night=2500,
            bed_type="King Bed",
            per_adult_price=100,
            per_child_price=50,
            discount=200,
            tax_percentage=18,
            max_guests=2,
            room_size="35 sq m",
            availability=AVAILABLE,
            image="/assets/deluxe-room.jpg",
            available_count=8,
        ),
        RoomRecord(
            room_id="room2",
            hotel_id=hotel_id,
            room_type="Executive Room",
            description=(
                "Premium room with modern amenities and work desk "
                "perfect for business travelers."
            ),
            total_rooms=6,
            price_per_night=3500,
            bed_type="Queen Bed",
            per_adult_price=120,
            per_child_price=60,
            discount=300,
            tax_percentage=18,
            max_guests=2,
            room_size="45 sq m",
            availability=AVAILABLE,
            image="/assets/executive-room.jpg",
            available_count=5,
        ),
        RoomRecord(
            room_id="room3",
            hotel_id=hotel_id,
            room_type="Suite",
            description="Spacious suite with separate living area, perfect for families.",
            total_rooms=4,
            price_per_night=5500,
            bed_type="King Bed + Sofa",
            per_adult_price=150,
            per_child_price=75,
            discount=500,
            tax_percentage=18,
            max_guests=4,
            room_size="65 sq m",
            availability=AVAILABLE,
            image="/assets/manor-suite.jpg",
            available_count=3,
        ),
    ]


__all__ = ["placeholder_rooms"]
