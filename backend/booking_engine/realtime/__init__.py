"""Push-канал изменений номеров отеля."""

from .channel import (
    InMemoryRoomEventChannel,
    RedisRoomEventChannel,
    RoomEventChannel,
    RoomEventSubscription,
)
from .listener import InvalidationListener

__all__ = [
    "InMemoryRoomEventChannel",
    "InvalidationListener",
    "RedisRoomEventChannel",
    "RoomEventChannel",
    "RoomEventSubscription",
]
