import asyncio
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booking_engine.core.config import get_settings
from booking_engine.core.logging import setup_logging
from booking_engine.notifications import NotificationSink
from booking_engine.realtime.channel import RedisRoomEventChannel
from booking_engine.realtime.listener import InvalidationListener
from booking_engine.realtime.redis_client import close_redis_client, create_redis_client


async def main(hotel_id: str, seconds: float) -> None:
    settings = get_settings()
    setup_logging(settings)
    client = create_redis_client(settings)
    channel = RedisRoomEventChannel(client, prefix=settings.room_events_channel_prefix)
    notifications = NotificationSink()
    listener = InvalidationListener(
        channel, notifications, lambda event: print("invalidate:", event)
    )
    try:
        await listener.start(hotel_id)
        await asyncio.sleep(seconds)
    finally:
        await listener.stop()
        await close_redis_client(client)

    for note in notifications.drain():
        print(note.title, "-", note.description)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else get_settings().hotel_id
    asyncio.run(main(target, float(sys.argv[2]) if len(sys.argv) > 2 else 30.0))
