from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal

NotificationLevel = Literal["info", "error"]


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    level: NotificationLevel = "info"


class NotificationSink:
    """Очередь уведомлений для интерфейса; UI забирает их через drain()."""

    def __init__(self, max_items: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=max_items)

    def __len__(self) -> int:
        return len(self._items)

    def notify(self, title: str, description: str, *, level: NotificationLevel = "info") -> Notification:
        notification = Notification(title=title, description=description, level=level)
        self._items.append(notification)
        return notification

    def error(self, title: str, description: str) -> Notification:
        return self.notify(title, description, level="error")

    def pending(self) -> list[Notification]:
        return list(self._items)

    def drain(self) -> list[Notification]:
        items = list(self._items)
        self._items.clear()
        return items


__all__ = ["Notification", "NotificationLevel", "NotificationSink"]
