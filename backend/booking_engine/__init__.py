"""Клиентский движок выбора номеров, расчёта цены и оформления брони."""

__version__ = "0.1.0"

from .engine import BookingEngine, create_engine  # noqa: E402

__all__ = ["BookingEngine", "create_engine", "__version__"]
