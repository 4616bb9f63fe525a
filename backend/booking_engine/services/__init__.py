"""Сервисы оркестрации оформления брони."""

from .booking_flow_service import BookingFlowService, BookingSubmitter

__all__ = ["BookingFlowService", "BookingSubmitter"]
