"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import (
    BatchBookingOutcome,
    BookingOutcome,
    BookingService,
    BookingStoreProtocol,
)

__all__ = ["BatchBookingOutcome", "BookingOutcome", "BookingService", "BookingStoreProtocol"]
