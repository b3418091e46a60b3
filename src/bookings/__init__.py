"""
Booking Module

This module provides seat reservation and booking management for the
Train Ticketing System. It includes:

- Seat reservation against a departure's remaining capacity under a row lock
- Per-category passenger pricing (adult, senior, child, infant)
- Unique human-readable booking references (TRN-YYYY-NNNNN)
- Cancellation with capacity restitution
- Direct booking: search, select and book in one call

Key Components:
- capacity.py: Locked reserve/restore of departure capacity
- pricing.py: Passenger fare calculation and seat counting
- reference.py: Booking reference generation
- booking_service.py: Create, cancel, read and direct-book transactions
- router.py: FastAPI endpoints for booking management
- schemas.py: Pydantic models for booking requests and responses
"""

from .router import router
from .booking_service import BookingService
from .capacity import CapacityStore
from .reference import ReferenceGenerator
from .pricing import price, seats_needed
from .schemas import (
    BookingCreateRequest, BookingDetail, CancellationOutcome, DirectBookingRequest,
    DirectBookingResult, PassengerCreate, TrainSelection
)

__all__ = [
    "router",
    "BookingService",
    "CapacityStore",
    "ReferenceGenerator",
    "price",
    "seats_needed",
    "BookingCreateRequest",
    "BookingDetail",
    "CancellationOutcome",
    "DirectBookingRequest",
    "DirectBookingResult",
    "PassengerCreate",
    "TrainSelection"
]
