"""
Departure Search Module

Finds bookable departures for a journey request:

- Origin/destination resolution through the station resolver
- Travel date bounds (today up to the booking horizon)
- Weekday, capacity, time-of-day, amenity and price filters
- Display fields: times, duration and price estimates

Key Components:
- service.py: Search planner and departure lookup
- router.py: FastAPI endpoints for search and departure details
- schemas.py: Pydantic models for search requests and offers
"""

from .router import router
from .service import DepartureSearchService
from .schemas import (
    SearchRequest, SearchFilters, TimePreference, DepartureOffer, DepartureDetail
)

__all__ = [
    "router",
    "DepartureSearchService",
    "SearchRequest",
    "SearchFilters",
    "TimePreference",
    "DepartureOffer",
    "DepartureDetail"
]
