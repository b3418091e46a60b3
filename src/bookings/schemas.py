from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

from src.departures.schemas import DepartureDetail, DepartureOffer, SearchFilters, TimePreference, TravelDate
from src.models import BookingStatus

class CancellationOutcome(str, Enum):
    CANCELLED = "cancelled"
    ALREADY_CANCELLED = "already_cancelled"

class TrainSelection(str, Enum):
    """How direct booking picks one offer out of the search results"""
    FIRST = "first"
    LAST = "last"
    CHEAPEST = "cheapest"
    FASTEST = "fastest"

# Request models
class PassengerCreate(BaseModel):
    """Passenger data for a new booking"""
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field("adult", description="adult, senior, child or infant")

class BookingCreateRequest(BaseModel):
    departure_id: int
    date: TravelDate = Field(..., description="Travel date (YYYY-MM-DD)")
    passengers: List[PassengerCreate] = Field(default_factory=list)

class DirectBookingRequest(BaseModel):
    """Search and book in one step"""
    origin: str
    destination: str
    date: TravelDate = Field(..., description="Travel date (YYYY-MM-DD)")
    time_preference: TimePreference = TimePreference.ANY
    passengers: List[PassengerCreate] = Field(default_factory=list)
    selection: TrainSelection = TrainSelection.FIRST
    filters: SearchFilters = Field(default_factory=SearchFilters)

# Response models
class PassengerDetail(BaseModel):
    id: int
    name: str
    category: str
    seat_label: Optional[str] = None
    fare: Decimal

    class Config:
        from_attributes = True

class BookingDetail(BaseModel):
    """Booking with its departure context and passengers"""
    id: int
    reference: str
    departure: DepartureDetail
    travel_date: date
    passenger_count: int
    total_price: Decimal
    status: BookingStatus
    created_at: datetime
    passengers: List[PassengerDetail]

    class Config:
        from_attributes = True

class BookingResponse(BaseModel):
    success: bool
    message: str
    booking: Optional[BookingDetail] = None

class CancellationResponse(BaseModel):
    success: bool
    reference: str
    outcome: CancellationOutcome
    message: str

class DirectBookingResult(BaseModel):
    booking: BookingDetail
    selected_offer: DepartureOffer
    total_found: int
