from pydantic import BaseModel, BeforeValidator, Field, field_validator
from typing import Annotated, Optional
from datetime import date, time
from decimal import Decimal
from enum import Enum

from src.stations.schemas import Station

def _date_to_iso(v):
    if isinstance(v, date):
        return v.isoformat()
    return v

# Dates arrive as YYYY-MM-DD strings and are parsed by the services
TravelDate = Annotated[str, BeforeValidator(_date_to_iso)]

class TimePreference(str, Enum):
    """Departure time-of-day windows"""
    ANY = "any"
    MORNING = "morning"      # 06:00-12:00
    AFTERNOON = "afternoon"  # 12:00-18:00
    EVENING = "evening"      # 18:00-24:00

class TrainInfo(BaseModel):
    id: int
    number: str
    category: str
    has_wifi: bool
    has_food: bool
    total_seats: int

    class Config:
        from_attributes = True

class DepartureDetail(BaseModel):
    """Timetable slot with its train and stations"""
    id: int
    train: TrainInfo
    origin: Station
    destination: Station
    departure_time: time
    arrival_time: time
    weekday: int
    base_fare: Decimal
    remaining_capacity: int

    class Config:
        from_attributes = True

class SearchFilters(BaseModel):
    has_wifi: bool = False
    has_food: bool = False
    max_price: Optional[Decimal] = Field(None, gt=0, description="Per-person fare ceiling")

class SearchRequest(BaseModel):
    origin: str = Field(..., description="Station code, name or city")
    destination: str = Field(..., description="Station code, name or city")
    date: TravelDate = Field(..., description="Travel date (YYYY-MM-DD)")
    time_preference: TimePreference = TimePreference.ANY
    passenger_count: int = Field(1, description="Seats required; values below 1 count as 1")
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @field_validator("time_preference", mode="before")
    @classmethod
    def empty_time_preference(cls, v):
        return v or TimePreference.ANY

class DepartureOffer(BaseModel):
    """Search result with display fields"""
    departure: DepartureDetail
    departure_time: str
    arrival_time: str
    duration: str
    duration_minutes: int
    price_per_person: Decimal
    total_price: Decimal
