from typing import List, Optional
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session, joinedload
from loguru import logger

from src.config import settings
from src.exceptions import InvalidDateError, NoResultsError, NotFoundError
from src.models import Departure, Train, weekday_index
from src.departures.schemas import (
    DepartureDetail, DepartureOffer, SearchRequest, TimePreference
)
from src.stations.service import StationResolver

# [start, end) windows on departure time; None means open-ended
TIME_WINDOWS = {
    TimePreference.MORNING: (time(6, 0), time(12, 0)),
    TimePreference.AFTERNOON: (time(12, 0), time(18, 0)),
    TimePreference.EVENING: (time(18, 0), None),
}

def parse_travel_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidDateError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)", InvalidDateError.FORMAT)

def duration_minutes(departure_time: time, arrival_time: time) -> int:
    """Minutes between two times of day, wrapping past midnight"""
    start = departure_time.hour * 60 + departure_time.minute
    end = arrival_time.hour * 60 + arrival_time.minute
    minutes = end - start
    if minutes < 0:
        minutes += 24 * 60
    return minutes

def format_duration(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"

class DepartureSearchService:
    """Finds bookable departures between two stations on a date"""

    def __init__(self, db: Session, horizon_days: Optional[int] = None):
        self.db = db
        self.horizon_days = horizon_days if horizon_days is not None else settings.SEARCH_HORIZON_DAYS
        self.stations = StationResolver(db)

    def search(self, request: SearchRequest, today: Optional[date] = None) -> List[DepartureOffer]:
        """Search departures; raises NoResultsError when nothing matches"""
        origin = self.stations.resolve(request.origin, side="origin")
        destination = self.stations.resolve(request.destination, side="destination")

        travel_date = parse_travel_date(request.date)
        self.validate_search_date(travel_date, today)

        weekday = weekday_index(travel_date)
        passenger_count = max(request.passenger_count, 1)

        query = self._departure_query().join(Departure.train).filter(
            Departure.origin_id == origin.id,
            Departure.destination_id == destination.id,
            Departure.weekday == weekday,
            Departure.remaining_capacity >= passenger_count,
        )

        # Time preference filter
        window = TIME_WINDOWS.get(request.time_preference)
        if window:
            start, end = window
            query = query.filter(Departure.departure_time >= start)
            if end is not None:
                query = query.filter(Departure.departure_time < end)

        filters = request.filters
        if filters.has_wifi:
            query = query.filter(Train.has_wifi.is_(True))
        if filters.has_food:
            query = query.filter(Train.has_food.is_(True))
        if filters.max_price is not None:
            query = query.filter(Departure.base_fare <= filters.max_price)

        logger.info(
            "Searching trains: origin={}, destination={}, date={}, weekday={}, passengers={}",
            origin.name, destination.name, travel_date, weekday, passenger_count,
        )

        departures = query.order_by(Departure.departure_time, Departure.id).all()
        if not departures:
            raise NoResultsError()

        return [self.build_offer(departure, passenger_count) for departure in departures]

    def validate_search_date(self, travel_date: date, today: Optional[date] = None) -> None:
        today = today or date.today()
        if travel_date < today:
            raise InvalidDateError("Cannot book trains in the past", InvalidDateError.PAST)
        if travel_date > today + timedelta(days=self.horizon_days):
            raise InvalidDateError(
                f"Cannot book trains more than {self.horizon_days} days in advance",
                InvalidDateError.TOO_FAR,
            )

    def get_departure(self, departure_id: int) -> Departure:
        departure = self._departure_query().filter(Departure.id == departure_id).first()
        if not departure:
            raise NotFoundError("Departure not found")
        return departure

    @staticmethod
    def build_offer(departure: Departure, passenger_count: int) -> DepartureOffer:
        minutes = duration_minutes(departure.departure_time, departure.arrival_time)
        # Display estimate: every passenger priced as an adult
        price_per_person = Decimal(departure.base_fare)

        return DepartureOffer(
            departure=DepartureDetail.model_validate(departure),
            departure_time=departure.departure_time.strftime("%H:%M"),
            arrival_time=departure.arrival_time.strftime("%H:%M"),
            duration=format_duration(minutes),
            duration_minutes=minutes,
            price_per_person=price_per_person,
            total_price=price_per_person * passenger_count,
        )

    def _departure_query(self):
        return self.db.query(Departure).options(
            joinedload(Departure.train),
            joinedload(Departure.origin),
            joinedload(Departure.destination),
        )
