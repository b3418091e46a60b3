from contextlib import contextmanager
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload
from loguru import logger

from src.bookings.capacity import CapacityStore
from src.bookings.pricing import consumes_seat, price, seats_needed
from src.bookings.reference import ReferenceGenerator
from src.bookings.schemas import (
    BookingCreateRequest, BookingDetail, CancellationOutcome, DirectBookingRequest,
    DirectBookingResult, PassengerCreate, TrainSelection
)
from src.database import apply_lock_timeout, is_lock_timeout
from src.departures.schemas import DepartureOffer, SearchRequest
from src.departures.service import DepartureSearchService, parse_travel_date
from src.exceptions import (
    CapacityBusyError, InvalidDateError, NotFoundError, PersistenceError,
    TrainTicketingError, ValidationError
)
from src.models import Booking, BookingStatus, Departure, Passenger, weekday_index

class BookingService:
    """Creates, cancels and reads bookings.

    Every write is one database transaction: the capacity change and the
    booking rows are committed together or not at all.
    """

    def __init__(self, db: Session):
        self.db = db
        self.capacity = CapacityStore(db)
        self.references = ReferenceGenerator(db)
        self.search_service = DepartureSearchService(db)

    @contextmanager
    def _transaction(self, action: str, departure_id: Optional[int] = None):
        """Commit on success; roll everything back on any failure, aborts included"""
        try:
            yield
            self.db.commit()
        except TrainTicketingError:
            self.db.rollback()
            raise
        except OperationalError as exc:
            self.db.rollback()
            if is_lock_timeout(exc):
                raise CapacityBusyError(departure_id) from exc
            logger.exception("Failed to {}", action)
            raise PersistenceError(f"Failed to {action}") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to {}", action)
            raise PersistenceError(f"Failed to {action}") from exc
        except BaseException:
            self.db.rollback()
            raise

    def create_booking(self, request: BookingCreateRequest, today: Optional[date] = None) -> BookingDetail:
        """Reserve seats and persist a confirmed booking"""
        today = today or date.today()

        travel_date = parse_travel_date(request.date)
        if travel_date < today:
            raise InvalidDateError("Cannot book trains in the past", InvalidDateError.PAST)

        with self._transaction("save booking", request.departure_id):
            departure = self.db.get(Departure, request.departure_id)
            if not departure:
                raise NotFoundError("Departure not found")

            if weekday_index(travel_date) != departure.weekday:
                raise InvalidDateError("Selected date does not match train schedule day", InvalidDateError.WEEKDAY)

            if not request.passengers:
                raise ValidationError("At least one passenger is required")

            seats = seats_needed(p.category for p in request.passengers)
            self.capacity.reserve(departure.id, seats)
            booking = self._persist_booking(departure, travel_date, request.passengers)

        logger.info(
            "Booking created: {} for {} passengers on departure {}",
            booking.reference, len(request.passengers), request.departure_id,
        )
        return self.get_booking(booking.reference)

    def cancel_booking(self, reference: str) -> CancellationOutcome:
        """Cancel a booking and give its seats back to the departure"""
        with self._transaction("cancel booking"):
            apply_lock_timeout(self.db)
            booking = self.db.execute(
                select(Booking)
                .where(Booking.reference == reference)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()

            if booking is None:
                raise NotFoundError("Booking not found")

            if booking.status == BookingStatus.CANCELLED.value:
                logger.info("Booking {} already cancelled", reference)
                return CancellationOutcome.ALREADY_CANCELLED

            # Recount from the stored passengers, not from the departure
            seats_to_restore = seats_needed(p.category for p in booking.passengers)
            booking.status = BookingStatus.CANCELLED.value
            self.capacity.restore(booking.departure_id, seats_to_restore)

        logger.info("Booking cancelled: {} ({} seats restored)", reference, seats_to_restore)
        return CancellationOutcome.CANCELLED

    def get_booking(self, reference: str) -> BookingDetail:
        """Booking with departure, train, stations and passengers"""
        booking = self.db.query(Booking).options(
            joinedload(Booking.departure).joinedload(Departure.train),
            joinedload(Booking.departure).joinedload(Departure.origin),
            joinedload(Booking.departure).joinedload(Departure.destination),
            selectinload(Booking.passengers),
        ).filter(Booking.reference == reference).populate_existing().first()

        if not booking:
            raise NotFoundError("Booking not found")

        return BookingDetail.model_validate(booking)

    def book_direct(self, request: DirectBookingRequest, today: Optional[date] = None) -> DirectBookingResult:
        """Search, pick one departure by the requested criterion and book it"""
        if not request.passengers:
            raise ValidationError("At least one passenger is required")

        search = SearchRequest(
            origin=request.origin,
            destination=request.destination,
            date=request.date,
            time_preference=request.time_preference,
            passenger_count=max(seats_needed(p.category for p in request.passengers), 1),
            filters=request.filters,
        )
        offers = self.search_service.search(search, today=today)
        selected = self.select_offer(offers, request.selection)

        booking = self.create_booking(
            BookingCreateRequest(
                departure_id=selected.departure.id,
                date=request.date,
                passengers=request.passengers,
            ),
            today=today,
        )

        return DirectBookingResult(
            booking=booking,
            selected_offer=selected,
            total_found=len(offers),
        )

    @staticmethod
    def select_offer(offers: List[DepartureOffer], selection: TrainSelection) -> DepartureOffer:
        """Pick an offer; offers are in departure order so ties keep the earlier one"""
        if not offers:
            raise ValueError("No offers to select from")

        if selection == TrainSelection.LAST:
            return offers[-1]
        if selection == TrainSelection.CHEAPEST:
            return min(offers, key=lambda o: o.price_per_person)
        if selection == TrainSelection.FASTEST:
            return min(offers, key=lambda o: o.duration_minutes)
        return offers[0]

    def _persist_booking(
        self,
        departure: Departure,
        travel_date: date,
        passengers: List[PassengerCreate]
    ) -> Booking:
        base_fare = Decimal(departure.base_fare)
        created_at = datetime.now()

        passenger_rows = []
        total_price = Decimal("0.00")
        seat_number = 1
        for passenger in passengers:
            fare = price(base_fare, passenger.category)
            total_price += fare

            seat_label = None
            if consumes_seat(passenger.category):
                seat_label = f"{seat_number}A"
                seat_number += 1

            passenger_rows.append(Passenger(
                name=passenger.name,
                category=passenger.category,
                seat_label=seat_label,
                fare=fare,
            ))

        booking = Booking(
            reference=self.references.next_reference(created_at),
            departure_id=departure.id,
            travel_date=travel_date,
            passenger_count=len(passengers),
            total_price=total_price,
            status=BookingStatus.CONFIRMED.value,
            created_at=created_at,
            passengers=passenger_rows,
        )

        try:
            with self.db.begin_nested():
                self.db.add(booking)
                self.db.flush()
        except IntegrityError:
            # Another transaction took the reference after our existence check
            booking.reference = self.references.fallback_reference(created_at.year)
            logger.warning("Booking reference collision, retrying with {}", booking.reference)
            with self.db.begin_nested():
                self.db.add(booking)
                self.db.flush()

        return booking
