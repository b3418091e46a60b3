import re
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.bookings.booking_service import BookingService
from src.bookings.schemas import (
    BookingCreateRequest, CancellationOutcome, DirectBookingRequest, PassengerCreate, TrainSelection
)
from src.departures.service import DepartureSearchService
from src.departures.schemas import SearchRequest
from src.exceptions import (
    InsufficientCapacityError, InvalidDateError, NotFoundError, PersistenceError,
    StationNotFoundError, ValidationError
)
from src.models import Booking, BookingStatus, Departure, Passenger


def _capacity(db, departure_id):
    return db.execute(
        select(Departure.remaining_capacity).where(Departure.id == departure_id)
    ).scalar_one()


def _booking_count(db):
    return db.execute(select(func.count(Booking.id))).scalar_one()


def _request(departure_id, travel_date, *categories):
    return BookingCreateRequest(
        departure_id=departure_id,
        date=travel_date,
        passengers=[
            PassengerCreate(name=f"Passenger {i + 1}", category=category)
            for i, category in enumerate(categories)
        ],
    )


def test_adult_with_infant_takes_one_seat(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)

    booking = BookingService(db).create_booking(
        _request(departure_id, travel_date, "adult", "infant"), today=today
    )

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.passenger_count == 2
    assert booking.total_price == Decimal("86.70")
    assert [p.seat_label for p in booking.passengers] == ["1A", None]
    assert [p.fare for p in booking.passengers] == [Decimal("86.70"), Decimal("0.00")]
    assert booking.travel_date == travel_date
    assert booking.departure.id == departure_id
    assert re.fullmatch(rf"TRN-{today.year}-00001", booking.reference)
    assert _capacity(db, departure_id) == 499


def test_mixed_party_fares_and_seat_labels(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)

    booking = BookingService(db).create_booking(
        _request(departure_id, travel_date, "adult", "senior", "child", "infant"), today=today
    )

    # 86.70 + 69.36 + 60.69 + 0.00
    assert booking.total_price == Decimal("216.75")
    assert [p.seat_label for p in booking.passengers] == ["1A", "2A", "3A", None]
    assert [p.category for p in booking.passengers] == ["adult", "senior", "child", "infant"]
    assert _capacity(db, departure_id) == 497


def test_unknown_category_is_kept_and_charged_as_adult(db, network, today, travel_date):
    departure_id = network.departure_id("rg_afternoon", travel_date)

    booking = BookingService(db).create_booking(
        _request(departure_id, travel_date, "student"), today=today
    )

    assert booking.passengers[0].category == "student"
    assert booking.passengers[0].fare == Decimal("34.68")
    assert booking.passengers[0].seat_label == "1A"


def test_infant_only_booking_keeps_capacity(db, network, today, travel_date):
    departure_id = network.departure_id("last_seat", travel_date)

    booking = BookingService(db).create_booking(
        _request(departure_id, travel_date, "infant"), today=today
    )

    assert booking.total_price == Decimal("0.00")
    assert _capacity(db, departure_id) == 1


def test_references_are_sequential(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)
    service = BookingService(db)

    first = service.create_booking(_request(departure_id, travel_date, "adult"), today=today)
    second = service.create_booking(_request(departure_id, travel_date, "adult"), today=today)

    assert first.reference == f"TRN-{today.year}-00001"
    assert second.reference == f"TRN-{today.year}-00002"


def test_reference_collision_on_insert_uses_fallback(db, network, today, travel_date, monkeypatch):
    departure_id = network.departure_id("fr_morning", travel_date)
    service = BookingService(db)
    first = service.create_booking(_request(departure_id, travel_date, "adult"), today=today)

    # Simulate a concurrent writer that took the same sequence number
    monkeypatch.setattr(service.references, "next_reference", lambda now=None: first.reference)
    second = service.create_booking(_request(departure_id, travel_date, "adult"), today=today)

    assert second.reference != first.reference
    assert second.reference.startswith(f"TRN-{today.year}-")
    assert _booking_count(db) == 2
    assert _capacity(db, departure_id) == 498


def test_insufficient_capacity_changes_nothing(db, network, today, travel_date):
    departure_id = network.departure_id("last_seat", travel_date)

    with pytest.raises(InsufficientCapacityError) as exc_info:
        BookingService(db).create_booking(
            _request(departure_id, travel_date, "adult", "adult"), today=today
        )

    assert exc_info.value.message == "Insufficient seats available (need 2, have 1)"
    assert _capacity(db, departure_id) == 1
    assert _booking_count(db) == 0


def test_date_must_match_departure_weekday(db, network, today, travel_date):
    other_day = network.departure_id("fr_morning", travel_date + timedelta(days=1))

    with pytest.raises(InvalidDateError) as exc_info:
        BookingService(db).create_booking(_request(other_day, travel_date, "adult"), today=today)

    assert exc_info.value.reason == InvalidDateError.WEEKDAY
    assert _capacity(db, other_day) == 500


def test_past_date_is_rejected(db, network, today):
    yesterday = today - timedelta(days=1)
    departure_id = network.departure_id("fr_morning", yesterday)

    with pytest.raises(InvalidDateError) as exc_info:
        BookingService(db).create_booking(_request(departure_id, yesterday, "adult"), today=today)

    assert exc_info.value.reason == InvalidDateError.PAST


def test_bad_date_format_is_rejected(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)
    request = BookingCreateRequest(departure_id=departure_id, date="next friday",
                                   passengers=[PassengerCreate(name="Anna")])

    with pytest.raises(InvalidDateError) as exc_info:
        BookingService(db).create_booking(request, today=today)

    assert exc_info.value.reason == InvalidDateError.FORMAT


def test_unknown_departure(db, network, today, travel_date):
    with pytest.raises(NotFoundError):
        BookingService(db).create_booking(_request(999999, travel_date, "adult"), today=today)


def test_passengers_are_required(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)

    with pytest.raises(ValidationError):
        BookingService(db).create_booking(_request(departure_id, travel_date), today=today)

    assert _capacity(db, departure_id) == 500


def test_persistence_failure_rolls_back_capacity(db, network, today, travel_date, monkeypatch):
    departure_id = network.departure_id("fr_morning", travel_date)

    def failing(self, departure, travel_date, passengers):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(BookingService, "_persist_booking", failing)

    with pytest.raises(PersistenceError) as exc_info:
        BookingService(db).create_booking(_request(departure_id, travel_date, "adult"), today=today)

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to save booking"
    assert _capacity(db, departure_id) == 500
    assert _booking_count(db) == 0


def test_unexpected_error_rolls_back_and_propagates(db, network, today, travel_date, monkeypatch):
    departure_id = network.departure_id("fr_morning", travel_date)

    def failing(self, departure, travel_date, passengers):
        raise RuntimeError("aborted")

    monkeypatch.setattr(BookingService, "_persist_booking", failing)

    with pytest.raises(RuntimeError):
        BookingService(db).create_booking(_request(departure_id, travel_date, "adult"), today=today)

    assert _capacity(db, departure_id) == 500


def test_cancel_restores_seats_once(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)
    service = BookingService(db)
    booking = service.create_booking(
        _request(departure_id, travel_date, "adult", "child", "infant"), today=today
    )
    assert _capacity(db, departure_id) == 498

    assert service.cancel_booking(booking.reference) == CancellationOutcome.CANCELLED
    assert _capacity(db, departure_id) == 500
    assert service.get_booking(booking.reference).status == BookingStatus.CANCELLED

    assert service.cancel_booking(booking.reference) == CancellationOutcome.ALREADY_CANCELLED
    assert _capacity(db, departure_id) == 500


def test_cancel_keeps_passenger_rows(db, network, today, travel_date):
    departure_id = network.departure_id("fr_morning", travel_date)
    service = BookingService(db)
    booking = service.create_booking(_request(departure_id, travel_date, "adult", "adult"), today=today)

    service.cancel_booking(booking.reference)

    assert db.execute(select(func.count(Passenger.id))).scalar_one() == 2


def test_cancel_unknown_booking(db, network):
    with pytest.raises(NotFoundError):
        BookingService(db).cancel_booking("TRN-2025-99999")


def test_get_unknown_booking(db, network):
    with pytest.raises(NotFoundError):
        BookingService(db).get_booking("TRN-2025-99999")


@pytest.mark.parametrize("selection, expected_time", [
    (TrainSelection.FIRST, "06:00"),
    (TrainSelection.LAST, "23:00"),
    (TrainSelection.CHEAPEST, "13:00"),
    (TrainSelection.FASTEST, "06:00"),
])
def test_book_direct_selection(db, network, today, travel_date, selection, expected_time):
    result = BookingService(db).book_direct(
        DirectBookingRequest(
            origin="Milano",
            destination="RM",
            date=travel_date,
            passengers=[PassengerCreate(name="Marco"), PassengerCreate(name="Lia", category="infant")],
            selection=selection,
        ),
        today=today,
    )

    assert result.total_found == 4
    assert result.selected_offer.departure_time == expected_time
    assert result.booking.departure.id == result.selected_offer.departure.id
    assert result.booking.passenger_count == 2
    assert _capacity(db, result.booking.departure.id) == result.selected_offer.departure.remaining_capacity - 1


def test_book_direct_honours_filters_and_time(db, network, today, travel_date):
    result = BookingService(db).book_direct(
        DirectBookingRequest(
            origin="MI",
            destination="RM",
            date=travel_date,
            time_preference="evening",
            passengers=[PassengerCreate(name="Marco")],
            selection="cheapest",
            filters={"has_wifi": True},
        ),
        today=today,
    )

    assert result.total_found == 1
    assert result.selected_offer.departure_time == "19:00"


def test_book_direct_requires_passengers(db, network, today, travel_date):
    with pytest.raises(ValidationError):
        BookingService(db).book_direct(
            DirectBookingRequest(origin="MI", destination="RM", date=travel_date), today=today
        )


def test_book_direct_unknown_station(db, network, today, travel_date):
    with pytest.raises(StationNotFoundError):
        BookingService(db).book_direct(
            DirectBookingRequest(origin="MI", destination="Atlantis", date=travel_date,
                                 passengers=[PassengerCreate(name="Marco")]),
            today=today,
        )


def test_fastest_compares_real_durations(db, network, today, travel_date):
    offers = DepartureSearchService(db).search(
        SearchRequest(origin="MI", destination="RM", date=travel_date, time_preference="evening"),
        today=today,
    )
    # 19:00-22:00 beats the overnight 23:00-06:30 even though 06:30 < 22:00
    assert BookingService.select_offer(offers, TrainSelection.FASTEST).departure_time == "19:00"


def test_select_offer_requires_offers():
    with pytest.raises(ValueError):
        BookingService.select_offer([], TrainSelection.FIRST)
