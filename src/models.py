from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Time, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# ================================
# Reference enumerations
# ================================
class TrainCategory(str, Enum):
    FRECCIAROSSA = "Frecciarossa"
    INTERCITY = "Intercity"
    REGIONALE = "Regionale"

# per-km fare coefficient (EUR) and default amenities for each category
TRAIN_CATEGORY_PROFILES = {
    TrainCategory.FRECCIAROSSA: {"fare_per_km": Decimal("0.15"), "has_wifi": True, "has_food": True},
    TrainCategory.INTERCITY: {"fare_per_km": Decimal("0.10"), "has_wifi": True, "has_food": False},
    TrainCategory.REGIONALE: {"fare_per_km": Decimal("0.06"), "has_wifi": False, "has_food": False},
}

def fare_for_distance(category: TrainCategory, distance_km: int) -> Decimal:
    """Adult base fare for a departure of the given category and length"""
    coefficient = TRAIN_CATEGORY_PROFILES[TrainCategory(category)]["fare_per_km"]
    return (coefficient * Decimal(distance_km)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class PassengerCategory(str, Enum):
    ADULT = "adult"
    SENIOR = "senior"
    CHILD = "child"
    INFANT = "infant"

def weekday_index(day: date) -> int:
    """Timetable weekday: 0 = Sunday ... 6 = Saturday"""
    return day.isoweekday() % 7

# ================================
# Stations & Trains
# ================================
class Station(Base):
    __tablename__ = "stations"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    city = Column(String(100), nullable=False)
    code = Column(String(10), unique=True, nullable=False)

    # Relationships
    departures_from = relationship("Departure", foreign_keys="Departure.origin_id", back_populates="origin")
    departures_to = relationship("Departure", foreign_keys="Departure.destination_id", back_populates="destination")

class Train(Base):
    __tablename__ = "trains"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    number = Column(String(20), unique=True, nullable=False)
    category = Column(String(20), nullable=False)
    has_wifi = Column(Boolean, default=False, nullable=False)
    has_food = Column(Boolean, default=False, nullable=False)
    total_seats = Column(Integer, nullable=False)

    # Relationships
    departures = relationship("Departure", back_populates="train")

# ================================
# Departures (recurring timetable slots)
# ================================
class Departure(Base):
    __tablename__ = "departures"
    __table_args__ = (
        CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_departures_weekday"),
        CheckConstraint("remaining_capacity >= 0", name="ck_departures_remaining_capacity"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    train_id = Column(BigInteger, ForeignKey("trains.id"), nullable=False)
    origin_id = Column(BigInteger, ForeignKey("stations.id"), nullable=False, index=True)
    destination_id = Column(BigInteger, ForeignKey("stations.id"), nullable=False, index=True)
    departure_time = Column(Time, nullable=False)
    arrival_time = Column(Time, nullable=False)
    weekday = Column(Integer, nullable=False, index=True)
    base_fare = Column(Numeric(10, 2), nullable=False)
    remaining_capacity = Column(Integer, nullable=False)

    # Relationships
    train = relationship("Train", back_populates="departures")
    origin = relationship("Station", foreign_keys=[origin_id], back_populates="departures_from")
    destination = relationship("Station", foreign_keys=[destination_id], back_populates="departures_to")
    bookings = relationship("Booking", back_populates="departure")

# ================================
# Bookings & Passengers
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    reference = Column(String(32), unique=True, nullable=False, index=True)
    departure_id = Column(BigInteger, ForeignKey("departures.id"), nullable=False)
    travel_date = Column(Date, nullable=False, index=True)
    passenger_count = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    departure = relationship("Departure", back_populates="bookings")
    passengers = relationship(
        "Passenger",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Passenger.id",
    )

class Passenger(Base):
    __tablename__ = "passengers"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    category = Column(String(20), nullable=False)
    seat_label = Column(String(10))
    fare = Column(Numeric(10, 2), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="passengers")
