#!/usr/bin/env python3

import sys
import os
from datetime import time

# Add src to path
sys.path.append(os.path.join(os.path.dirname(__file__), 'src'))

from loguru import logger
from sqlalchemy.orm import Session
from src.database import SessionLocal, engine, init_db
from src.logging_config import setup_logging
from src.models import (
    Booking, Departure, Passenger, Station, Train, TrainCategory,
    TRAIN_CATEGORY_PROFILES, fare_for_distance
)

STATIONS = [
    ("Milano Centrale", "Milano", "MI"),
    ("Roma Termini", "Roma", "RM"),
    ("Torino Porta Nuova", "Torino", "TO"),
    ("Firenze Santa Maria Novella", "Firenze", "FI"),
    ("Napoli Centrale", "Napoli", "NA"),
    ("Venezia Santa Lucia", "Venezia", "VE"),
    ("Bologna Centrale", "Bologna", "BO"),
    ("Verona Porta Nuova", "Verona", "VR"),
]

TRAINS = [
    # Frecciarossa (high-speed)
    ("FR9600", TrainCategory.FRECCIAROSSA, 500),
    ("FR9602", TrainCategory.FRECCIAROSSA, 500),
    ("FR9604", TrainCategory.FRECCIAROSSA, 500),
    ("FR9606", TrainCategory.FRECCIAROSSA, 500),
    ("FR9608", TrainCategory.FRECCIAROSSA, 500),
    ("FR9610", TrainCategory.FRECCIAROSSA, 500),
    ("FR9612", TrainCategory.FRECCIAROSSA, 500),
    ("FR9614", TrainCategory.FRECCIAROSSA, 500),
    ("FR8500", TrainCategory.FRECCIAROSSA, 480),
    ("FR8502", TrainCategory.FRECCIAROSSA, 480),
    ("FR8504", TrainCategory.FRECCIAROSSA, 480),
    # Intercity
    ("IC520", TrainCategory.INTERCITY, 400),
    ("IC522", TrainCategory.INTERCITY, 400),
    ("IC524", TrainCategory.INTERCITY, 400),
    ("IC526", TrainCategory.INTERCITY, 400),
    ("IC610", TrainCategory.INTERCITY, 380),
    ("IC612", TrainCategory.INTERCITY, 380),
    # Regionale
    ("RG2030", TrainCategory.REGIONALE, 300),
    ("RG2032", TrainCategory.REGIONALE, 300),
    ("RG2034", TrainCategory.REGIONALE, 300),
    ("RG2036", TrainCategory.REGIONALE, 300),
]

HOURLY = [time(h, 0) for h in range(6, 22)]

# origin, destination, distance (km), train number prefix, journey minutes, departure times
ROUTES = [
    ("MI", "RM", 578, "FR96", 180, [time(6, 0), time(7, 30), time(9, 0), time(11, 30),
                                    time(14, 0), time(16, 30), time(18, 0), time(20, 0)]),
    ("RM", "MI", 578, "FR96", 180, [time(6, 0), time(7, 30), time(9, 0), time(11, 30),
                                    time(14, 0), time(16, 30), time(18, 0), time(20, 0)]),
    ("MI", "VE", 267, "FR85", 150, [time(6, 30), time(8, 30), time(10, 30), time(12, 30),
                                    time(15, 30), time(17, 30), time(19, 30)]),
    ("TO", "FI", 339, "IC52", 240, [time(7, 0), time(9, 0), time(13, 0), time(15, 0), time(17, 0)]),
    ("RM", "NA", 225, "FR96", 90, [time(h, 0) for h in range(6, 22, 2)]),
    ("MI", "BO", 218, "RG", 60, HOURLY),
    ("VR", "VE", 114, "IC6", 90, HOURLY),
]

def _arrival(departure_time: time, minutes: int) -> time:
    total = (departure_time.hour * 60 + departure_time.minute + minutes) % (24 * 60)
    return time(total // 60, total % 60)

def create_seed_data(db: Session) -> dict:
    """Load the Italian demo network: stations, trains and a weekly timetable"""
    logger.info("Creating seed data for the Italian rail network...")

    # Clear existing data (in reverse dependency order)
    logger.info("Clearing existing data...")
    db.query(Passenger).delete()
    db.query(Booking).delete()
    db.query(Departure).delete()
    db.query(Train).delete()
    db.query(Station).delete()

    # 1. Stations
    logger.info("Creating stations...")
    stations = {
        code: Station(name=name, city=city, code=code)
        for name, city, code in STATIONS
    }
    db.add_all(stations.values())
    db.flush()

    # 2. Trains
    logger.info("Creating trains...")
    trains = []
    for number, category, seats in TRAINS:
        profile = TRAIN_CATEGORY_PROFILES[category]
        trains.append(Train(
            number=number,
            category=category.value,
            has_wifi=profile["has_wifi"],
            has_food=profile["has_food"],
            total_seats=seats,
        ))
    db.add_all(trains)
    db.flush()

    # 3. Departures, every route runs every day of the week
    logger.info("Creating departures...")
    departure_count = 0
    for origin, destination, distance_km, prefix, minutes, times in ROUTES:
        pool = [t for t in trains if t.number.startswith(prefix)]
        base_fare = fare_for_distance(pool[0].category, distance_km)

        for weekday in range(7):
            for i, departure_time in enumerate(times):
                train = pool[i % len(pool)]
                db.add(Departure(
                    train_id=train.id,
                    origin_id=stations[origin].id,
                    destination_id=stations[destination].id,
                    departure_time=departure_time,
                    arrival_time=_arrival(departure_time, minutes),
                    weekday=weekday,
                    base_fare=base_fare,
                    remaining_capacity=train.total_seats,
                ))
                departure_count += 1

    db.commit()

    summary = {
        "stations": len(stations),
        "trains": len(trains),
        "departures": departure_count,
    }
    logger.info("Seed data created successfully: {}", summary)
    return summary

if __name__ == "__main__":
    setup_logging()
    init_db(engine)
    db = SessionLocal()
    try:
        create_seed_data(db)
    except Exception:
        db.rollback()
        logger.exception("Error creating seed data")
        raise
    finally:
        db.close()
