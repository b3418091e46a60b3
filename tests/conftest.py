from datetime import date, time, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from src.database import create_db_engine, get_db, init_db
from src.main import app
from src.models import Departure, Station, Train, TrainCategory, weekday_index

# label: (train, origin, destination, departure, arrival, base fare, capacity)
DEPARTURES = {
    "fr_morning": ("FR9600", "MI", "RM", time(6, 0), time(9, 0), Decimal("86.70"), 500),
    "rg_afternoon": ("RG2030", "MI", "RM", time(13, 0), time(19, 30), Decimal("34.68"), 300),
    "fr_evening": ("FR9602", "MI", "RM", time(19, 0), time(22, 0), Decimal("86.70"), 500),
    "rg_night": ("RG2030", "MI", "RM", time(23, 0), time(6, 30), Decimal("34.68"), 300),
    "last_seat": ("FR9602", "MI", "NA", time(10, 0), time(14, 30), Decimal("50.00"), 1),
}


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}", lock_timeout_seconds=5.0)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def travel_date(today):
    return today + timedelta(days=7)


@pytest.fixture
def network(session_factory):
    """Stations, trains and one timetable slot per label for every weekday.

    Everything is committed and the seeding session closed, so no test
    starts with a database lock held.
    """
    session = session_factory()
    try:
        stations = {
            "MI": Station(name="Milano Centrale", city="Milano", code="MI"),
            "RM": Station(name="Roma Termini", city="Roma", code="RM"),
            "RT": Station(name="Roma Tiburtina", city="Roma", code="RT"),
            "NA": Station(name="Napoli Centrale", city="Napoli", code="NA"),
        }
        trains = {
            "FR9600": Train(number="FR9600", category=TrainCategory.FRECCIAROSSA.value,
                            has_wifi=True, has_food=True, total_seats=500),
            "FR9602": Train(number="FR9602", category=TrainCategory.FRECCIAROSSA.value,
                            has_wifi=True, has_food=True, total_seats=500),
            "RG2030": Train(number="RG2030", category=TrainCategory.REGIONALE.value,
                            has_wifi=False, has_food=False, total_seats=300),
        }
        session.add_all(list(stations.values()) + list(trains.values()))
        session.flush()

        departures = {}
        for weekday in range(7):
            for label, (train, origin, destination, dep, arr, fare, capacity) in DEPARTURES.items():
                departure = Departure(
                    train_id=trains[train].id,
                    origin_id=stations[origin].id,
                    destination_id=stations[destination].id,
                    departure_time=dep,
                    arrival_time=arr,
                    weekday=weekday,
                    base_fare=fare,
                    remaining_capacity=capacity,
                )
                session.add(departure)
                session.flush()
                departures[(label, weekday)] = departure.id

        station_ids = {code: station.id for code, station in stations.items()}
        session.commit()
    finally:
        session.close()

    def departure_id(label, day):
        return departures[(label, weekday_index(day))]

    return SimpleNamespace(stations=station_ids, departures=departures, departure_id=departure_id)


@pytest.fixture
def remaining_capacity(session_factory):
    """Read a departure's remaining capacity in a short-lived session"""
    def read(departure_id):
        session = session_factory()
        try:
            return session.get(Departure, departure_id).remaining_capacity
        finally:
            session.close()
    return read


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
