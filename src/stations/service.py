from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from typing import List, Optional
from difflib import SequenceMatcher
from src.models import Station
from src.exceptions import StationNotFoundError, ValidationError

def similarity(a: str, b: str) -> float:
    """Case-insensitive similarity ratio between 0 and 1"""
    return SequenceMatcher(None, a.lower(), b.lower()).ratio()

class StationResolver:
    """Maps free text typed by a user to a station.

    Stations are read on every call; the table is small and stations change
    rarely, so nothing is cached between requests.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, text: str, side: Optional[str] = None) -> Station:
        """Resolve a station code, name or city to a single station"""
        query = (text or "").strip()
        if not query:
            raise ValidationError(f"{side.capitalize()} station is required" if side else "Station is required")

        # Exact code match wins
        station = self.db.query(Station).filter(
            func.upper(Station.code) == query.upper()
        ).first()
        if station:
            return station

        # Substring match on name or city, best similarity first
        pattern = f"%{query}%"
        candidates = self.db.query(Station).filter(
            or_(Station.name.ilike(pattern), Station.city.ilike(pattern))
        ).all()
        if not candidates:
            raise StationNotFoundError(query, side)

        return max(
            sorted(candidates, key=lambda s: s.name),
            key=lambda s: max(similarity(query, s.name), similarity(query, s.city)),
        )

    def list_stations(self) -> List[Station]:
        """All stations for autocomplete"""
        return self.db.query(Station).order_by(Station.name).all()
