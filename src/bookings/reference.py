import time
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.config import settings
from src.models import Booking


class ReferenceGenerator:
    """Human-readable booking references: ``TRN-2025-00001``.

    The sequence is the number of bookings created this year plus one. Two
    concurrent bookings can compute the same sequence, so the candidate is
    checked against the store and replaced by a clock-derived suffix when it
    is already taken.
    """

    def __init__(self, db: Session, prefix: Optional[str] = None):
        self.db = db
        self.prefix = prefix or settings.BOOKING_REFERENCE_PREFIX

    def next_reference(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        year = now.year

        count = self.db.scalar(
            select(func.count(Booking.id)).where(
                Booking.created_at >= datetime(year, 1, 1),
                Booking.created_at < datetime(year + 1, 1, 1),
            )
        )
        reference = f"{self.prefix}-{year}-{count + 1:05d}"

        while self.exists(reference):
            reference = self.fallback_reference(year)

        return reference

    def fallback_reference(self, year: int) -> str:
        return f"{self.prefix}-{year}-{time.time_ns() // 1000}"

    def exists(self, reference: str) -> bool:
        return self.db.scalar(
            select(Booking.id).where(Booking.reference == reference)
        ) is not None
