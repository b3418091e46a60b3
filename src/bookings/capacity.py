from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from loguru import logger

from src.database import apply_lock_timeout, is_lock_timeout
from src.exceptions import CapacityBusyError, InsufficientCapacityError, NotFoundError
from src.models import Departure


class CapacityStore:
    """Remaining seats per departure, changed only under a row lock.

    Both operations run inside the caller's transaction and never commit:
    the booking and the capacity change succeed or roll back together.
    """

    def __init__(self, db: Session):
        self.db = db

    def reserve(self, departure_id: int, seats_needed: int) -> Departure:
        if seats_needed < 0:
            raise ValueError("seats_needed must not be negative")

        departure = self._lock(departure_id)
        if seats_needed > departure.remaining_capacity:
            logger.info(
                "Capacity rejected on departure {}: need {}, have {}",
                departure_id, seats_needed, departure.remaining_capacity,
            )
            raise InsufficientCapacityError(departure_id, seats_needed, departure.remaining_capacity)

        departure.remaining_capacity -= seats_needed
        self.db.flush()
        return departure

    def restore(self, departure_id: int, seats: int) -> Departure:
        if seats < 0:
            raise ValueError("seats must not be negative")

        departure = self._lock(departure_id)
        departure.remaining_capacity += seats
        self.db.flush()
        return departure

    def _lock(self, departure_id: int) -> Departure:
        try:
            apply_lock_timeout(self.db)
            departure = self.db.execute(
                select(Departure)
                .where(Departure.id == departure_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except OperationalError as exc:
            if not is_lock_timeout(exc):
                raise
            logger.warning("Lock wait on departure {} timed out: {}", departure_id, exc.orig)
            raise CapacityBusyError(departure_id) from exc

        if departure is None:
            raise NotFoundError("Departure not found")
        return departure
