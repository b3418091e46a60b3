"""Shared exceptions for the booking engine."""

from typing import Optional


class TrainTicketingError(Exception):
    """Base domain error with customizable message and status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(TrainTicketingError):
    """Malformed or out-of-range input (400)."""

    def __init__(self, message: str):
        super().__init__(message, 400)


class InvalidDateError(ValidationError):
    PAST = "past"
    TOO_FAR = "too_far"
    FORMAT = "format"
    WEEKDAY = "weekday"

    def __init__(self, message: str, reason: str):
        self.reason = reason
        super().__init__(message)


class NotFoundError(TrainTicketingError):
    """Unknown departure, booking or station (404)."""

    def __init__(self, message: str):
        super().__init__(message, 404)


class StationNotFoundError(NotFoundError):
    def __init__(self, query: str, side: Optional[str] = None):
        self.query = query
        self.side = side
        if side:
            message = f"{side.capitalize()} station not found: {query}"
        else:
            message = f"Station not found: {query}"
        super().__init__(message)


class NoResultsError(TrainTicketingError):
    """Search found nothing after filtering (404)."""

    def __init__(self, message: str = "No trains found for the specified criteria"):
        super().__init__(message, 404)


class InsufficientCapacityError(TrainTicketingError):
    """Departure cannot take the requested seats (409)."""

    def __init__(self, departure_id: int, seats_needed: int, seats_available: int):
        self.departure_id = departure_id
        self.seats_needed = seats_needed
        self.seats_available = seats_available
        super().__init__(
            f"Insufficient seats available (need {seats_needed}, have {seats_available})",
            409,
        )


class CapacityBusyError(TrainTicketingError):
    """Lock wait on a departure timed out; the request may be retried (503)."""

    def __init__(self, departure_id: Optional[int] = None):
        self.departure_id = departure_id
        super().__init__("Departure is busy, please retry", 503)


class PersistenceError(TrainTicketingError):
    """Transaction or commit failure (500). Details are logged, not surfaced."""

    def __init__(self, message: str = "Failed to save booking"):
        super().__init__(message, 500)
