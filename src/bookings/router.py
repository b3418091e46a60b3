from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.database import get_db
from src.bookings.schemas import (
    BookingCreateRequest, BookingDetail, BookingResponse, CancellationOutcome,
    CancellationResponse, DirectBookingRequest, DirectBookingResult
)
from src.bookings.booking_service import BookingService
from src.exceptions import CapacityBusyError, TrainTicketingError

router = APIRouter()

def _http_error(e: TrainTicketingError) -> HTTPException:
    headers = {"Retry-After": "1"} if isinstance(e, CapacityBusyError) else None
    return HTTPException(status_code=e.status_code, detail=e.message, headers=headers)

@router.post("/", response_model=BookingResponse)
def create_booking(
    request: BookingCreateRequest,
    db: Session = Depends(get_db)
):
    """Create a confirmed booking on a departure"""

    booking_service = BookingService(db)

    try:
        booking = booking_service.create_booking(request)
    except TrainTicketingError as e:
        raise _http_error(e)

    return BookingResponse(
        success=True,
        message="Booking created successfully",
        booking=booking
    )

@router.post("/direct", response_model=DirectBookingResult)
def book_direct(
    request: DirectBookingRequest,
    db: Session = Depends(get_db)
):
    """Search and book the most suitable departure in one step"""

    booking_service = BookingService(db)

    try:
        return booking_service.book_direct(request)
    except TrainTicketingError as e:
        raise _http_error(e)

@router.get("/{reference}", response_model=BookingDetail)
def get_booking(
    reference: str,
    db: Session = Depends(get_db)
):
    """Get booking by reference"""

    try:
        return BookingService(db).get_booking(reference)
    except TrainTicketingError as e:
        raise _http_error(e)

@router.delete("/{reference}", response_model=CancellationResponse)
def cancel_booking(
    reference: str,
    db: Session = Depends(get_db)
):
    """Cancel a booking and release its seats"""

    booking_service = BookingService(db)

    try:
        outcome = booking_service.cancel_booking(reference)
    except TrainTicketingError as e:
        raise _http_error(e)

    if outcome == CancellationOutcome.ALREADY_CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booking {reference} is already cancelled"
        )

    return CancellationResponse(
        success=True,
        reference=reference,
        outcome=outcome,
        message=f"Booking {reference} cancelled successfully"
    )
