from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from src.database import get_db
from src.departures.schemas import DepartureDetail, DepartureOffer, SearchRequest
from src.departures.service import DepartureSearchService
from src.exceptions import TrainTicketingError

router = APIRouter()

@router.post("/search", response_model=List[DepartureOffer])
def search_departures(
    request: SearchRequest,
    db: Session = Depends(get_db)
):
    """Search bookable departures between two stations on a date"""
    try:
        return DepartureSearchService(db).search(request)
    except TrainTicketingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

@router.get("/{departure_id}", response_model=DepartureDetail)
def get_departure(
    departure_id: int,
    db: Session = Depends(get_db)
):
    """Get departure details with train and stations"""
    try:
        return DepartureSearchService(db).get_departure(departure_id)
    except TrainTicketingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
