from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from src.database import get_db
from src.exceptions import TrainTicketingError
from src.stations.schemas import Station, StationList
from src.stations.service import StationResolver

router = APIRouter()

@router.get("/", response_model=StationList)
def get_stations(db: Session = Depends(get_db)):
    """Get all stations for autocomplete"""
    stations = StationResolver(db).list_stations()
    return StationList(stations=stations, total=len(stations))

@router.get("/resolve", response_model=Station)
def resolve_station(
    q: str = Query(..., min_length=1, description="Station code, name or city"),
    db: Session = Depends(get_db)
):
    """Resolve free text to a single station"""
    try:
        return StationResolver(db).resolve(q)
    except TrainTicketingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
