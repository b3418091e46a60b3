from pydantic import BaseModel
from typing import List

class StationBase(BaseModel):
    name: str
    city: str
    code: str

class Station(StationBase):
    id: int

    class Config:
        from_attributes = True

class StationList(BaseModel):
    stations: List[Station]
    total: int
