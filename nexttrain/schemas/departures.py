"""Schemas for nearest departures at a station."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from nexttrain.schemas.timetable import TrainStop


class Cohort(BaseModel):
    """Upcoming stops for one running direction."""
    direction: int
    stops: List[TrainStop] = []


class DepartureBoard(BaseModel):
    station_name: str
    query_time: datetime
    cohorts: List[Cohort] = []

    def cohort(self, direction: int) -> List[TrainStop]:
        for c in self.cohorts:
            if c.direction == direction:
                return c.stops
        return []


class UpcomingDeparture(BaseModel):
    """A train leaving the station, as returned by the HTTP API."""
    train_id: str
    train_type: Optional[str] = None
    train_type_code: Optional[str] = None
    destination: str
    departure_text: str  # HH:MM as published
    departure_time: datetime
    minutes_until: int
    stop_sequence: int


class DepartureCohort(BaseModel):
    direction: int
    label: str
    departures: List[UpcomingDeparture] = []


class Departures(BaseModel):
    station_name: str
    query_time: str  # ISO-8601 in the transit time zone
    cohorts: List[DepartureCohort] = []
