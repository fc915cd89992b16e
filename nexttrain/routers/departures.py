from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from nexttrain.dependencies import Services, get_services
from nexttrain.schemas.departures import Departures
from nexttrain.schemas.response import Envelope
from nexttrain.services.departures import board_to_response
from nexttrain.utils.response import success_response

router = APIRouter(prefix="/stations", tags=["Departures"])


@router.get(
    "/{station_name}/departures",
    summary="Next departures from a station",
    response_model=Envelope[Departures],
    description=(
        "Returns the next trains leaving a station, split into the two running "
        "directions. Trains terminating at the station are excluded and each "
        "direction holds at most 5 entries.\n\n"
        "Parameters:\n"
        "- `station_name` (string): station display name, e.g. `臺北`.\n"
        "- `at` (ISO-8601, optional): reference instant; defaults to now. "
        "Naive values are read in the transit time zone.\n\n"
        "Example:\n``GET /stations/臺北/departures?at=2024-03-01T08:00:00+08:00``"
    ),
)
def get_departures(station_name: str, at: Optional[datetime] = None, services: Services = Depends(get_services)):
    if at is not None and at.tzinfo is None:
        at = at.replace(tzinfo=services.tz)
    name = services.departures.normalize_station_name(station_name)
    board = services.departures.nearest(name, now=at)
    return success_response(board_to_response(board, services.tz).model_dump(mode="json"))
