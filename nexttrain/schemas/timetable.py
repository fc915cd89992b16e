"""Persisted timetable documents.

Field names are snake_case in Python and camelCase in the store, so queries
address e.g. `station.name`, `depart.time` and `train.direction`.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from nexttrain.core.document_store import SERVER_TIMESTAMP

SERVICE_DATES = "trainDates"
TRAIN_STOPS = "trainStops"


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class LatLng(_Document):
    """Station coordinates; not filled from the timetable feed, kept for document compatibility."""

    latitude: float
    longitude: float


class Station(_Document):
    """Timetable feeds fill only `id` and `name`; the optional fields are kept for document compatibility."""

    id: str
    name: str
    reservation_code: Optional[str] = None
    location: Optional[LatLng] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    station_class: Optional[str] = None


class TrainType(_Document):
    id: str
    name: str
    code: Optional[str] = None


class Train(_Document):
    id: str
    destination: Station
    direction: Optional[int] = None
    train_type: Optional[TrainType] = None
    notes: Optional[str] = None


class StopTime(_Document):
    """Resolved instant plus the operator's original `HH:MM` text.

    `time` is None when the text could not be parsed.
    """
    time: Optional[datetime] = None
    text: str = ""


class TrainStop(_Document):
    train: Train
    stop_sequence: int
    station: Station
    arrive: StopTime
    depart: StopTime
    update_time: Optional[datetime] = None

    @property
    def doc_id(self) -> str:
        return f"{self.train.id}_{self.stop_sequence:03d}"

    @property
    def is_terminal(self) -> bool:
        """True when this stop is the train's own destination."""
        return self.station.id == self.train.destination.id

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["updateTime"] = SERVER_TIMESTAMP
        return doc


class ServiceDate(_Document):
    id: str  # YYYYMMDD
    publish_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    @property
    def path(self) -> str:
        return f"{SERVICE_DATES}/{self.id}"

    def to_document(self) -> Dict[str, Any]:
        return {"publishTime": self.publish_time, "updateTime": SERVER_TIMESTAMP}


def train_stop_path(date_key: str, stop: TrainStop) -> str:
    return f"{SERVICE_DATES}/{date_key}/{TRAIN_STOPS}/{stop.doc_id}"
