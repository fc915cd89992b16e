import logging
from datetime import datetime, timezone, tzinfo
from typing import List, Optional, Sequence

from pydantic import ValidationError

from nexttrain.core.document_store import DocumentStore, Query
from nexttrain.core.errors import DocumentStoreError
from nexttrain.schemas.departures import Cohort, DepartureBoard, DepartureCohort, Departures, UpcomingDeparture
from nexttrain.schemas.timetable import TRAIN_STOPS, TrainStop
from nexttrain.services.normalizer import DIRECTIONS
from nexttrain.utils.time_utils import minutes_between

logger = logging.getLogger("nexttrain.departures")

COHORT_LABELS = {0: "順行", 1: "逆行"}


class DepartureQuery:
    """Next departures from a station, split by running direction.

    Searches every service date's stops at once. Each direction cohort is
    fetched in departure order, capped at `fetch_limit`, stripped of stops
    where the train terminates, then truncated to `result_limit`.
    """

    def __init__(self, store: DocumentStore, fetch_limit: int = 20, result_limit: int = 5, directions: Sequence[int] = DIRECTIONS):
        self.store = store
        self.fetch_limit = fetch_limit
        self.result_limit = result_limit
        self.directions = tuple(directions)
        store.ensure_index(TRAIN_STOPS, ["station.name", "train.direction", "depart.time"])

    @staticmethod
    def normalize_station_name(name: str) -> str:
        # the feed only uses the traditional form of 台
        return name.strip().replace("台", "臺")

    def _cohort_query(self, station_name: str, direction: int, now: datetime) -> Query:
        return (
            self.store.collection_group(TRAIN_STOPS)
            .where("station.name", "==", station_name)
            .where("train.direction", "==", direction)
            .where("depart.time", ">=", now)
            .order_by("depart.time")
            .limit(self.fetch_limit)
        )

    def _run_cohort(self, query: Query) -> List[TrainStop]:
        try:
            docs = query.get()
        except DocumentStoreError as e:
            logger.error("Departure query failed: %s", e)
            return []

        stops: List[TrainStop] = []
        for doc in docs:
            try:
                stop = TrainStop.model_validate(doc.data)
            except ValidationError:
                logger.warning("Skipping undecodable stop %s", doc.path)
                continue
            if stop.is_terminal:
                continue
            stops.append(stop)
        return stops[: self.result_limit]

    def nearest(self, station_name: str, now: Optional[datetime] = None) -> DepartureBoard:
        now = now or datetime.now(timezone.utc)
        cohorts = [
            Cohort(direction=d, stops=self._run_cohort(self._cohort_query(station_name, d, now)))
            for d in self.directions
        ]
        logger.debug("Departures for %s: %s", station_name, {c.direction: len(c.stops) for c in cohorts})
        return DepartureBoard(station_name=station_name, query_time=now, cohorts=cohorts)


def to_upcoming(stop: TrainStop, now: datetime, tz: tzinfo) -> UpcomingDeparture:
    train_type = stop.train.train_type
    return UpcomingDeparture(
        train_id=stop.train.id,
        train_type=train_type.name if train_type else None,
        train_type_code=train_type.code if train_type else None,
        destination=stop.train.destination.name,
        departure_text=stop.depart.text,
        departure_time=stop.depart.time.astimezone(tz),
        minutes_until=minutes_between(now, stop.depart.time),
        stop_sequence=stop.stop_sequence,
    )


def board_to_response(board: DepartureBoard, tz: tzinfo) -> Departures:
    now = board.query_time
    return Departures(
        station_name=board.station_name,
        query_time=now.astimezone(tz).isoformat(timespec="seconds"),
        cohorts=[
            DepartureCohort(
                direction=c.direction,
                label=COHORT_LABELS.get(c.direction, str(c.direction)),
                departures=[to_upcoming(s, now, tz) for s in c.stops],
            )
            for c in board.cohorts
        ],
    )
