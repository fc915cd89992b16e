"""Turns one day's raw PTX timetable into TrainStop records.

Raw arrival/departure values are wall-clock `HH:MM` without a date, so a trip
that runs past midnight looks like it goes back in time. Each train's stops are
walked in feed order while tracking the last resolved departure (seeded to
local midnight of the service date): an arrival earlier than that instant
belongs to the next day, and so does a departure earlier than its arrival.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional

from nexttrain.core.errors import FeedIntegrityError
from nexttrain.schemas.feed import DailyTimetable, TrainTimetable
from nexttrain.schemas.timetable import ServiceDate, Station, StopTime, Train, TrainStop, TrainType
from nexttrain.utils.time_utils import date_key, local_midnight, parse_service_date, parse_timestamp, parse_wall_clock

logger = logging.getLogger("nexttrain.normalizer")

DIRECTIONS = (0, 1)
ONE_DAY = timedelta(hours=24)


@dataclass
class NormalizedTimetable:
    service_date: ServiceDate
    train_count: int
    stops: List[TrainStop] = field(default_factory=list)

    @property
    def date_key(self) -> str:
        return self.service_date.id

    def stops_by_train(self) -> List[List[TrainStop]]:
        """Stops grouped per train, preserving feed order."""
        groups: List[List[TrainStop]] = []
        index = {}
        for stop in self.stops:
            key = stop.train.id
            if key not in index:
                index[key] = len(groups)
                groups.append([])
            groups[index[key]].append(stop)
        return groups


def _build_train(entry: TrainTimetable) -> Train:
    info = entry.train_info
    if info.direction is not None and info.direction not in DIRECTIONS:
        logger.warning("Train %s has unexpected direction %s; it will not be served by departure queries", info.train_no, info.direction)
    return Train(
        id=info.train_no,
        direction=info.direction,
        destination=Station(id=info.ending_station_id, name=info.ending_station_name.zh_tw),
        train_type=TrainType(id=info.train_type_id, name=info.train_type_name.zh_tw, code=info.train_type_code),
        notes=info.note or None,
    )


def resolve_train_stops(entry: TrainTimetable, service_date: date, tz: tzinfo) -> List[TrainStop]:
    """Resolve one train's stops into instants, applying overnight rollover."""
    train = _build_train(entry)
    last_depart: datetime = local_midnight(service_date, tz)
    stops: List[TrainStop] = []

    for raw in entry.stop_times:
        arrive: Optional[datetime] = parse_wall_clock(service_date, raw.arrival_time, tz)
        depart: Optional[datetime] = parse_wall_clock(service_date, raw.departure_time, tz)
        if arrive is None or depart is None:
            logger.warning(
                "Train %s stop %s has malformed time (arrive=%r, depart=%r)",
                train.id, raw.stop_sequence, raw.arrival_time, raw.departure_time,
            )

        if arrive is not None and arrive < last_depart:
            arrive = arrive + ONE_DAY
        if depart is not None:
            floor = arrive if arrive is not None else last_depart
            if depart < floor:
                depart = depart + ONE_DAY

        if depart is not None:
            last_depart = depart
        elif arrive is not None:
            last_depart = arrive

        stops.append(
            TrainStop(
                train=train,
                stop_sequence=raw.stop_sequence,
                station=Station(id=raw.station_id, name=raw.station_name.zh_tw),
                arrive=StopTime(time=arrive, text=raw.arrival_time),
                depart=StopTime(time=depart, text=raw.departure_time),
            )
        )
    return stops


def normalize_timetable(feed: DailyTimetable, tz: tzinfo) -> NormalizedTimetable:
    """Validate and normalize one service date's feed.

    Raises FeedIntegrityError when the declared count does not match the
    number of train entries delivered.
    """
    if feed.count != len(feed.train_timetables):
        raise FeedIntegrityError(declared=feed.count, actual=len(feed.train_timetables), date=feed.train_date)

    service_date = parse_service_date(feed.train_date)
    publish_time = parse_timestamp(feed.update_time)
    if feed.update_time and publish_time is None:
        logger.warning("Unparseable UpdateTime %r for %s", feed.update_time, feed.train_date)

    stops: List[TrainStop] = []
    for entry in feed.train_timetables:
        stops.extend(resolve_train_stops(entry, service_date, tz))

    return NormalizedTimetable(
        service_date=ServiceDate(id=date_key(service_date), publish_time=publish_time),
        train_count=len(feed.train_timetables),
        stops=stops,
    )
