import json
from datetime import date
from zoneinfo import ZoneInfo

import pytest

from nexttrain.core.document_store import DocumentStore
from nexttrain.core.errors import TransportError
from nexttrain.core.feed_client import FeedResponse

TZ = ZoneInfo("Asia/Taipei")


def _name(s):
    return {"Zh_tw": s, "En": s}


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def store(tmp_path):
    return DocumentStore(str(tmp_path / "timetable.db"))


@pytest.fixture
def make_train():
    """Build a PTX TrainTimetable entry. `stops` are (station_id, station_name, arrival, departure)."""

    def _make(train_no, stops, direction=0, dest=None, type_code="6", type_name="區間車", note=None):
        dest_id, dest_name = dest or (stops[-1][0], stops[-1][1])
        return {
            "TrainInfo": {
                "TrainNo": train_no,
                "Direction": direction,
                "TrainTypeID": f"11{type_code}",
                "TrainTypeCode": type_code,
                "TrainTypeName": _name(type_name),
                "StartingStationID": stops[0][0],
                "StartingStationName": _name(stops[0][1]),
                "EndingStationID": dest_id,
                "EndingStationName": _name(dest_name),
                "Note": note,
            },
            "StopTimes": [
                {
                    "StopSequence": i + 1,
                    "StationID": sid,
                    "StationName": _name(sname),
                    "ArrivalTime": arr,
                    "DepartureTime": dep,
                }
                for i, (sid, sname, arr, dep) in enumerate(stops)
            ],
        }

    return _make


@pytest.fixture
def make_feed():
    def _make(train_date, trains, count=None, update_time="2024-02-29T05:00:00+08:00"):
        return {
            "Count": len(trains) if count is None else count,
            "TrainDate": train_date,
            "UpdateTime": update_time,
            "TrainTimetables": trains,
        }

    return _make


class FakeFeedClient:
    """Serves canned feeds keyed by YYYY-MM-DD; missing dates fail like a 404."""

    def __init__(self, feeds=None):
        self.feeds = feeds or {}
        self.requested = []

    async def fetch_daily_timetable(self, d: date) -> FeedResponse:
        key = d.isoformat()
        self.requested.append(key)
        item = self.feeds.get(key)
        if isinstance(item, Exception):
            raise item
        if item is None:
            raise TransportError(f"ptx api returned status 404 for {key}", status=404)
        if isinstance(item, bytes):
            return FeedResponse(item)
        return FeedResponse(json.dumps(item, ensure_ascii=False).encode("utf-8"))


@pytest.fixture
def fake_feed_client():
    return FakeFeedClient()
