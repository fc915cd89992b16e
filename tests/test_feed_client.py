import base64
import hashlib
import hmac
from datetime import datetime, timezone

import pytest

from nexttrain.core.errors import TransportError
from nexttrain.core.feed_client import FeedResponse, TransitFeedClient
from nexttrain.schemas.feed import DailyTimetable


def test_missing_credentials_are_rejected():
    with pytest.raises(ValueError):
        TransitFeedClient("", "key")
    with pytest.raises(ValueError):
        TransitFeedClient("id", None)


def test_signature_headers():
    client = TransitFeedClient("my-app", "s3cret")
    headers = client.signature_headers(now=datetime(2024, 3, 1, 0, 0, 5, tzinfo=timezone.utc))

    assert headers["x-date"] == "Fri, 01 Mar 2024 00:00:05 GMT"
    expected = base64.b64encode(
        hmac.new(b"s3cret", b"x-date: Fri, 01 Mar 2024 00:00:05 GMT", hashlib.sha1).digest()
    ).decode()
    assert headers["Authorization"] == (
        f'hmac username="my-app", algorithm="hmac-sha1", headers="x-date", signature="{expected}"'
    )


def test_signature_uses_utc_time():
    client = TransitFeedClient("my-app", "s3cret")
    from zoneinfo import ZoneInfo

    local = datetime(2024, 3, 1, 8, 0, 5, tzinfo=ZoneInfo("Asia/Taipei"))
    assert client.signature_headers(now=local)["x-date"] == "Fri, 01 Mar 2024 00:00:05 GMT"


def test_response_decodes_into_model():
    body = (
        b'{"Count": 1, "TrainDate": "2024-03-01", "UpdateTime": "2024-02-29T05:00:00+08:00",'
        b' "TrainTimetables": [{"TrainInfo": {"TrainNo": "102", "Direction": 0, "EndingStationID": "END",'
        b' "EndingStationName": {"Zh_tw": "END"}}, "StopTimes": [{"StopSequence": 1, "StationID": "A",'
        b' "StationName": {"Zh_tw": "A"}, "ArrivalTime": "23:50", "DepartureTime": "23:55"}]}]}'
    )
    feed = FeedResponse(body).decode(DailyTimetable)

    assert feed.count == 1
    assert feed.train_timetables[0].train_info.train_no == "102"
    assert feed.train_timetables[0].stop_times[0].departure_time == "23:55"
    assert FeedResponse(body).data == body


def test_undecodable_response_is_transport_error():
    with pytest.raises(TransportError):
        FeedResponse(b'{"message": "HMAC signature cannot be verified"}', status=200).decode(DailyTimetable)
