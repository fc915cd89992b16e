"""Tests for overnight rollover and feed validation."""
import logging
from datetime import date, datetime, timedelta

import pytest

from nexttrain.core.errors import FeedIntegrityError
from nexttrain.schemas.feed import DailyTimetable
from nexttrain.services.normalizer import normalize_timetable


def _normalize(feed, tz):
    return normalize_timetable(DailyTimetable.model_validate(feed), tz)


def test_stop_after_midnight_rolls_to_next_day(make_feed, make_train, tz):
    train = make_train(
        "102",
        [("A", "A", "23:50", "23:55"), ("B", "B", "00:10", "00:12")],
        direction=0,
        dest=("END", "END"),
    )
    result = _normalize(make_feed("2024-03-01", [train], count=1), tz)

    first, second = result.stops
    assert first.arrive.time.astimezone(tz).date() == date(2024, 3, 1)
    assert first.depart.time.astimezone(tz).date() == date(2024, 3, 1)
    assert second.arrive.time == datetime(2024, 3, 2, 0, 10, tzinfo=tz)
    assert second.depart.time == datetime(2024, 3, 2, 0, 12, tzinfo=tz)
    # the operator's text is kept as published
    assert second.arrive.text == "00:10"
    assert second.depart.text == "00:12"


def test_instants_never_go_backwards(make_feed, make_train, tz):
    train = make_train(
        "1",
        [
            ("S1", "S1", "21:00", "21:02"),
            ("S2", "S2", "22:40", "22:45"),
            ("S3", "S3", "23:58", "00:01"),
            ("S4", "S4", "00:30", "00:31"),
            ("S5", "S5", "02:15", "02:15"),
        ],
    )
    result = _normalize(make_feed("2024-03-01", [train]), tz)

    instants = []
    for stop in result.stops:
        assert stop.depart.time >= stop.arrive.time
        instants.extend([stop.arrive.time, stop.depart.time])
    assert instants == sorted(instants)
    # departure earlier than its own arrival moves to the next day
    s3 = result.stops[2]
    assert s3.arrive.time == datetime(2024, 3, 1, 23, 58, tzinfo=tz)
    assert s3.depart.time == datetime(2024, 3, 2, 0, 1, tzinfo=tz)
    assert result.stops[-1].depart.time - result.stops[0].depart.time == timedelta(hours=5, minutes=13)


def test_daytime_train_stays_on_service_date(make_feed, make_train, tz):
    train = make_train("2", [("A", "A", "08:00", "08:01"), ("B", "B", "09:30", "09:31")])
    result = _normalize(make_feed("2024-03-01", [train]), tz)
    assert all(s.depart.time.astimezone(tz).date() == date(2024, 3, 1) for s in result.stops)


def test_count_mismatch_rejects_whole_date(make_feed, make_train, tz):
    train = make_train("1", [("A", "A", "08:00", "08:01")])
    with pytest.raises(FeedIntegrityError) as excinfo:
        _normalize(make_feed("2024-03-01", [train], count=2), tz)
    assert excinfo.value.declared == 2
    assert excinfo.value.actual == 1


def test_malformed_time_is_tolerated(make_feed, make_train, tz, caplog):
    train = make_train(
        "3",
        [("A", "A", "23:40", "23:45"), ("B", "B", "bad", "xx:yy"), ("C", "C", "00:20", "00:21")],
    )
    with caplog.at_level(logging.WARNING, logger="nexttrain.normalizer"):
        result = _normalize(make_feed("2024-03-01", [train]), tz)

    assert len(result.stops) == 3
    broken = result.stops[1]
    assert broken.arrive.time is None and broken.depart.time is None
    assert broken.arrive.text == "bad"
    # rollover keeps working after the broken stop
    assert result.stops[2].arrive.time == datetime(2024, 3, 2, 0, 20, tzinfo=tz)
    assert "malformed time" in caplog.text


def test_train_metadata_and_identity(make_feed, make_train, tz):
    train = make_train(
        "1234",
        [("1000", "臺北", "10:00", "10:02"), ("1020", "板橋", "10:10", "10:11")],
        direction=1,
        type_code="3",
        type_name="自強",
        note="每日行駛。",
    )
    result = _normalize(make_feed("2024-03-01", [train]), tz)

    assert result.date_key == "20240301"
    assert result.service_date.publish_time == datetime(2024, 2, 29, 5, 0, tzinfo=tz)
    assert result.train_count == 1
    stop = result.stops[0]
    assert stop.doc_id == "1234_001"
    assert stop.train.direction == 1
    assert stop.train.train_type.code == "3"
    assert stop.train.destination.id == "1020"
    assert stop.train.notes == "每日行駛。"
    assert result.stops[1].is_terminal
    assert not stop.is_terminal


def test_unexpected_direction_is_logged(make_feed, make_train, tz, caplog):
    train = make_train("9", [("A", "A", "10:00", "10:01")], direction=2)
    with caplog.at_level(logging.WARNING, logger="nexttrain.normalizer"):
        result = _normalize(make_feed("2024-03-01", [train]), tz)
    assert result.stops[0].train.direction == 2
    assert "unexpected direction" in caplog.text


def test_stops_grouped_per_train(make_feed, make_train, tz):
    trains = [
        make_train("1", [("A", "A", "08:00", "08:01"), ("B", "B", "08:10", "08:11")]),
        make_train("2", [("B", "B", "09:00", "09:01"), ("A", "A", "09:10", "09:11")], direction=1),
    ]
    result = _normalize(make_feed("2024-03-01", trains), tz)
    groups = result.stops_by_train()
    assert [[s.doc_id for s in g] for g in groups] == [["1_001", "1_002"], ["2_001", "2_002"]]
