import pytest

from nexttrain.core.errors import DocumentStoreError, PersistenceError
from nexttrain.schemas.feed import DailyTimetable
from nexttrain.services.normalizer import normalize_timetable
from nexttrain.services.writer import TimetableWriter


@pytest.fixture
def normalized(make_feed, make_train, tz):
    trains = [
        make_train("1", [("A", "A", "08:00", "08:01"), ("B", "B", "08:10", "08:11")]),
        make_train("2", [("B", "B", "09:00", "09:01"), ("A", "A", "09:10", "09:11")], direction=1),
        make_train("3", [("A", "A", "23:50", "23:55"), ("C", "C", "00:10", "00:12")]),
    ]
    return normalize_timetable(DailyTimetable.model_validate(make_feed("2024-03-01", trains)), tz)


def _ids(store):
    return sorted(d.id for d in store.collection_group("trainStops").get())


def test_write_persists_service_date_and_stops(store, normalized):
    written = TimetableWriter(store).write(normalized)

    assert written == 6
    doc = store.get("trainDates/20240301")
    assert doc.data["publishTime"] == "2024-02-28T21:00:00+00:00"
    assert doc.data["updateTime"]
    assert _ids(store) == ["1_001", "1_002", "2_001", "2_002", "3_001", "3_002"]

    stop = store.get("trainDates/20240301/trainStops/3_002").data
    assert stop["stopSequence"] == 2
    assert stop["station"]["name"] == "C"
    assert stop["depart"] == {"time": "2024-03-01T16:12:00+00:00", "text": "00:12"}
    assert stop["train"]["destination"]["id"] == "C"
    assert stop["updateTime"]


def test_rewriting_same_date_is_idempotent(store, normalized):
    writer = TimetableWriter(store)
    writer.write(normalized)
    first = _ids(store)
    writer.write(normalized)

    assert _ids(store) == first
    assert store.count("trainDates/20240301", "trainStops") == 6


def test_failed_batch_reports_train_and_keeps_earlier_trains(store, normalized, monkeypatch):
    original = store._commit

    def failing_commit(writes):
        if any("/2_" in path for path, _ in writes):
            raise DocumentStoreError("batch commit failed: deadline exceeded")
        return original(writes)

    monkeypatch.setattr(store, "_commit", failing_commit)
    with pytest.raises(PersistenceError) as excinfo:
        TimetableWriter(store).write(normalized)

    assert excinfo.value.train_id == "2"
    assert excinfo.value.date == "20240301"
    assert _ids(store) == ["1_001", "1_002"]


def test_service_date_failure_writes_no_stops(store, normalized, monkeypatch):
    def failing_set(path, data):
        raise DocumentStoreError("read-only")

    monkeypatch.setattr(store, "set", failing_set)
    with pytest.raises(PersistenceError):
        TimetableWriter(store).write(normalized)
    assert _ids(store) == []
