import os

from nexttrain.config.settings import Settings


def test_defaults(monkeypatch):
    for name in ("TIMEZONE", "SYNC_WINDOW_DAYS", "AUTO_SYNC", "DB_PATH", "DATA_DIR", "QUERY_FETCH_LIMIT", "QUERY_RESULT_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.TIMEZONE == "Asia/Taipei"
    assert s.SYNC_WINDOW_DAYS == 7
    assert s.AUTO_SYNC is False
    assert s.QUERY_FETCH_LIMIT == 20
    assert s.QUERY_RESULT_LIMIT == 5
    assert s.db_file == os.path.join("data", "timetable.db")


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("AUTO_SYNC", "yes")
    monkeypatch.setenv("SYNC_INTERVAL_HOURS", "not-a-number")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "x.db"))
    s = Settings()
    assert s.AUTO_SYNC is True
    assert s.SYNC_INTERVAL_HOURS == 24
    assert s.db_file == str(tmp_path / "x.db")
