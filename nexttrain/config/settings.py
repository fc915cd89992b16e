import os
from typing import Optional


def _bool_env(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).lower() in ("1", "true", "yes", "on")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


class Settings:
    """Settings loader that reads from environment with sensible defaults.

    Kept as a plain class (no pydantic-settings) so tests can build their own
    instance after patching the environment.
    """

    def __init__(self) -> None:
        # PTX transit API credentials
        self.PTX_APP_ID: Optional[str] = os.getenv("PTX_APP_ID")
        self.PTX_APP_KEY: Optional[str] = os.getenv("PTX_APP_KEY")
        self.PTX_BASE_URL: str = os.getenv("PTX_BASE_URL", "https://ptx.transportdata.tw")
        self.FEED_TIMEOUT: int = _int_env("FEED_TIMEOUT", 10)

        # Timetable sync
        self.TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Taipei")
        self.SYNC_WINDOW_DAYS: int = _int_env("SYNC_WINDOW_DAYS", 7)
        self.AUTO_SYNC: bool = _bool_env("AUTO_SYNC", False)
        self.SYNC_INTERVAL_HOURS: int = _int_env("SYNC_INTERVAL_HOURS", 24)

        # Document store
        self.DATA_DIR: str = os.getenv("DATA_DIR", "data")
        self.DB_PATH: str = os.getenv("DB_PATH", "timetable.db")

        # Departure queries
        self.QUERY_FETCH_LIMIT: int = _int_env("QUERY_FETCH_LIMIT", 20)
        self.QUERY_RESULT_LIMIT: int = _int_env("QUERY_RESULT_LIMIT", 5)

        # LINE messaging
        self.LINE_CHANNEL_SECRET: Optional[str] = os.getenv("LINE_CHANNEL_SECRET")
        self.LINE_CHANNEL_ACCESS_TOKEN: Optional[str] = os.getenv("LINE_CHANNEL_ACCESS_TOKEN")
        self.LINE_API_BASE: str = os.getenv("LINE_API_BASE", "https://api.line.me")

        self.API_KEY: Optional[str] = os.getenv("API_KEY")

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_TO_CONSOLE: bool = _bool_env("LOG_TO_CONSOLE", True)
        self.LOG_FILE: Optional[str] = os.getenv("LOG_FILE")
        self.LOG_FORMAT: str = os.getenv("LOG_FORMAT", "%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    @property
    def db_file(self) -> str:
        """Full path to the SQLite document store."""
        if os.path.isabs(self.DB_PATH):
            return self.DB_PATH
        return os.path.join(self.DATA_DIR or "data", self.DB_PATH)


settings = Settings()
