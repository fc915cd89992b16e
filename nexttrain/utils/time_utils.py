from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


def get_timezone(name: str) -> tzinfo:
    return ZoneInfo(name)


def parse_service_date(s: str) -> date:
    """Accepts YYYY-MM-DD or YYYYMMDD."""
    if "-" in s:
        return datetime.strptime(s, "%Y-%m-%d").date()
    return datetime.strptime(s, "%Y%m%d").date()


def date_key(d: date) -> str:
    """Document id for a service date (YYYYMMDD)."""
    return d.strftime("%Y%m%d")


def local_midnight(d: date, tz: tzinfo) -> datetime:
    return datetime.combine(d, time(0, 0), tzinfo=tz)


def parse_wall_clock(d: date, text: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """Combine 'HH:MM' (or 'HH:MM:SS') with a service date. Returns None if text is invalid."""
    if not text or not isinstance(text, str):
        return None
    parts = text.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        h, m = int(parts[0]), int(parts[1])
        s = int(parts[2]) if len(parts) == 3 else 0
        return datetime.combine(d, time(h, m, s), tzinfo=tz)
    except ValueError:
        return None


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Parse an RFC3339 timestamp such as '2024-03-01T05:12:00+08:00'. Returns None if invalid."""
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start) // timedelta(minutes=1))
