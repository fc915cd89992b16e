import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional

from nexttrain.core.errors import SyncError
from nexttrain.schemas.feed import DailyTimetable
from nexttrain.services.normalizer import normalize_timetable
from nexttrain.services.writer import TimetableWriter

logger = logging.getLogger("nexttrain.sync")


@dataclass
class DateOutcome:
    date: str
    ok: bool
    trains: int = 0
    stops: int = 0
    error_type: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self):
        return asdict(self)


class TimetableSync:
    """Refreshes a rolling window of service dates: fetch, normalize, write.

    Dates are processed concurrently and independently; one date failing is
    logged and reported in its outcome without affecting the others.
    """

    def __init__(self, feed_client, writer: TimetableWriter, tz: tzinfo, window_days: int = 7):
        self.feed_client = feed_client
        self.writer = writer
        self.tz = tz
        self.window_days = window_days

    def window_dates(self, now: Optional[datetime] = None) -> List[date]:
        now = now.astimezone(self.tz) if now else datetime.now(self.tz)
        start = now.date()
        return [start + timedelta(days=i) for i in range(self.window_days)]

    async def sync_date(self, d: date) -> DateOutcome:
        """Run the pipeline for one date. Raises SyncError subclasses on failure."""
        logger.info("Updating %s", d.isoformat())
        response = await self.feed_client.fetch_daily_timetable(d)
        feed = response.decode(DailyTimetable)
        normalized = normalize_timetable(feed, self.tz)
        stops = await asyncio.to_thread(self.writer.write, normalized)
        return DateOutcome(date=normalized.date_key, ok=True, trains=normalized.train_count, stops=stops)

    async def _sync_date_isolated(self, d: date) -> DateOutcome:
        key = d.strftime("%Y%m%d")
        try:
            return await self.sync_date(d)
        except SyncError as e:
            logger.error("Failed to update %s (%s): %s", key, type(e).__name__, e)
            return DateOutcome(date=key, ok=False, error_type=type(e).__name__, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error updating %s: %s", key, e)
            return DateOutcome(date=key, ok=False, error_type=type(e).__name__, error=str(e))

    async def sync_window(self, now: Optional[datetime] = None, triggered_at: Optional[datetime] = None) -> List[DateOutcome]:
        now = now.astimezone(self.tz) if now else datetime.now(self.tz)
        if triggered_at is not None:
            lag = (now - triggered_at).total_seconds() * 1000
            logger.info("trigger latency: %.0fms", lag)

        dates = self.window_dates(now)
        logger.info("Updating timetables for dates: %s", [d.isoformat() for d in dates])
        outcomes = await asyncio.gather(*(self._sync_date_isolated(d) for d in dates))

        failed = [o.date for o in outcomes if not o.ok]
        logger.info("Timetable sync finished: %d ok, %d failed %s", len(outcomes) - len(failed), len(failed), failed or "")
        return list(outcomes)


class TimetableSyncer:
    """Background loop that refreshes the window at start and then every interval."""

    def __init__(self, sync: TimetableSync, interval_hours: int = 24):
        self.sync = sync
        self.interval = max(1, interval_hours) * 3600
        self.last_outcomes: List[DateOutcome] = []
        self.last_run_at: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None

    async def run_once(self) -> List[DateOutcome]:
        self.last_run_at = datetime.now(self.sync.tz)
        self.last_outcomes = await self.sync.sync_window(now=self.last_run_at)
        return self.last_outcomes

    async def _loop(self):
        try:
            await self.run_once()
        except Exception:
            logger.exception("Initial timetable sync failed")
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                try:
                    await self.run_once()
                except Exception:
                    logger.exception("Scheduled timetable sync failed")

    def start(self):
        if self._task and not self._task.done():
            return
        self._stop = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("TimetableSyncer started")

    async def stop(self):
        if self._stop is not None:
            self._stop.set()
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        logger.info("TimetableSyncer stopped")
