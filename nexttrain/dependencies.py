"""Service handles shared by the HTTP layer.

Built once in the application lifespan (or passed to `create_app`) and read
by routers through `get_services`.
"""
import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional

from fastapi import HTTPException, Request, status

from nexttrain.config.settings import Settings
from nexttrain.core.document_store import DocumentStore
from nexttrain.core.feed_client import TransitFeedClient
from nexttrain.core.line_client import LineClient
from nexttrain.services.departures import DepartureQuery
from nexttrain.services.sync import TimetableSync, TimetableSyncer
from nexttrain.services.writer import TimetableWriter
from nexttrain.utils.time_utils import get_timezone

logger = logging.getLogger("nexttrain")


@dataclass
class Services:
    store: DocumentStore
    departures: DepartureQuery
    tz: tzinfo
    sync: Optional[TimetableSync] = None
    syncer: Optional[TimetableSyncer] = None
    line_client: Optional[LineClient] = None


def build_services(settings: Settings) -> Services:
    tz = get_timezone(settings.TIMEZONE)
    store = DocumentStore(settings.db_file)
    departures = DepartureQuery(store, fetch_limit=settings.QUERY_FETCH_LIMIT, result_limit=settings.QUERY_RESULT_LIMIT)

    sync = None
    syncer = None
    try:
        feed_client = TransitFeedClient(settings.PTX_APP_ID, settings.PTX_APP_KEY, base_url=settings.PTX_BASE_URL, timeout=settings.FEED_TIMEOUT)
        sync = TimetableSync(feed_client, TimetableWriter(store), tz, window_days=settings.SYNC_WINDOW_DAYS)
        syncer = TimetableSyncer(sync, interval_hours=settings.SYNC_INTERVAL_HOURS)
    except ValueError as e:
        logger.warning("Timetable sync disabled: %s", e)

    line_client = None
    try:
        line_client = LineClient(settings.LINE_CHANNEL_SECRET, settings.LINE_CHANNEL_ACCESS_TOKEN, api_base=settings.LINE_API_BASE)
    except ValueError as e:
        logger.warning("LINE webhook disabled: %s", e)

    return Services(store=store, departures=departures, tz=tz, sync=sync, syncer=syncer, line_client=line_client)


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Services not initialised")
    return services
