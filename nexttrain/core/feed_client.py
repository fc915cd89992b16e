import asyncio
import base64
import hashlib
import hmac
import logging
from datetime import date, datetime, timezone
from email.utils import format_datetime
from typing import Dict, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from nexttrain.core.errors import TransportError

logger = logging.getLogger("nexttrain.feed_client")

DEFAULT_BASE_URL = "https://ptx.transportdata.tw"
DAILY_TIMETABLE_PATH = "/MOTC/v3/Rail/TRA/DailyTrainTimetable/TrainDate/{date}"

M = TypeVar("M", bound=BaseModel)


class FeedResponse:
    """Raw response body with a typed decode."""

    def __init__(self, data: bytes, status: int = 200):
        self.data = data
        self.status = status

    def decode(self, model: Type[M]) -> M:
        try:
            return model.model_validate_json(self.data)
        except ValidationError as e:
            raise TransportError(f"cannot decode response: {e.error_count()} validation errors", status=self.status) from e


class TransitFeedClient:
    """HMAC-signed client for the PTX transit API.

    Every request carries an `x-date` header and an `Authorization` header
    whose signature is an HMAC-SHA1 over `x-date: <value>` keyed by the app key.
    """

    def __init__(self, app_id: Optional[str], app_key: Optional[str], base_url: str = DEFAULT_BASE_URL, timeout: int = 10):
        if not app_id or not app_key:
            raise ValueError("appID or appKey not specified")
        self.app_id = app_id
        self.app_key = app_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def signature_headers(self, now: Optional[datetime] = None) -> Dict[str, str]:
        now = now or datetime.now(timezone.utc)
        xdate = format_datetime(now.astimezone(timezone.utc), usegmt=True)
        mac = hmac.new(self.app_key.encode("utf-8"), f"x-date: {xdate}".encode("utf-8"), hashlib.sha1)
        sig = base64.b64encode(mac.digest()).decode("ascii")
        return {
            "x-date": xdate,
            "Authorization": f'hmac username="{self.app_id}", algorithm="hmac-sha1", headers="x-date", signature="{sig}"',
        }

    async def get(self, path: str, params: Optional[Dict[str, str]] = None) -> FeedResponse:
        url = self.base_url + path
        headers = self.signature_headers()
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=params, headers=headers) as resp:
                    data = await resp.read()
                    if resp.status != 200:
                        raise TransportError(f"ptx api returned status {resp.status} for {path}", status=resp.status)
                    return FeedResponse(data, status=resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"cannot do ptx query: {e!r}") from e

    async def fetch_daily_timetable(self, d: date) -> FeedResponse:
        """Full timetable of every train running on service date `d`."""
        dstr = d.strftime("%Y-%m-%d")
        logger.debug("Fetching daily timetable for %s", dstr)
        response = await self.get(DAILY_TIMETABLE_PATH.format(date=dstr), params={"$count": "true", "$format": "JSON"})
        return response
