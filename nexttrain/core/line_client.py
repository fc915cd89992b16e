import asyncio
import logging
from typing import List, Optional

import aiohttp
from linebot.v3 import WebhookParser
from linebot.v3.messaging import AsyncApiClient, AsyncMessagingApi, Configuration, Message, ReplyMessageRequest
from linebot.v3.messaging.exceptions import ApiException
from linebot.v3.webhooks import Event

from nexttrain.core.errors import TransportError

logger = logging.getLogger("nexttrain.line_client")

DEFAULT_API_BASE = "https://api.line.me"


class LineClient:
    """LINE channel handle: webhook parsing and replies through the Messaging API SDK.

    `messaging_api` replaces the per-call `AsyncMessagingApi`; tests pass a
    recorder here.
    """

    def __init__(self, channel_secret: str, access_token: str, api_base: str = DEFAULT_API_BASE, timeout: int = 10, messaging_api=None):
        if not channel_secret or not access_token:
            raise ValueError("LINE channel secret or access token not specified")
        self.parser = WebhookParser(channel_secret)
        self.configuration = Configuration(host=api_base.rstrip("/"), access_token=access_token)
        self.timeout = timeout
        self._messaging_api = messaging_api

    def parse(self, body: str, signature: Optional[str]) -> List[Event]:
        """Webhook events of `body`.

        Raises InvalidSignatureError when `signature` does not match, and
        ValueError or KeyError when the body is not a webhook payload.
        """
        return self.parser.parse(body, signature or "")

    async def reply(self, reply_token: str, messages: List[Message]) -> None:
        request = ReplyMessageRequest(reply_token=reply_token, messages=messages)
        try:
            if self._messaging_api is not None:
                await self._messaging_api.reply_message(request, _request_timeout=self.timeout)
                return
            async with AsyncApiClient(self.configuration) as api_client:
                await AsyncMessagingApi(api_client).reply_message(request, _request_timeout=self.timeout)
        except ApiException as e:
            raise TransportError(f"LINE reply returned status {e.status}: {e.body}", status=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"cannot send LINE reply: {e!r}") from e
