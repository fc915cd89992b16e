import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from linebot.v3.exceptions import InvalidSignatureError
from linebot.v3.webhooks import MessageEvent, TextMessageContent

from nexttrain.core.errors import TransportError
from nexttrain.dependencies import Services, get_services
from nexttrain.utils.flex import departures_message

logger = logging.getLogger("nexttrain.line")

router = APIRouter(prefix="/line", tags=["LINE"])


async def handle_text_message(services: Services, event: MessageEvent) -> None:
    if not event.reply_token:
        return
    station_name = services.departures.normalize_station_name(event.message.text or "")
    board = await asyncio.to_thread(services.departures.nearest, station_name)
    try:
        await services.line_client.reply(event.reply_token, [departures_message(board)])
    except TransportError as e:
        logger.error("Cannot reply to %s: %s", station_name, e)


@router.post("/webhook", summary="LINE webhook")
async def line_webhook(request: Request, x_line_signature: Optional[str] = Header(None), services: Services = Depends(get_services)):
    line = services.line_client
    if line is None:
        raise HTTPException(status_code=503, detail="LINE channel is not configured")

    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        events = line.parse(body, x_line_signature)
    except InvalidSignatureError:
        logger.warning("Rejected LINE webhook with invalid signature")
        raise HTTPException(status_code=400, detail="Invalid signature")
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("Cannot parse line events: %s", e)
        raise HTTPException(status_code=400, detail="Malformed webhook body")

    for event in events:
        logger.info("%s", event.to_json())
        if isinstance(event, MessageEvent) and isinstance(event.message, TextMessageContent):
            await handle_text_message(services, event)

    return {"status": "ok"}
