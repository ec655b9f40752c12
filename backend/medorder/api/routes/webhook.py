"""Telegram webhook endpoint. Authenticated by Telegram, not by the admin token."""
import logging

from fastapi import APIRouter, Request

from medorder.core.exceptions import ApiError
from medorder.telegram.bot import enqueue_webhook_update

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
async def telegram_webhook(request: Request):
    try:
        payload = await request.json()
    except ValueError:
        raise ApiError.bad_request("Invalid JSON body")

    if not await enqueue_webhook_update(payload):
        logger.warning("[Webhook] Update received but the bot is not running")
        raise ApiError.unavailable("Bot is not running")
    return {"ok": True}
