import asyncio
import logging
from typing import Optional

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update, error
from telegram.constants import ParseMode
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from medorder.agent.order_flow import OrderFlow
from medorder.core.config import settings
from medorder.db.session import SessionLocal
from medorder.services.notifier import NotificationSink, CONFIRM_ORDER, EDIT_ORDER
from medorder.telegram.handlers import (
    handle_callback,
    handle_cancel,
    handle_error,
    handle_feedback,
    handle_history,
    handle_inventory,
    handle_order,
    handle_start,
    handle_text,
)

logger = logging.getLogger(__name__)

_bot_app: Optional[Application] = None


class TelegramNotifier(NotificationSink):
    """Sends notifications through the bot. Bound to a Bot once the application starts."""

    def __init__(self, bot: Optional[Bot] = None):
        self.bot = bot

    async def notify(self, chat_id, text, buttons=None, markdown=False) -> bool:
        if self.bot is None:
            logger.warning(f"[Telegram] Bot not initialized, dropping message to {chat_id}")
            return False

        try:
            chat = int(chat_id)
        except (TypeError, ValueError):
            logger.error(f"[Telegram] Invalid chat id {chat_id!r}, message dropped")
            return False

        markup = None
        if buttons:
            markup = InlineKeyboardMarkup(
                [[InlineKeyboardButton(label, callback_data=data) for label, data in row] for row in buttons]
            )
        try:
            await self.bot.send_message(
                chat_id=chat,
                text=text,
                parse_mode=ParseMode.MARKDOWN if markdown else None,
                reply_markup=markup,
            )
            return True
        except error.TelegramError as e:
            logger.error(f"[Telegram] Failed to send message to {chat_id}: {e}")
            return False


def build_application(token: str, flow: OrderFlow, session_factory=SessionLocal) -> Application:
    app = Application.builder().token(token).build()
    app.bot_data["order_flow"] = flow
    app.bot_data["session_factory"] = session_factory

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("inventory", handle_inventory))
    app.add_handler(CommandHandler("order", handle_order))
    app.add_handler(CommandHandler("history", handle_history))
    app.add_handler(CommandHandler("feedback", handle_feedback))
    app.add_handler(CommandHandler("cancel", handle_cancel))
    app.add_handler(CallbackQueryHandler(handle_callback, pattern=f"^({CONFIRM_ORDER}|{EDIT_ORDER})$"))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    app.add_error_handler(handle_error)
    return app


async def _start_polling_with_retry(app: Application, max_retries=3, initial_backoff=2) -> bool:
    for attempt in range(max_retries):
        try:
            logger.info(f"[Telegram] Starting polling (attempt {attempt + 1}/{max_retries})...")
            await app.updater.start_polling(drop_pending_updates=True)
            logger.info("[Telegram] ✓ Polling started successfully")
            return True
        except error.Conflict as e:
            if attempt < max_retries - 1:
                backoff = initial_backoff * (2 ** attempt)
                logger.warning(f"[Telegram] ⚠ Conflict detected: {e}. Retrying in {backoff}s")
                await asyncio.sleep(backoff)
            else:
                logger.error(f"[Telegram] ✗ Failed after {max_retries} retries. Bot disabled. Error: {e}")
                return False
    return False


async def start_bot(flow: OrderFlow, notifier: TelegramNotifier) -> Optional[Application]:
    """Start the bot on the running loop: webhook mode if configured, polling otherwise."""
    global _bot_app
    if not settings.TELEGRAM_BOT_TOKEN:
        return None

    app = build_application(settings.TELEGRAM_BOT_TOKEN, flow)
    await app.initialize()
    await app.start()
    notifier.bot = app.bot

    if settings.TELEGRAM_WEBHOOK_URL:
        await app.bot.set_webhook(settings.TELEGRAM_WEBHOOK_URL, drop_pending_updates=True)
        logger.info(f"[Telegram] Webhook set to {settings.TELEGRAM_WEBHOOK_URL}")
    else:
        await _start_polling_with_retry(app)

    _bot_app = app
    return app


async def stop_bot():
    """Stop polling and shut the application down. Called on FastAPI shutdown."""
    global _bot_app
    if not _bot_app:
        return
    if _bot_app.updater and _bot_app.updater.running:
        await _bot_app.updater.stop()
    await _bot_app.stop()
    await _bot_app.shutdown()
    _bot_app = None


async def enqueue_webhook_update(payload: dict) -> bool:
    """Hand a webhook payload to the running application. False if the bot is not running."""
    if not _bot_app:
        return False
    update = Update.de_json(payload, _bot_app.bot)
    await _bot_app.update_queue.put(update)
    return True
