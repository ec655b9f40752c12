"""
Telegram identity guard.

Every bot entry point is wrapped in `with_account`: it opens a DB session,
resolves the caller's chat id to a registered Account once, and hands both to
the handler. Unknown callers get the access-denied reply and nothing else runs.
"""
import functools
import logging

from sqlalchemy.exc import SQLAlchemyError
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from medorder.agent import messages
from medorder.core.exceptions import AccessDenied
from medorder.db.session import SessionLocal
from medorder.services.account_service import find_account_by_external_identity

logger = logging.getLogger(__name__)


async def _safe_send(context: ContextTypes.DEFAULT_TYPE, chat_id: int, text: str):
    try:
        await context.bot.send_message(chat_id=chat_id, text=text)
    except TelegramError as e:
        logger.error(f"[TELEGRAM] Failed to send message to {chat_id}: {e}")


def with_account(handler):
    @functools.wraps(handler)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
        chat = update.effective_chat
        if chat is None:
            return

        session_factory = context.bot_data.get("session_factory", SessionLocal)
        db = session_factory()
        try:
            account = find_account_by_external_identity(db, chat.id)
            if account is None:
                logger.info(f"[TELEGRAM] {AccessDenied(chat.id)}")
                if update.callback_query:
                    await update.callback_query.answer()
                await _safe_send(context, chat.id, messages.ACCESS_DENIED)
                return
            return await handler(update, context, db, account)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[TELEGRAM] Database error for chat_id={chat.id}: {e}", exc_info=True)
            await _safe_send(context, chat.id, messages.LOOKUP_FAILED)
        finally:
            db.close()

    return wrapper
