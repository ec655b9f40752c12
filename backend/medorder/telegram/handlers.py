"""
Telegram handlers. Thin: resolve the account (with_account), then either
answer a read-only command directly or hand the update to the OrderFlow.
"""
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from medorder.agent import messages
from medorder.agent.order_flow import OrderFlow
from medorder.core.config import settings
from medorder.services.catalog_service import list_catalog
from medorder.services.order_service import recent_orders
from medorder.telegram.utils import with_account

logger = logging.getLogger(__name__)


def _flow(context: ContextTypes.DEFAULT_TYPE) -> OrderFlow:
    return context.bot_data["order_flow"]


# ==============================================================================
# READ-ONLY COMMANDS
# ==============================================================================

@with_account
async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    await update.effective_message.reply_text(messages.welcome(account.display_name))


@with_account
async def handle_inventory(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    items = list_catalog(db)
    if not items:
        await update.effective_message.reply_text(messages.NO_INVENTORY)
        return
    await update.effective_message.reply_text(messages.inventory(items), parse_mode=ParseMode.MARKDOWN)


@with_account
async def handle_history(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    orders = recent_orders(db, account.id, limit=settings.HISTORY_LIMIT)
    if not orders:
        await update.effective_message.reply_text(messages.NO_HISTORY)
        return
    await update.effective_message.reply_text(
        messages.history(orders, settings.HISTORY_LIMIT), parse_mode=ParseMode.MARKDOWN
    )


# ==============================================================================
# FLOW COMMANDS
# ==============================================================================

@with_account
async def handle_order(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    await _flow(context).start_order(db, account)


@with_account
async def handle_feedback(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    await _flow(context).start_feedback(db, account)


@with_account
async def handle_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    await _flow(context).cancel(db, account)


@with_account
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    if not update.message or not update.message.text:
        return
    logger.info(f"[MSG] account={account.id}, text='{update.message.text}'")
    await _flow(context).handle_text(db, account, update.message.text)


@with_account
async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE, db, account) -> None:
    query = update.callback_query
    await query.answer()
    await _flow(context).handle_action(db, account, query.data)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Last resort: a failed update is logged, the bot keeps running."""
    logger.error(f"[TELEGRAM] Unhandled error while processing update: {context.error}", exc_info=context.error)
