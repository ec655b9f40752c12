"""Chat texts. Markdown (v1) where item names are interpolated, so names are escaped."""
from datetime import datetime, timezone
from typing import Iterable, List, Sequence
from zoneinfo import ZoneInfo

from telegram.helpers import escape_markdown

from medorder.core.config import settings
from medorder.core.exceptions import CommitError, CommitErrorReason
from medorder.services.item_resolver import ResolvedLine, order_total, to_money

ACCESS_DENIED = (
    "❌ Access Denied. Your Telegram ID is not registered. "
    "Please contact the administrator."
)
ORDER_PROMPT = (
    "📝 Please enter the medicine name and quantity (e.g., Paracetamol,10). "
    "For bulk orders, send a list: Paracetamol,10;Amoxicillin,5"
)
EDIT_PROMPT = "✏️ Please re-enter your order (e.g., Paracetamol,10;Amoxicillin,5)"
NO_VALID_ITEMS = "No valid medicines in your order. Please try again."
USE_BUTTONS = "👆 Please tap ✅ Confirm or ✏️ Edit on the order summary above."
ORDER_FAILED = "❌ Failed to place order. Please try again."
SESSION_LOST = "⌛ This order session has expired. Please send /order to start again."
STALE_ACTION = "⌛ That order summary is no longer active."
FEEDBACK_PROMPT = "📝 Please type your feedback."
FEEDBACK_THANKS = "🙏 Thank you for your feedback!"
FEEDBACK_FAILED = "❌ Could not save your feedback. Please send it again."
CANCELLED = "✅ Cancelled. Send /order whenever you are ready."
NOTHING_TO_CANCEL = "Nothing to cancel."
LOOKUP_FAILED = "❌ Something went wrong. Please try again in a moment."
NO_INVENTORY = "No medicines available in inventory."
NO_HISTORY = "No past orders found."
REMINDER = "⏰ Reminder: You have not placed your medicine order today. Please order before midnight."


def _md(text: str) -> str:
    return escape_markdown(str(text), version=1)


def welcome(display_name: str) -> str:
    return (
        f"👋 Welcome, {display_name}!\n\n"
        "You can use the following commands:\n"
        "/order - Place a new order\n"
        "/inventory - View available medicines\n"
        "/history - View your past orders\n"
        "/feedback - Send feedback\n"
        "/cancel - Cancel the current step"
    )


def order_summary(lines: Sequence[ResolvedLine]) -> str:
    text = "🛒 *Order Summary:*\n"
    for line in lines:
        text += f"• {_md(line.name)}: {line.quantity} x ₹{line.unit_price} = ₹{line.line_total}\n"
    text += f"\n*Total: ₹{order_total(lines)}*"
    return text


def error_list(errors: Iterable[str]) -> str:
    return "❌ Errors:\n" + "\n".join(errors)


def order_placed(order_id: int, total) -> str:
    return f"✅ Order placed successfully!\nOrder #{order_id} | Total: ₹{to_money(total)}"


def commit_failed(error: CommitError) -> str:
    if error.reason == CommitErrorReason.STOCK_CHANGED:
        text = "❌ Stock changed before your order could be placed:\n"
        for name, requested, available in error.offending_lines:
            text += f"• {name}: requested {requested}, available {available}\n"
        text += "\nTap ✏️ Edit to change your order, or ✅ Confirm to try again."
        return text
    return ORDER_FAILED


def inventory(items) -> str:
    text = "📦 *Available Medicines:*\n"
    for item in items:
        text += f"• {_md(item.name)}: {item.quantity_available} units @ ₹{to_money(item.unit_price)}\n"
    return text


def local_time(moment: datetime) -> str:
    """Stored timestamps are UTC (SQLite drops the offset); shown in REMINDER_TIMEZONE."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(settings.REMINDER_TIMEZONE)).strftime("%d %b %Y, %H:%M")


def history(orders, limit: int) -> str:
    text = f"*Your Last {limit} Orders:*\n"
    for order in orders:
        placed = local_time(order.placed_at) if order.placed_at else ""
        text += f"\nOrder #{order.id} ({placed}):\n"
        for line in order.lines:
            text += f"- {_md(line.catalog_item.name)}: {line.quantity} x ₹{to_money(line.unit_price)}\n"
        text += f"Total: ₹{to_money(order.total_amount)}\n"
        text += f"Status: {_md(order.delivery_status)}\n"
    return text


def describe_all(errors) -> List[str]:
    return [error.describe() for error in errors]
