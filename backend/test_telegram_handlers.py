"""Telegram transport glue, exercised with stand-in Update/Context objects."""
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from medorder.agent import messages
from medorder.agent.conversation_state import Phase
from medorder.core.config import settings
from medorder.models.order import Order
from medorder.services.fulfillment import commit_order
from medorder.services.item_resolver import ResolvedLine
from medorder.services.notifier import CONFIRMATION_BUTTONS, NotificationSink
from medorder.telegram import handlers
from medorder.telegram.bot import TelegramNotifier

pytestmark = pytest.mark.asyncio


class FakeBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text, **kwargs):
        self.sent.append({"chat_id": chat_id, "text": text, **kwargs})


class FakeMessage:
    def __init__(self, text=None):
        self.text = text
        self.replies = []

    async def reply_text(self, text, **kwargs):
        self.replies.append(text)


class FakeQuery:
    def __init__(self, data):
        self.data = data
        self.answered = False

    async def answer(self):
        self.answered = True


def _update(chat_id, text=None, callback_data=None):
    message = FakeMessage(text)
    return SimpleNamespace(
        effective_chat=SimpleNamespace(id=chat_id),
        effective_message=message,
        message=message,
        callback_query=FakeQuery(callback_data) if callback_data else None,
    )


@pytest.fixture
def context(flow, session_factory):
    return SimpleNamespace(
        bot=FakeBot(),
        bot_data={"order_flow": flow, "session_factory": session_factory},
    )


async def test_unregistered_chat_is_denied(context, account, notifier):
    update = _update(999, callback_data="confirm_order")

    await handlers.handle_callback(update, context)

    assert update.callback_query.answered
    assert context.bot.sent == [{"chat_id": 999, "text": messages.ACCESS_DENIED}]
    assert notifier.sent == []


async def test_start_greets_by_name(context, account):
    update = _update(int(account.telegram_id))

    await handlers.handle_start(update, context)

    assert update.effective_message.replies[0].startswith("👋 Welcome, Sharma Medicals!")


async def test_inventory_lists_catalog(context, account, catalog):
    update = _update(int(account.telegram_id))

    await handlers.handle_inventory(update, context)

    reply = update.effective_message.replies[0]
    assert "Paracetamol: 100 units @ ₹12.50" in reply


async def test_history_without_orders(context, account):
    update = _update(int(account.telegram_id))

    await handlers.handle_history(update, context)

    assert update.effective_message.replies == [messages.NO_HISTORY]


async def test_order_then_text_reaches_the_flow(context, flow, account, notifier):
    chat_id = int(account.telegram_id)

    await handlers.handle_order(_update(chat_id), context)
    await handlers.handle_text(_update(chat_id, text="Paracetamol,2"), context)

    assert flow.sessions.phase(account.id) == Phase.AWAITING_CONFIRMATION
    assert notifier.sent[-1]["buttons"] == CONFIRMATION_BUTTONS


async def test_notifier_renders_buttons():
    bot = FakeBot()
    notifier = TelegramNotifier(bot)

    ok = await notifier.notify("1001", "*Total*", buttons=CONFIRMATION_BUTTONS, markdown=True)

    assert ok
    sent = bot.sent[0]
    assert sent["chat_id"] == 1001
    keyboard = sent["reply_markup"].inline_keyboard
    assert [b.callback_data for b in keyboard[0]] == ["confirm_order", "edit_order"]


async def test_notifier_without_bot_drops_message():
    assert await TelegramNotifier().notify("1001", "hello") is False


async def test_history_lists_orders_with_lines(context, db, account, catalog, monkeypatch):
    monkeypatch.setattr(settings, "REMINDER_TIMEZONE", "Asia/Kolkata")
    para = catalog["Paracetamol"]
    result = commit_order(db, account.id, [ResolvedLine(para.id, para.name, Decimal("12.50"), 2)])
    order = db.get(Order, result.order_id)
    order.placed_at = datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc)
    db.commit()
    update = _update(int(account.telegram_id))

    await handlers.handle_history(update, context)

    reply = update.effective_message.replies[0]
    assert f"Order #{result.order_id} (11 Mar 2026, 01:30):" in reply
    assert "- Paracetamol: 2 x ₹12.50" in reply
    assert "Total: ₹25.00" in reply
    assert "Status: Pending" in reply


async def test_sink_without_notify_cannot_be_created():
    class HalfSink(NotificationSink):
        pass

    with pytest.raises(TypeError):
        HalfSink()
