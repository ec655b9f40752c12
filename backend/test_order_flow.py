import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from medorder.agent import messages
from medorder.agent.conversation_state import Phase, SessionStore
from medorder.agent.order_flow import OrderFlow
from medorder.models.catalog import CatalogItem
from medorder.models.feedback import Feedback
from medorder.models.order import Order
from medorder.services import fulfillment
from medorder.services.notifier import CONFIRM_ORDER, EDIT_ORDER, CONFIRMATION_BUTTONS

pytestmark = pytest.mark.asyncio


def _stock(db, name):
    db.expire_all()
    return db.query(CatalogItem).filter(CatalogItem.name == name).one().quantity_available


async def _to_confirmation(flow, db, account, text="Paracetamol,10;Amoxicillin,5"):
    await flow.start_order(db, account)
    return await flow.handle_text(db, account, text)


async def test_order_command_asks_for_items(flow, db, account, notifier):
    phase = await flow.start_order(db, account)

    assert phase == Phase.AWAITING_ITEMS
    assert flow.sessions.phase(account.id) == Phase.AWAITING_ITEMS
    assert notifier.sent[-1]["chat_id"] == account.telegram_id
    assert notifier.last == messages.ORDER_PROMPT


async def test_valid_items_produce_summary_with_buttons(flow, db, account, notifier):
    phase = await _to_confirmation(flow, db, account)

    assert phase == Phase.AWAITING_CONFIRMATION
    summary = notifier.sent[-1]
    assert summary["buttons"] == CONFIRMATION_BUTTONS
    assert summary["markdown"] is True
    assert "Paracetamol: 10 x ₹12.50 = ₹125.00" in summary["text"]
    assert "*Total: ₹350.00*" in summary["text"]
    assert [l.name for l in flow.sessions.get(account.id).draft] == ["Paracetamol", "Amoxicillin"]


async def test_all_errors_reported_in_one_reply(flow, db, account, notifier):
    await flow.start_order(db, account)
    phase = await flow.handle_text(db, account, "Paracetamol,ten;Unobtainium,1;Ibuprofen,50;Cetirizine,1")

    assert phase == Phase.AWAITING_ITEMS
    reply = notifier.last
    assert reply.startswith("❌ Errors:")
    assert "Invalid format: Paracetamol,ten" in reply
    assert "Medicine not found: Unobtainium" in reply
    assert "Not enough stock for Ibuprofen (Available: 5)" in reply
    assert flow.sessions.get(account.id).draft == []


async def test_message_with_no_lines(flow, db, account, notifier):
    await flow.start_order(db, account)
    phase = await flow.handle_text(db, account, " ; ; ")

    assert phase == Phase.AWAITING_ITEMS
    assert notifier.last == messages.NO_VALID_ITEMS


async def test_fuzzy_name_lands_in_draft(flow, db, account):
    await _to_confirmation(flow, db, account, "paracetmol,2")
    assert flow.sessions.get(account.id).draft[0].name == "Paracetamol"


async def test_confirm_places_order_and_returns_to_idle(flow, db, account, notifier):
    await _to_confirmation(flow, db, account)
    phase = await flow.handle_action(db, account, CONFIRM_ORDER)

    assert phase == Phase.IDLE
    assert flow.sessions.get(account.id) is None
    order = db.query(Order).one()
    assert notifier.last == messages.order_placed(order.id, order.total_amount)
    assert "Total: ₹350.00" in notifier.last
    assert _stock(db, "Paracetamol") == 90
    assert _stock(db, "Amoxicillin") == 45


async def test_low_stock_alert_follows_confirmation(flow, db, account, notifier):
    await _to_confirmation(flow, db, account, "Cetirizine,4")
    await flow.handle_action(db, account, CONFIRM_ORDER)

    texts = notifier.texts(account.telegram_id)
    assert texts[-2].startswith("✅ Order placed successfully!")
    assert texts[-1] == "⚠️ Low stock alert for Cetirizine: 8 units left."


async def test_edit_clears_draft(flow, db, account, notifier):
    await _to_confirmation(flow, db, account)
    phase = await flow.handle_action(db, account, EDIT_ORDER)

    assert phase == Phase.AWAITING_ITEMS
    assert flow.sessions.get(account.id).draft == []
    assert notifier.last == messages.EDIT_PROMPT

    phase = await flow.handle_text(db, account, "Cetirizine,1")
    assert phase == Phase.AWAITING_CONFIRMATION
    assert [l.name for l in flow.sessions.get(account.id).draft] == ["Cetirizine"]


async def test_text_while_awaiting_confirmation_is_nudged(flow, db, account, notifier):
    await _to_confirmation(flow, db, account)
    phase = await flow.handle_text(db, account, "Ibuprofen,1")

    assert phase == Phase.AWAITING_CONFIRMATION
    assert notifier.last == messages.USE_BUTTONS
    assert len(flow.sessions.get(account.id).draft) == 2


async def test_stock_change_keeps_draft_for_retry(flow, db, account, notifier):
    await _to_confirmation(flow, db, account, "Ibuprofen,4")

    ibu = db.query(CatalogItem).filter(CatalogItem.name == "Ibuprofen").one()
    ibu.quantity_available = 2
    db.commit()

    phase = await flow.handle_action(db, account, CONFIRM_ORDER)

    assert phase == Phase.AWAITING_CONFIRMATION
    assert len(flow.sessions.get(account.id).draft) == 1
    assert "Ibuprofen: requested 4, available 2" in notifier.last
    assert db.query(Order).count() == 0

    ibu.quantity_available = 10
    db.commit()
    phase = await flow.handle_action(db, account, CONFIRM_ORDER)
    assert phase == Phase.IDLE
    assert db.query(Order).count() == 1


async def test_persistence_failure_keeps_draft(flow, db, account, notifier, monkeypatch):
    def broken_lines(*args, **kwargs):
        raise OperationalError("INSERT INTO order_lines", {}, Exception("database is locked"))

    await _to_confirmation(flow, db, account)
    monkeypatch.setattr(fulfillment, "create_order_lines", broken_lines)

    phase = await flow.handle_action(db, account, CONFIRM_ORDER)

    assert phase == Phase.AWAITING_CONFIRMATION
    assert notifier.last == messages.ORDER_FAILED
    assert db.query(Order).count() == 0
    assert _stock(db, "Paracetamol") == 100


async def test_button_without_session_reports_session_lost(flow, db, account, notifier):
    phase = await flow.handle_action(db, account, CONFIRM_ORDER)

    assert phase == Phase.IDLE
    assert notifier.last == messages.SESSION_LOST
    assert db.query(Order).count() == 0


async def test_button_in_wrong_phase_is_stale(flow, db, account, notifier):
    await flow.start_order(db, account)
    phase = await flow.handle_action(db, account, CONFIRM_ORDER)

    assert phase == Phase.AWAITING_ITEMS
    assert notifier.last == messages.STALE_ACTION


async def test_text_without_session_is_ignored(flow, db, account, notifier):
    phase = await flow.handle_text(db, account, "Paracetamol,10")

    assert phase == Phase.IDLE
    assert notifier.sent == []


async def test_feedback_is_recorded(flow, db, account, notifier):
    phase = await flow.start_feedback(db, account)
    assert phase == Phase.AWAITING_FEEDBACK
    assert notifier.last == messages.FEEDBACK_PROMPT

    phase = await flow.handle_text(db, account, "  Deliveries are quick, thanks!  ")

    assert phase == Phase.IDLE
    entry = db.query(Feedback).one()
    assert entry.account_id == account.id
    assert entry.message == "Deliveries are quick, thanks!"
    assert notifier.last == messages.FEEDBACK_THANKS


async def test_flow_command_mid_order_restarts(flow, db, account):
    await _to_confirmation(flow, db, account)
    phase = await flow.start_feedback(db, account)

    assert phase == Phase.AWAITING_FEEDBACK
    assert flow.sessions.get(account.id).draft == []


async def test_cancel(flow, db, account, notifier):
    assert await flow.cancel(db, account) == Phase.IDLE
    assert notifier.last == messages.NOTHING_TO_CANCEL

    await _to_confirmation(flow, db, account)
    assert await flow.cancel(db, account) == Phase.IDLE
    assert flow.sessions.get(account.id) is None
    assert notifier.last == messages.CANCELLED


async def test_accounts_do_not_share_sessions(flow, db, account, other_account, notifier):
    await _to_confirmation(flow, db, account)
    await flow.start_order(db, other_account)

    assert flow.sessions.phase(account.id) == Phase.AWAITING_CONFIRMATION
    assert flow.sessions.phase(other_account.id) == Phase.AWAITING_ITEMS

    await flow.handle_action(db, account, CONFIRM_ORDER)
    assert flow.sessions.phase(other_account.id) == Phase.AWAITING_ITEMS
    assert notifier.texts(other_account.telegram_id) == [messages.ORDER_PROMPT]


async def test_double_tap_confirm_places_one_order(flow, db, account, notifier):
    await _to_confirmation(flow, db, account)

    phases = await asyncio.gather(
        flow.handle_action(db, account, CONFIRM_ORDER),
        flow.handle_action(db, account, CONFIRM_ORDER),
    )

    assert sorted(p.value for p in phases) == ["idle", "idle"]
    assert db.query(Order).count() == 1
    assert messages.SESSION_LOST in notifier.texts()
    assert _stock(db, "Paracetamol") == 90


async def test_two_accounts_race_for_last_units(index, db, account, other_account, notifier):
    flow = OrderFlow(SessionStore(), index, notifier, low_stock_threshold=10)
    await _to_confirmation(flow, db, account, "Ibuprofen,3")
    await _to_confirmation(flow, db, other_account, "Ibuprofen,3")

    await asyncio.gather(
        flow.handle_action(db, account, CONFIRM_ORDER),
        flow.handle_action(db, other_account, CONFIRM_ORDER),
    )

    assert db.query(Order).count() == 1
    assert _stock(db, "Ibuprofen") == 2
    loser_phases = [flow.sessions.phase(a.id) for a in (account, other_account)]
    assert sorted(p.value for p in loser_phases) == ["awaiting_confirmation", "idle"]
