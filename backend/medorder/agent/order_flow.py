"""
Order intake state machine.

    IDLE --/order--> AWAITING_ITEMS --valid items--> AWAITING_CONFIRMATION
                          ^   |  (errors: stay, all errors in one reply)
                          |   v
                          +--edit--  AWAITING_CONFIRMATION --confirm--> commit --> IDLE
                                                         (commit failed: stay, draft kept)
    IDLE --/feedback--> AWAITING_FEEDBACK --any text--> IDLE

A flow command mid-flow restarts that flow and drops the previous draft.
Plain text with no live session is ignored.

Every entry point takes an already-resolved Account; identity gating happens
in the transport layer (see medorder.telegram.utils.with_account). All work
for one account runs under that account's lock, so messages from the same
caller are handled one at a time.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medorder.agent import messages
from medorder.agent.conversation_state import Phase, SessionStore, ChatSession
from medorder.core.config import settings
from medorder.core.exceptions import CommitError, SessionLost
from medorder.models.account import Account
from medorder.services.catalog_index import CatalogIndex
from medorder.services.feedback_service import record_feedback
from medorder.services.fulfillment import commit_order
from medorder.services.item_resolver import resolve_lines
from medorder.services.notifier import NotificationSink, CONFIRM_ORDER, EDIT_ORDER, CONFIRMATION_BUTTONS
from medorder.services.order_parser import parse_order_text

logger = logging.getLogger(__name__)


class OrderFlow:
    def __init__(
        self,
        sessions: SessionStore,
        index: CatalogIndex,
        notifier: NotificationSink,
        low_stock_threshold: Optional[int] = None,
    ):
        self.sessions = sessions
        self.index = index
        self.notifier = notifier
        self.low_stock_threshold = (
            settings.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_order(self, db: Session, account: Account) -> Phase:
        async with self.sessions.lock(account.id):
            previous = self.sessions.phase(account.id)
            self.sessions.create(account.id, Phase.AWAITING_ITEMS)
            logger.info(f"[OrderFlow] account={account.id} {previous.value} -> awaiting_items")
            await self.notifier.notify(account.telegram_id, messages.ORDER_PROMPT)
            return Phase.AWAITING_ITEMS

    async def start_feedback(self, db: Session, account: Account) -> Phase:
        async with self.sessions.lock(account.id):
            previous = self.sessions.phase(account.id)
            self.sessions.create(account.id, Phase.AWAITING_FEEDBACK)
            logger.info(f"[OrderFlow] account={account.id} {previous.value} -> awaiting_feedback")
            await self.notifier.notify(account.telegram_id, messages.FEEDBACK_PROMPT)
            return Phase.AWAITING_FEEDBACK

    async def cancel(self, db: Session, account: Account) -> Phase:
        async with self.sessions.lock(account.id):
            if self.sessions.get(account.id) is None:
                await self.notifier.notify(account.telegram_id, messages.NOTHING_TO_CANCEL)
                return Phase.IDLE
            self.sessions.delete(account.id)
            logger.info(f"[OrderFlow] account={account.id} cancelled")
            await self.notifier.notify(account.telegram_id, messages.CANCELLED)
            return Phase.IDLE

    # ------------------------------------------------------------------
    # Plain text
    # ------------------------------------------------------------------

    async def handle_text(self, db: Session, account: Account, text: str) -> Phase:
        text = (text or "").strip()
        if not text or text.startswith("/"):
            return self.sessions.phase(account.id)

        async with self.sessions.lock(account.id):
            session = self.sessions.get(account.id)
            if session is None:
                return Phase.IDLE

            if session.phase == Phase.AWAITING_ITEMS:
                await self._receive_items(db, account, session, text)
            elif session.phase == Phase.AWAITING_FEEDBACK:
                await self._receive_feedback(db, account, text)
            elif session.phase == Phase.AWAITING_CONFIRMATION:
                await self.notifier.notify(account.telegram_id, messages.USE_BUTTONS)

            return self.sessions.phase(account.id)

    async def _receive_items(self, db: Session, account: Account, session: ChatSession, text: str):
        parsed = parse_order_text(text)
        try:
            resolution = resolve_lines(db, self.index, parsed.lines)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[OrderFlow] Catalog lookup failed for account={account.id}: {e}", exc_info=True)
            await self.notifier.notify(account.telegram_id, messages.LOOKUP_FAILED)
            return

        errors = messages.describe_all(parsed.errors) + messages.describe_all(resolution.errors)
        if errors:
            logger.info(f"[OrderFlow] account={account.id} rejected order text: {errors}")
            await self.notifier.notify(account.telegram_id, messages.error_list(errors))
            return

        if not resolution.lines:
            await self.notifier.notify(account.telegram_id, messages.NO_VALID_ITEMS)
            return

        session.draft = list(resolution.lines)
        session.phase = Phase.AWAITING_CONFIRMATION
        logger.info(f"[OrderFlow] account={account.id} -> awaiting_confirmation ({len(session.draft)} lines)")
        await self.notifier.notify(
            account.telegram_id,
            messages.order_summary(session.draft),
            buttons=CONFIRMATION_BUTTONS,
            markdown=True,
        )

    async def _receive_feedback(self, db: Session, account: Account, text: str):
        try:
            record_feedback(db, account, text)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[OrderFlow] Saving feedback failed for account={account.id}: {e}", exc_info=True)
            await self.notifier.notify(account.telegram_id, messages.FEEDBACK_FAILED)
            return

        self.sessions.delete(account.id)
        await self.notifier.notify(account.telegram_id, messages.FEEDBACK_THANKS)

    # ------------------------------------------------------------------
    # Inline buttons
    # ------------------------------------------------------------------

    async def handle_action(self, db: Session, account: Account, action: str) -> Phase:
        async with self.sessions.lock(account.id):
            session = self.sessions.get(account.id)
            if session is None:
                lost = SessionLost(account.id)
                logger.info(f"[OrderFlow] {lost}")
                await self.notifier.notify(account.telegram_id, messages.SESSION_LOST)
                return Phase.IDLE

            if session.phase != Phase.AWAITING_CONFIRMATION:
                await self.notifier.notify(account.telegram_id, messages.STALE_ACTION)
                return session.phase

            if action == CONFIRM_ORDER:
                await self._confirm(db, account, session)
            elif action == EDIT_ORDER:
                await self._edit(account, session)
            else:
                logger.warning(f"[OrderFlow] Unknown action '{action}' from account={account.id}")

            return self.sessions.phase(account.id)

    async def _confirm(self, db: Session, account: Account, session: ChatSession):
        try:
            result = commit_order(db, account.id, session.draft, self.low_stock_threshold)
        except CommitError as e:
            # Draft and phase untouched: caller may retry or edit
            logger.warning(f"[OrderFlow] Commit failed for account={account.id}: {e}")
            await self.notifier.notify(account.telegram_id, messages.commit_failed(e))
            return

        self.sessions.delete(account.id)
        logger.info(f"[OrderFlow] account={account.id} placed order #{result.order_id}")
        self._refresh_index(db)

        await self.notifier.notify(account.telegram_id, messages.order_placed(result.order_id, result.total_amount))
        for alert in result.low_stock:
            await self.notifier.notify(account.telegram_id, alert.describe())

    async def _edit(self, account: Account, session: ChatSession):
        session.draft = []
        session.phase = Phase.AWAITING_ITEMS
        logger.info(f"[OrderFlow] account={account.id} editing -> awaiting_items")
        await self.notifier.notify(account.telegram_id, messages.EDIT_PROMPT)

    def _refresh_index(self, db: Session):
        try:
            self.index.refresh(db)
        except SQLAlchemyError as e:
            # Stale index only causes misses; next commit or admin edit retries
            db.rollback()
            logger.error(f"[OrderFlow] Catalog index refresh failed: {e}", exc_info=True)
