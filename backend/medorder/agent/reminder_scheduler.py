"""
Daily order reminder.

Once a day (REMINDER_HOUR:REMINDER_MINUTE in REMINDER_TIMEZONE) every
registered shopkeeper who has not placed an order since local midnight gets a
reminder message. Reads accounts and orders through the same services the
bot uses; shares no state with the order flow.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from medorder.agent import messages
from medorder.core.config import settings
from medorder.db.session import SessionLocal
from medorder.models.account import Account
from medorder.services.account_service import list_accounts
from medorder.services.notifier import NotificationSink
from medorder.services.order_service import account_ids_with_orders_since

logger = logging.getLogger(__name__)


def start_of_local_day(now: datetime, tz: ZoneInfo) -> datetime:
    """Local midnight of `now`'s local date, returned in UTC."""
    local = now.astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


def seconds_until_next_run(now: datetime, hour: int, minute: int, tz: ZoneInfo) -> float:
    local = now.astimezone(tz)
    target = local.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= local:
        target += timedelta(days=1)
    return (target - local).total_seconds()


def find_accounts_to_remind(db: Session, since: datetime) -> List[Account]:
    """Full roster minus accounts with at least one order since `since`."""
    ordered = account_ids_with_orders_since(db, since)
    return [account for account in list_accounts(db) if account.id not in ordered]


def _collect_targets(session_factory: Callable[[], Session], since: datetime) -> List[Tuple[int, str]]:
    db = session_factory()
    try:
        return [(a.id, a.telegram_id) for a in find_accounts_to_remind(db, since)]
    finally:
        db.close()


async def send_daily_reminders(
    notifier: NotificationSink,
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> int:
    """Run one sweep. Returns the number of reminders handed to the notifier."""
    tz = ZoneInfo(settings.REMINDER_TIMEZONE)
    now = now or datetime.now(timezone.utc)
    since = start_of_local_day(now, tz)

    # DB reads run in the thread pool to keep the event loop free
    loop = asyncio.get_running_loop()
    targets = await loop.run_in_executor(None, _collect_targets, session_factory, since)

    sent = 0
    for account_id, telegram_id in targets:
        # One bad account must not stop the rest of the sweep
        try:
            delivered = await notifier.notify(telegram_id, messages.REMINDER)
        except Exception as e:
            logger.error(f"[Reminder] Notifier error for account={account_id}: {e}", exc_info=True)
            delivered = False
        if delivered:
            sent += 1
        else:
            logger.warning(f"[Reminder] Delivery failed for account={account_id}")

    logger.info(f"[Reminder] Sweep done: {len(targets)} without orders, {sent} reminded")
    return sent


# ============================================================================
# BACKGROUND TASK: runs in the asyncio loop alongside FastAPI
# ============================================================================

_scheduler_task: Optional[asyncio.Task] = None


async def _reminder_scheduler_loop(notifier: NotificationSink):
    tz = ZoneInfo(settings.REMINDER_TIMEZONE)
    logger.info(
        f"[Reminder] Scheduler started. Daily at "
        f"{settings.REMINDER_HOUR:02d}:{settings.REMINDER_MINUTE:02d} {settings.REMINDER_TIMEZONE}"
    )

    while True:
        delay = seconds_until_next_run(
            datetime.now(timezone.utc), settings.REMINDER_HOUR, settings.REMINDER_MINUTE, tz
        )
        await asyncio.sleep(delay)
        try:
            await send_daily_reminders(notifier)
        except Exception as e:
            logger.error(f"[Reminder] Sweep error: {e}", exc_info=True)


def start_reminder_scheduler(notifier: NotificationSink):
    """Start the daily sweep. Called from the FastAPI lifespan (needs a running loop)."""
    global _scheduler_task
    if _scheduler_task and not _scheduler_task.done():
        return
    _scheduler_task = asyncio.get_running_loop().create_task(_reminder_scheduler_loop(notifier))
    logger.info("[Reminder] Daily reminder scheduler initialized")


def stop_reminder_scheduler():
    global _scheduler_task
    if _scheduler_task:
        _scheduler_task.cancel()
        _scheduler_task = None
        logger.info("[Reminder] Scheduler stopped")
