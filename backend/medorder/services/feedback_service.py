"""Feedback entries. Written when a /feedback conversation completes."""
import logging

from sqlalchemy.orm import Session

from medorder.models.account import Account
from medorder.models.feedback import Feedback

logger = logging.getLogger(__name__)


def record_feedback(db: Session, account: Account, message: str) -> Feedback:
    entry = Feedback(account_id=account.id, message=message.strip())
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info(f"[Feedback] from {account.display_name} ({account.telegram_id}): {entry.message}")
    return entry
