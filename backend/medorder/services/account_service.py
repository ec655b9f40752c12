"""Account lookup. The only identity check the bot performs."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from medorder.models.account import Account

logger = logging.getLogger(__name__)


def find_account_by_external_identity(db: Session, identity) -> Optional[Account]:
    """Resolve a Telegram chat id to a registered account, or None."""
    if identity is None:
        return None
    account = db.query(Account).filter(Account.telegram_id == str(identity)).first()
    if not account:
        logger.warning(f"[AUTH] Unregistered telegram id={identity}")
    return account


def list_accounts(db: Session) -> List[Account]:
    return db.query(Account).order_by(Account.id).all()
