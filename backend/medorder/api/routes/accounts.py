import logging
import re
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from medorder.api.deps import get_db, require_admin
from medorder.core.exceptions import ApiError
from medorder.models.account import Account
from medorder.schemas.accounts import AccountCreate, AccountResponse
from medorder.services.account_service import list_accounts

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

# Group chats have negative ids
_TELEGRAM_ID_RE = re.compile(r"^-?[0-9]+$")


@router.get("", response_model=List[AccountResponse])
def get_accounts(db: Session = Depends(get_db)):
    return list_accounts(db)


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(data: AccountCreate, db: Session = Depends(get_db)):
    """Register a caller. The telegram_id is the chat id the bot sees."""
    display_name = data.display_name.strip()
    telegram_id = data.telegram_id.strip()
    if not display_name or not telegram_id:
        raise ApiError.bad_request("display_name and telegram_id are required")
    if not _TELEGRAM_ID_RE.match(telegram_id):
        raise ApiError.bad_request("telegram_id must be a numeric Telegram chat id")

    existing = db.query(Account).filter(Account.telegram_id == telegram_id).first()
    if existing:
        raise ApiError.conflict(f"Telegram id {telegram_id} is already registered")

    account = Account(display_name=display_name, telegram_id=telegram_id, address=data.address)
    db.add(account)
    db.commit()
    db.refresh(account)
    logger.info(f"[Accounts] Registered {account.display_name} (id={account.id})")
    return account
