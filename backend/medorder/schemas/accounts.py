from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class AccountCreate(BaseModel):
    display_name: str
    telegram_id: str
    address: Optional[str] = None


class AccountResponse(BaseModel):
    id: int
    display_name: str
    telegram_id: str
    address: Optional[str] = None

    class Config:
        from_attributes = True


class FeedbackResponse(BaseModel):
    id: int
    account_id: int
    message: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
