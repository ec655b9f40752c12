from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class OrderLineResponse(BaseModel):
    catalog_item_id: int
    item_name: str
    quantity: int
    unit_price: float
    line_total: float


class OrderResponse(BaseModel):
    id: int
    account_id: int
    account_name: str
    delivery_status: str
    delivery_time: Optional[datetime] = None
    total_amount: float
    placed_at: Optional[datetime] = None
    lines: List[OrderLineResponse] = []


class OrderUpdate(BaseModel):
    delivery_status: Optional[str] = None
    delivery_time: Optional[datetime] = None
