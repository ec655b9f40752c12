from pydantic import BaseModel
from typing import Optional


class CatalogItemCreate(BaseModel):
    name: str
    quantity_available: int = 0
    unit_price: float = 0.0


class CatalogItemUpdate(BaseModel):
    name: Optional[str] = None
    quantity_available: Optional[int] = None
    unit_price: Optional[float] = None


class CatalogItemResponse(BaseModel):
    id: int
    name: str
    quantity_available: int
    unit_price: float
    status: str
