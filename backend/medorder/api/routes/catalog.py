"""Catalog admin: list, create, restock/reprice, delete. Every write rebuilds the fuzzy index."""
import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from medorder.api.deps import get_db, get_index, require_admin
from medorder.core.config import settings
from medorder.core.exceptions import ApiError
from medorder.models.catalog import CatalogItem
from medorder.models.order import OrderLine
from medorder.schemas.catalog import CatalogItemCreate, CatalogItemUpdate, CatalogItemResponse
from medorder.services.catalog_index import CatalogIndex
from medorder.services.catalog_service import list_catalog, low_stock_items

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


def _item_out(item: CatalogItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "quantity_available": item.quantity_available,
        "unit_price": float(item.unit_price),
        "status": (
            "Out of Stock" if item.quantity_available == 0
            else "Low Stock" if item.quantity_available < settings.LOW_STOCK_THRESHOLD
            else "In Stock"
        ),
    }


def _name_taken(db: Session, name: str, exclude_id: int = None) -> bool:
    q = db.query(CatalogItem).filter(func.lower(CatalogItem.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(CatalogItem.id != exclude_id)
    return db.query(q.exists()).scalar()


@router.get("", response_model=List[CatalogItemResponse])
def get_catalog(db: Session = Depends(get_db)):
    return [_item_out(i) for i in list_catalog(db)]


@router.get("/low-stock", response_model=List[CatalogItemResponse])
def get_low_stock(
    threshold: int = Query(None, description="Defaults to LOW_STOCK_THRESHOLD"),
    db: Session = Depends(get_db),
):
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    return [_item_out(i) for i in low_stock_items(db, threshold)]


@router.post("", response_model=CatalogItemResponse, status_code=201)
def create_catalog_item(
    data: CatalogItemCreate,
    db: Session = Depends(get_db),
    index: CatalogIndex = Depends(get_index),
):
    name = data.name.strip()
    if not name:
        raise ApiError.bad_request("Item name cannot be empty")
    if data.quantity_available < 0:
        raise ApiError.bad_request("Quantity cannot be negative")
    if data.unit_price < 0:
        raise ApiError.bad_request("Price cannot be negative")
    if _name_taken(db, name):
        raise ApiError.conflict(f"Item '{name}' already exists")

    item = CatalogItem(
        name=name,
        quantity_available=data.quantity_available,
        unit_price=Decimal(str(data.unit_price)),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    index.refresh(db)
    logger.info(f"[Catalog] Added {item.name} ({item.quantity_available} units)")
    return _item_out(item)


@router.patch("/{item_id}", response_model=CatalogItemResponse)
def update_catalog_item(
    item_id: int,
    updates: CatalogItemUpdate,
    db: Session = Depends(get_db),
    index: CatalogIndex = Depends(get_index),
):
    item = db.query(CatalogItem).filter(CatalogItem.id == item_id).first()
    if not item:
        raise ApiError.not_found("Item", f"id={item_id}")

    if updates.quantity_available is not None and updates.quantity_available < 0:
        raise ApiError.bad_request("Quantity cannot be negative")
    if updates.unit_price is not None and updates.unit_price < 0:
        raise ApiError.bad_request("Price cannot be negative")
    if updates.name is not None:
        if not updates.name.strip():
            raise ApiError.bad_request("Item name cannot be empty")
        if _name_taken(db, updates.name.strip(), exclude_id=item.id):
            raise ApiError.conflict(f"Item '{updates.name.strip()}' already exists")
        item.name = updates.name.strip()
    if updates.quantity_available is not None:
        item.quantity_available = updates.quantity_available
    if updates.unit_price is not None:
        item.unit_price = Decimal(str(updates.unit_price))

    db.commit()
    db.refresh(item)
    index.refresh(db)
    logger.info(f"[Catalog] Updated {item.name}: qty={item.quantity_available}, price={item.unit_price}")
    return _item_out(item)


@router.delete("/{item_id}")
def delete_catalog_item(
    item_id: int,
    db: Session = Depends(get_db),
    index: CatalogIndex = Depends(get_index),
):
    """Rejected with 409 once any order line references the item; history must survive."""
    item = db.query(CatalogItem).filter(CatalogItem.id == item_id).first()
    if not item:
        raise ApiError.not_found("Item", f"id={item_id}")

    referenced = db.query(db.query(OrderLine).filter(OrderLine.catalog_item_id == item_id).exists()).scalar()
    if referenced:
        raise ApiError.conflict(f"'{item.name}' appears in past orders and cannot be deleted. Set its quantity to 0 instead.")

    name = item.name
    db.delete(item)
    db.commit()
    index.refresh(db)
    return {"message": f"Deleted {name}", "id": item_id}
