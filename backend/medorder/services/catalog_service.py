"""Catalog reads and the stock decrement used inside the fulfillment transaction."""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from medorder.models.catalog import CatalogItem


def list_catalog(db: Session) -> List[CatalogItem]:
    return db.query(CatalogItem).order_by(CatalogItem.name.asc()).all()


def get_catalog_item(db: Session, name: str, exact: bool = True) -> Optional[CatalogItem]:
    """
    exact=True: case-insensitive equality ("paracetamol" finds "Paracetamol").
    exact=False: case-insensitive substring, lowest id wins for determinism.
    """
    name = (name or "").strip()
    if not name:
        return None
    if exact:
        return db.query(CatalogItem).filter(func.lower(CatalogItem.name) == name.lower()).first()
    return (
        db.query(CatalogItem)
        .filter(CatalogItem.name.ilike(f"%{name}%"))
        .order_by(CatalogItem.id)
        .first()
    )


def lock_items(db: Session, item_ids: Iterable[int]) -> Dict[int, CatalogItem]:
    """
    Re-read items with SELECT ... FOR UPDATE (row locks on PostgreSQL).

    Ids are locked in ascending order so two concurrent commits touching the
    same items cannot deadlock. SQLite ignores FOR UPDATE and serializes
    writers instead; the conditional decrement covers that case.
    """
    ids = sorted(set(item_ids))
    if not ids:
        return {}
    items = (
        db.query(CatalogItem)
        .filter(CatalogItem.id.in_(ids))
        .order_by(CatalogItem.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {item.id: item for item in items}


def decrement_stock(db: Session, item_id: int, quantity: int) -> bool:
    """
    Conditional decrement. Returns False (conflict) when the row no longer has
    enough stock, in which case nothing was changed.
    """
    result = db.execute(
        update(CatalogItem)
        .where(CatalogItem.id == item_id, CatalogItem.quantity_available >= quantity)
        .values(quantity_available=CatalogItem.quantity_available - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def current_quantities(db: Session, item_ids: Iterable[int]) -> Dict[int, int]:
    rows = (
        db.query(CatalogItem.id, CatalogItem.quantity_available)
        .filter(CatalogItem.id.in_(list(item_ids)))
        .all()
    )
    return {row.id: row.quantity_available for row in rows}


def low_stock_items(db: Session, threshold: int, limit: int = 50) -> List[CatalogItem]:
    return (
        db.query(CatalogItem)
        .filter(CatalogItem.quantity_available < threshold)
        .order_by(CatalogItem.quantity_available.asc(), CatalogItem.name.asc())
        .limit(limit)
        .all()
    )
