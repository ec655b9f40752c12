"""
Analytics API: dashboard totals.

- Order count and revenue
- Orders grouped by delivery status
- Top items by quantity ordered
- Low stock count at the configured threshold
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from medorder.api.deps import get_db, require_admin
from medorder.core.config import settings
from medorder.models.account import Account
from medorder.models.catalog import CatalogItem
from medorder.models.order import Order, OrderLine

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
def get_analytics_summary(
    top: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    total_orders = db.query(func.count(Order.id)).scalar() or 0
    revenue = db.query(func.sum(Order.total_amount)).scalar() or Decimal("0")

    by_status = (
        db.query(Order.delivery_status, func.count(Order.id))
        .group_by(Order.delivery_status)
        .all()
    )

    # Top items by units ordered
    top_items = (
        db.query(
            CatalogItem.name,
            func.sum(OrderLine.quantity).label("units"),
            func.sum(OrderLine.quantity * OrderLine.unit_price).label("revenue"),
        )
        .join(OrderLine, OrderLine.catalog_item_id == CatalogItem.id)
        .group_by(CatalogItem.id, CatalogItem.name)
        .order_by(func.sum(OrderLine.quantity).desc(), CatalogItem.name)
        .limit(top)
        .all()
    )

    low_stock_count = db.query(func.count(CatalogItem.id)).filter(
        CatalogItem.quantity_available < settings.LOW_STOCK_THRESHOLD
    ).scalar() or 0

    total_accounts = db.query(func.count(Account.id)).scalar() or 0

    return {
        "total_orders": total_orders,
        "revenue": float(revenue),
        "orders_by_status": {status: count for status, count in by_status},
        "top_items": [
            {"name": name, "units": int(units or 0), "revenue": float(rev or 0)}
            for name, units, rev in top_items
        ],
        "low_stock_count": low_stock_count,
        "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
        "accounts": total_accounts,
    }
