"""Orders admin: list everything, update delivery status/time. Never touches stock."""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from medorder.api.deps import get_db, require_admin
from medorder.core.exceptions import ApiError
from medorder.models.order import Order, OrderLine
from medorder.schemas.orders import OrderResponse, OrderUpdate
from medorder.services.order_service import all_orders

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


def _order_out(order: Order) -> dict:
    return {
        "id": order.id,
        "account_id": order.account_id,
        "account_name": order.account.display_name if order.account else "",
        "delivery_status": order.delivery_status,
        "delivery_time": order.delivery_time,
        "total_amount": float(order.total_amount),
        "placed_at": order.placed_at,
        "lines": [
            {
                "catalog_item_id": line.catalog_item_id,
                "item_name": line.catalog_item.name if line.catalog_item else "",
                "quantity": line.quantity,
                "unit_price": float(line.unit_price),
                "line_total": float(line.unit_price * line.quantity),
            }
            for line in order.lines
        ],
    }


@router.get("", response_model=List[OrderResponse])
def list_orders(db: Session = Depends(get_db)):
    return [_order_out(o) for o in all_orders(db)]


@router.patch("/{order_id}", response_model=OrderResponse)
def update_order(order_id: int, updates: OrderUpdate, db: Session = Depends(get_db)):
    order = (
        db.query(Order)
        .options(joinedload(Order.account), joinedload(Order.lines).joinedload(OrderLine.catalog_item))
        .filter(Order.id == order_id)
        .first()
    )
    if not order:
        raise ApiError.not_found("Order", f"id={order_id}")

    if updates.delivery_status is not None:
        status = updates.delivery_status.strip()
        if not status:
            raise ApiError.bad_request("Status cannot be empty")
        order.delivery_status = status
    if updates.delivery_time is not None:
        order.delivery_time = updates.delivery_time

    db.commit()
    db.refresh(order)
    logger.info(f"[Orders] #{order.id} -> {order.delivery_status}")
    return _order_out(order)
