"""Order persistence and read helpers shared by the bot, the admin API and the reminder sweep."""
from datetime import datetime
from decimal import Decimal
from typing import List, Sequence, Set

from sqlalchemy.orm import Session, joinedload

from medorder.models.order import Order, OrderLine, ORDER_STATUS_PENDING


def create_order(db: Session, account_id: int, total_amount: Decimal) -> Order:
    """Insert the order row. Caller owns the transaction."""
    order = Order(
        account_id=account_id,
        delivery_status=ORDER_STATUS_PENDING,
        delivery_time=None,
        total_amount=total_amount,
    )
    db.add(order)
    db.flush()
    return order


def create_order_lines(db: Session, order: Order, lines: Sequence) -> List[OrderLine]:
    """One row per resolved line, copying the confirmed unit price. Caller owns the transaction."""
    rows = [
        OrderLine(
            order_id=order.id,
            catalog_item_id=line.item_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in lines
    ]
    db.add_all(rows)
    db.flush()
    return rows


def recent_orders(db: Session, account_id: int, limit: int = 10) -> List[Order]:
    return (
        db.query(Order)
        .options(joinedload(Order.lines).joinedload(OrderLine.catalog_item))
        .filter(Order.account_id == account_id)
        .order_by(Order.placed_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def all_orders(db: Session) -> List[Order]:
    return (
        db.query(Order)
        .options(
            joinedload(Order.account),
            joinedload(Order.lines).joinedload(OrderLine.catalog_item),
        )
        .order_by(Order.placed_at.desc(), Order.id.desc())
        .all()
    )


def account_ids_with_orders_since(db: Session, since: datetime) -> Set[int]:
    rows = (
        db.query(Order.account_id)
        .filter(Order.placed_at >= since)
        .group_by(Order.account_id)
        .all()
    )
    return {row.account_id for row in rows}
