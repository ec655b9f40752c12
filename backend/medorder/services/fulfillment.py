"""
Fulfillment transaction: order row + line rows + stock decrements, all or nothing.

Steps, inside one database transaction:
1. Lock and re-read every referenced item; stock may have moved since the
   caller saw the summary
2. Abort with STOCK_CHANGED if any item is now short
3. Insert the order with the total of the confirmed prices
4. Insert one line per draft line, copying the confirmed unit price
5. Conditionally decrement stock; a conflict aborts with STOCK_CHANGED

Any database error rolls everything back and surfaces as PERSISTENCE_FAILURE.
The caller keeps its draft on every failure and may retry.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medorder.core.config import settings
from medorder.core.exceptions import CommitError, CommitErrorReason
from medorder.models.order import Order
from medorder.services.catalog_service import lock_items, decrement_stock, current_quantities
from medorder.services.item_resolver import ResolvedLine, order_total
from medorder.services.order_service import create_order, create_order_lines

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LowStockAlert:
    item_id: int
    name: str
    quantity_available: int

    def describe(self) -> str:
        return f"⚠️ Low stock alert for {self.name}: {self.quantity_available} units left."


@dataclass
class CommitResult:
    order: Order
    order_id: int
    total_amount: Decimal
    low_stock: List[LowStockAlert] = field(default_factory=list)


class _StockConflict(Exception):
    def __init__(self, line: ResolvedLine):
        self.line = line


def commit_order(
    db: Session,
    account_id: int,
    lines: Sequence[ResolvedLine],
    low_stock_threshold: Optional[int] = None,
) -> CommitResult:
    if not lines:
        raise ValueError("Cannot commit an empty order")

    threshold = settings.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold

    # Same item may appear on several lines; stock is checked on the sum
    requested = OrderedDict()
    names = {}
    for line in lines:
        requested[line.item_id] = requested.get(line.item_id, 0) + line.quantity
        names[line.item_id] = line.name

    try:
        # Step 1-2: re-validate against current stock under lock
        locked = lock_items(db, requested.keys())
        seen = {item_id: item.quantity_available for item_id, item in locked.items()}
        offending = []
        for item_id, quantity in requested.items():
            available = seen.get(item_id, 0)
            if available < quantity:
                offending.append((names[item_id], quantity, available))
        if offending:
            raise CommitError(CommitErrorReason.STOCK_CHANGED, offending)

        # Step 3-4
        total = order_total(lines)
        order = create_order(db, account_id, total)
        create_order_lines(db, order, lines)

        # Step 5
        for line in lines:
            if not decrement_stock(db, line.item_id, line.quantity):
                raise _StockConflict(line)

        remaining = current_quantities(db, requested.keys())
        order_id = order.id
        db.commit()

    except CommitError:
        db.rollback()
        raise
    except _StockConflict as conflict:
        db.rollback()
        line = conflict.line
        logger.warning(f"[Fulfillment] Stock conflict on '{line.name}' for account {account_id}")
        raise CommitError(
            CommitErrorReason.STOCK_CHANGED, [(line.name, requested[line.item_id], seen.get(line.item_id, 0))]
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Fulfillment] Commit failed for account {account_id}: {e}", exc_info=True)
        raise CommitError(CommitErrorReason.PERSISTENCE_FAILURE, detail=type(e).__name__) from e

    low_stock = [
        LowStockAlert(item_id, names[item_id], remaining[item_id])
        for item_id in requested
        if item_id in remaining and remaining[item_id] < threshold
    ]
    for alert in low_stock:
        logger.warning(f"[Fulfillment] Low stock: {alert.name} has {alert.quantity_available} left")

    logger.info(f"[Fulfillment] Order #{order_id} committed for account {account_id}, total ₹{total}")
    return CommitResult(order=order, order_id=order_id, total_amount=total, low_stock=low_stock)
