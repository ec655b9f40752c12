"""
Item resolution: requested name -> catalog item, with a stock check.

1. Case-insensitive exact match against the catalog table
2. On miss, top fuzzy candidate from the CatalogIndex, re-resolved exactly
3. Still nothing -> NOT_FOUND
4. Found but short -> INSUFFICIENT_STOCK

Every line is resolved; errors are collected, never short-circuited.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from medorder.models.catalog import CatalogItem
from medorder.services.catalog_index import CatalogIndex
from medorder.services.catalog_service import get_catalog_item
from medorder.services.order_parser import ParsedLine

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class ResolutionErrorReason(str, Enum):
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"


@dataclass(frozen=True)
class ResolutionError:
    name: str
    reason: ResolutionErrorReason
    available: Optional[int] = None

    def describe(self) -> str:
        if self.reason == ResolutionErrorReason.INSUFFICIENT_STOCK:
            return f"Not enough stock for {self.name} (Available: {self.available})"
        return f"Medicine not found: {self.name}"


@dataclass(frozen=True)
class ResolvedLine:
    """A draft line. Holds a copy of the item data so it outlives the DB session."""
    item_id: int
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass
class ResolutionResult:
    lines: List[ResolvedLine] = field(default_factory=list)
    errors: List[ResolutionError] = field(default_factory=list)


def order_total(lines: Iterable[ResolvedLine]) -> Decimal:
    return to_money(sum((line.unit_price * line.quantity for line in lines), Decimal("0")))


def resolve_item(db: Session, index: CatalogIndex, name: str) -> Optional[CatalogItem]:
    item = get_catalog_item(db, name, exact=True)
    if item:
        return item

    candidates = index.search(name)
    if not candidates:
        logger.info(f"[ItemResolver] No match for '{name}'")
        return None

    best_name, score = candidates[0]
    item = get_catalog_item(db, best_name, exact=True)
    if item:
        logger.info(f"[ItemResolver] Fuzzy matched '{name}' -> '{item.name}' (score {score:.1f})")
    else:
        # Index is stale: the candidate was renamed or deleted since the last rebuild
        logger.warning(f"[ItemResolver] Stale index entry '{best_name}' for '{name}'")
    return item


def resolve_lines(db: Session, index: CatalogIndex, parsed: Iterable[ParsedLine]) -> ResolutionResult:
    result = ResolutionResult()
    # Quantity already claimed per item by earlier lines of the same message
    claimed: Dict[int, int] = {}

    for line in parsed:
        item = resolve_item(db, index, line.name)
        if item is None:
            result.errors.append(ResolutionError(line.name, ResolutionErrorReason.NOT_FOUND))
            continue

        available = item.quantity_available - claimed.get(item.id, 0)
        if available < line.quantity:
            result.errors.append(
                ResolutionError(item.name, ResolutionErrorReason.INSUFFICIENT_STOCK, max(available, 0))
            )
            continue

        claimed[item.id] = claimed.get(item.id, 0) + line.quantity
        result.lines.append(
            ResolvedLine(
                item_id=item.id,
                name=item.name,
                unit_price=to_money(item.unit_price),
                quantity=line.quantity,
            )
        )
    return result
