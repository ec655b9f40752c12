from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from medorder.db.base import Base

ORDER_STATUS_PENDING = "Pending"


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    delivery_status = Column(String(32), nullable=False, default=ORDER_STATUS_PENDING)
    delivery_time = Column(DateTime(timezone=True), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    placed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    account = relationship("Account", backref="orders")
    lines = relationship("OrderLine", back_populates="order", order_by="OrderLine.id")


class OrderLine(Base):
    """One ordered item. unit_price is a copy taken when the order was placed."""
    __tablename__ = "order_lines"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # No cascade: historical lines must outlive catalog edits
    catalog_item_id = Column(Integer, ForeignKey("catalog_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="lines")
    catalog_item = relationship("CatalogItem")
