from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint
from medorder.db.base import Base


class CatalogItem(Base):
    """
    A stocked medicine.

    quantity_available is decremented only by the fulfillment transaction and
    raised by admin restocks. The CHECK constraint backs the conditional
    decrement so the column can never go negative.
    """
    __tablename__ = "catalog_items"
    __table_args__ = (
        CheckConstraint("quantity_available >= 0", name="ck_catalog_items_quantity_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_catalog_items_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    quantity_available = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)  # ₹ per unit

    def __repr__(self):
        return f"<CatalogItem {self.name!r} qty={self.quantity_available}>"
