from medorder.models.account import Account
from medorder.models.catalog import CatalogItem
from medorder.models.order import Order, OrderLine
from medorder.models.feedback import Feedback

__all__ = ["Account", "CatalogItem", "Order", "OrderLine", "Feedback"]
