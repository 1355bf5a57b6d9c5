from .item import InventoryItem, Unit, ValuationClass
from .stock_movement import StockMovement

__all__ = ["Unit", "ValuationClass", "InventoryItem", "StockMovement"]
