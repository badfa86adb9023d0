import logging
import math
from typing import Any, List, Optional

from models import MAX_AMOUNT, ItemKind, LineItem

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "amount")

def coerce_amount(value: Any) -> float:
    """Turn whatever the amount input holds into a number in [0, MAX_AMOUNT], falling back to 0"""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount) or amount < 0 or amount > MAX_AMOUNT:
        return 0.0
    return amount

class LineItemStore:
    """Ordered charges and discounts for one invoice"""

    def __init__(self, items: Optional[List[LineItem]] = None):
        self._items: List[LineItem] = list(items or [])

    @property
    def items(self) -> List[LineItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[LineItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add(self, kind: ItemKind) -> List[LineItem]:
        item = LineItem(kind=ItemKind(kind))
        self._items.append(item)
        logger.debug(f"Added {item.kind.value} item {item.id}")
        return self.items

    def remove(self, item_id: str) -> List[LineItem]:
        self._items = [item for item in self._items if item.id != item_id]
        return self.items

    def update(self, item_id: str, field: str, value: Any) -> List[LineItem]:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Line item field '{field}' cannot be edited")

        item = self.get(item_id)
        if item is None:
            return self.items

        if field == "amount":
            item.amount = coerce_amount(value)
        else:
            item.title = "" if value is None else str(value)
        return self.items
