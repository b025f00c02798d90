from __future__ import annotations

import logging
from typing import Any

from ..domain import InventoryItem
from ..errors import InsufficientStock, NotFound, ValidationError
from ..repositories.contracts import InventoryRepo

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Only place that moves InventoryItem.quantity on behalf of work orders.

    Every call locks the inventory row for the rest of the caller's transaction.
    """

    def __init__(self, inventory_repo: InventoryRepo) -> None:
        self.inventory_repo = inventory_repo

    def lock(self, conn: Any, item_id: int) -> InventoryItem:
        item = self.inventory_repo.find_by_id(conn, item_id, for_update=True)
        if item is None:
            raise NotFound("inventory item", item_id)
        return item

    def reserve(self, conn: Any, item_id: int, qty: int) -> int:
        if qty <= 0:
            raise ValidationError("Reserved quantity must be > 0.", details={"quantity": qty})

        item = self.lock(conn, item_id)
        if item.quantity < qty:
            raise InsufficientStock(item_id, requested=qty, available=item.quantity)

        new_qty = self.inventory_repo.adjust_quantity(conn, item_id=item_id, delta=-qty)
        if new_qty is None:
            raise InsufficientStock(item_id, requested=qty, available=item.quantity)

        logger.debug("Reserved %s of inventory item %s, %s left", qty, item_id, new_qty)
        if new_qty < item.min_stock:
            logger.info("Inventory item %s is below minimum stock (%s < %s)", item_id, new_qty, item.min_stock)
        return new_qty

    def release(self, conn: Any, item_id: int, qty: int) -> int:
        if qty <= 0:
            raise ValidationError("Released quantity must be > 0.", details={"quantity": qty})

        self.lock(conn, item_id)
        new_qty = self.inventory_repo.adjust_quantity(conn, item_id=item_id, delta=qty)
        if new_qty is None:
            raise NotFound("inventory item", item_id)

        logger.debug("Released %s of inventory item %s, now %s", qty, item_id, new_qty)
        return new_qty
