from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..domain import InventoryItem
from ..errors import NotFound, ValidationError
from ..repositories.contracts import InventoryRepo
from .inventory_ledger import InventoryLedger
from .order_accounting import to_money

logger = logging.getLogger(__name__)


@dataclass
class InventoryItemInput:
    name: str
    sale_price: Any
    cost_price: Any = None
    quantity: Optional[int] = None
    min_stock: int = 5
    code: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    supplier: Optional[str] = None
    status: str = "disponível"
    notes: Optional[str] = None


def _whole(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be an integer >= 0.", details={field: value})
    return value


class InventoryService:
    """Catalogue maintenance for inventory items.

    Descriptive fields change through create/update. The quantity is set once
    at creation; afterwards only ``restock`` and work-order items move it,
    both through the ledger's row lock.
    """

    def __init__(self, inventory_repo: InventoryRepo) -> None:
        self.inventory_repo = inventory_repo
        self.ledger = InventoryLedger(inventory_repo)

    def list_all(self, conn: Any, limit: int = 100) -> list[InventoryItem]:
        return self.inventory_repo.find_all(conn, limit=limit)

    def get(self, conn: Any, item_id: int) -> InventoryItem:
        item = self.inventory_repo.find_by_id(conn, item_id)
        if item is None:
            raise NotFound("inventory item", item_id)
        return item

    def find_by_category(self, conn: Any, category: str) -> list[InventoryItem]:
        if not (category and category.strip()):
            raise ValidationError("Category cannot be empty.")
        return self.inventory_repo.find_by_category(conn, category.strip())

    def find_low_stock(self, conn: Any) -> list[InventoryItem]:
        return self.inventory_repo.find_low_stock(conn)

    def create(self, conn: Any, data: InventoryItemInput) -> InventoryItem:
        item = self._build(data, item_id=0, quantity=_whole(data.quantity or 0, "quantity"))
        item = dataclasses.replace(item, id=self.inventory_repo.create(conn, item))
        logger.info("Created inventory item %s (%s) with %s in stock", item.id, item.name, item.quantity)
        return item

    def update(self, conn: Any, item_id: int, data: InventoryItemInput) -> InventoryItem:
        current = self.ledger.lock(conn, item_id)
        if data.quantity is not None and data.quantity != current.quantity:
            raise ValidationError(
                "Stock quantity cannot be edited directly; use restock or work-order items.",
                details={"quantity": data.quantity, "current": current.quantity},
            )
        item = self._build(data, item_id=item_id, quantity=current.quantity)
        self.inventory_repo.update(conn, item)
        logger.info("Updated inventory item %s", item_id)
        return dataclasses.replace(item, created_at=current.created_at)

    def restock(self, conn: Any, item_id: int, quantity: int) -> InventoryItem:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Restock quantity must be an integer >= 1.", details={"quantity": quantity})
        new_qty = self.ledger.release(conn, item_id, quantity)
        logger.info("Restocked inventory item %s with %s, now %s", item_id, quantity, new_qty)
        return self.get(conn, item_id)

    def delete(self, conn: Any, item_id: int) -> None:
        item = self.ledger.lock(conn, item_id)
        if self.inventory_repo.in_use(conn, item_id):
            raise ValidationError(
                f"Inventory item {item_id} is used by work order items and cannot be deleted.",
                details={"item_id": item_id},
            )
        self.inventory_repo.delete(conn, item_id)
        logger.info("Deleted inventory item %s (%s)", item_id, item.name)

    def _build(self, data: InventoryItemInput, *, item_id: int, quantity: int) -> InventoryItem:
        if not (data.name and data.name.strip()):
            raise ValidationError("Item name is required.")
        sale_price = to_money(data.sale_price, "sale_price")
        cost_price = to_money(data.cost_price, "cost_price")
        if sale_price < 0 or cost_price < 0:
            raise ValidationError("Prices cannot be negative.")
        if sale_price < cost_price:
            raise ValidationError(
                "Sale price cannot be lower than cost price.",
                details={"sale_price": str(sale_price), "cost_price": str(cost_price)},
            )
        return InventoryItem(
            id=item_id,
            name=data.name.strip(),
            code=data.code,
            quantity=quantity,
            sale_price=sale_price,
            cost_price=cost_price,
            min_stock=_whole(data.min_stock, "min_stock"),
            category=data.category,
            description=data.description,
            supplier=data.supplier,
            status=data.status or "disponível",
            notes=data.notes,
        )
