from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ..domain import ZERO, OrderItem, WorkOrder
from ..errors import InsufficientStock, NotFound, OrderLocked, ValidationError
from ..repositories.contracts import OrderItemRepo, WorkOrderRepo
from .inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Any, field: str = "value") -> Decimal:
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid monetary amount for {field}: {value!r}", details={field: value}) from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary amount for {field}: {value!r}", details={field: value})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return (unit_price * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


def recompute_total(order: WorkOrder) -> Decimal:
    """Set total_value from its parts; a negative result is rejected, never clamped."""
    total = order.parts_value + order.service_value - order.discount_value
    if total < 0:
        raise ValidationError(
            "Discount cannot exceed parts value plus service value.",
            details={
                "parts_value": str(order.parts_value),
                "service_value": str(order.service_value),
                "discount_value": str(order.discount_value),
            },
        )
    order.total_value = total
    return total


def _check_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Item quantity must be an integer >= 1.", details={"quantity": quantity})
    return quantity


class OrderItemAccounting:
    """Line items of a work order and the parts value they add up to."""

    def __init__(
        self,
        *,
        order_repo: WorkOrderRepo,
        order_item_repo: OrderItemRepo,
        ledger: InventoryLedger,
    ) -> None:
        self.order_repo = order_repo
        self.order_item_repo = order_item_repo
        self.ledger = ledger

    def load_mutable_order(self, conn: Any, order_id: int, *, lock: bool = False) -> WorkOrder:
        order = self.order_repo.find_by_id(conn, order_id, for_update=lock)
        if order is None:
            raise NotFound("work order", order_id)
        if order.status.is_terminal:
            raise OrderLocked(order_id, order.status.value)
        return order

    def add_item(
        self,
        conn: Any,
        *,
        order_id: int,
        inventory_item_id: int,
        quantity: int,
        unit_price: Any = None,
    ) -> OrderItem:
        _check_quantity(quantity)
        self.load_mutable_order(conn, order_id)

        # lock order: inventory row first, then the work order row
        stock_item = self.ledger.lock(conn, inventory_item_id)
        order = self.load_mutable_order(conn, order_id, lock=True)

        price = to_money(unit_price, "unit_price")
        if price <= 0:
            price = stock_item.sale_price
        if stock_item.quantity < quantity:
            raise InsufficientStock(inventory_item_id, requested=quantity, available=stock_item.quantity)

        item = OrderItem(
            order_id=order_id,
            inventory_item_id=inventory_item_id,
            quantity=quantity,
            unit_price=price,
            total=line_total(quantity, price),
        )
        item.id = self.order_item_repo.add_item(conn, item)
        self.ledger.reserve(conn, inventory_item_id, quantity)

        order.parts_value = order.parts_value + item.total
        recompute_total(order)
        self.order_repo.update(conn, order)

        logger.info(
            "Added item %s (inventory %s x%s) to work order %s, parts value %s",
            item.id,
            inventory_item_id,
            quantity,
            order_id,
            order.parts_value,
        )
        return item

    def update_item(
        self,
        conn: Any,
        *,
        order_id: int,
        item_id: int,
        quantity: int,
        unit_price: Any = None,
    ) -> OrderItem:
        _check_quantity(quantity)
        self.load_mutable_order(conn, order_id)
        current = self.order_item_repo.find_item(conn, order_id=order_id, item_id=item_id)
        if current is None:
            raise NotFound("order item", item_id)

        self.ledger.lock(conn, current.inventory_item_id)
        order = self.load_mutable_order(conn, order_id, lock=True)
        current = self.order_item_repo.find_item(conn, order_id=order_id, item_id=item_id)
        if current is None:
            raise NotFound("order item", item_id)

        delta = quantity - current.quantity
        if delta > 0:
            self.ledger.reserve(conn, current.inventory_item_id, delta)
        elif delta < 0:
            self.ledger.release(conn, current.inventory_item_id, -delta)

        price = to_money(unit_price, "unit_price")
        if price <= 0:
            price = current.unit_price

        old_total = current.total
        current.quantity = quantity
        current.unit_price = price
        current.total = line_total(quantity, price)
        self.order_item_repo.update_item(conn, current)

        order.parts_value = order.parts_value - old_total + current.total
        recompute_total(order)
        self.order_repo.update(conn, order)

        logger.info("Updated item %s on work order %s (quantity delta %+d)", item_id, order_id, delta)
        return current

    def remove_item(self, conn: Any, *, order_id: int, item_id: int) -> None:
        self.load_mutable_order(conn, order_id)
        current = self.order_item_repo.find_item(conn, order_id=order_id, item_id=item_id)
        if current is None:
            raise NotFound("order item", item_id)

        self.ledger.lock(conn, current.inventory_item_id)
        order = self.load_mutable_order(conn, order_id, lock=True)
        current = self.order_item_repo.find_item(conn, order_id=order_id, item_id=item_id)
        if current is None:
            raise NotFound("order item", item_id)

        self.ledger.release(conn, current.inventory_item_id, current.quantity)

        order.parts_value = max(order.parts_value - current.total, ZERO)
        self.order_item_repo.remove_item(conn, item_id)
        recompute_total(order)
        self.order_repo.update(conn, order)

        logger.info("Removed item %s from work order %s", item_id, order_id)

    def list_items(self, conn: Any, order_id: int) -> list[OrderItem]:
        if self.order_repo.find_by_id(conn, order_id) is None:
            raise NotFound("work order", order_id)
        return self.order_item_repo.find_items_by_order(conn, order_id)
