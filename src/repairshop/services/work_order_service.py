from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from ..domain import ZERO, OrderItem, WorkOrder, WorkOrderStatus
from ..errors import ConcurrentModification, InvalidRelationship, NotFound, OrderLocked, ValidationError
from ..repositories.contracts import (
    CustomerRepo,
    EmployeeRepo,
    InventoryRepo,
    OrderItemRepo,
    VehicleRepo,
    WorkOrderRepo,
)
from .inventory_ledger import InventoryLedger
from .order_accounting import OrderItemAccounting, recompute_total, to_money
from .status_machine import check_transition

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class CreateWorkOrderInput:
    vehicle_id: int
    customer_id: int
    description: str
    employee_id: int | None = None
    entry_date: datetime | None = None
    expected_date: datetime | None = None
    diagnosis: str | None = None
    payment_method: str | None = None
    notes: str | None = None
    services_performed: str | None = None
    service_value: Any = None
    discount_value: Any = None


@dataclass
class UpdateWorkOrderInput:
    description: str
    expected_date: datetime | None = None
    diagnosis: str | None = None
    service_value: Any = None
    discount_value: Any = None
    payment_method: str | None = None
    notes: str | None = None
    services_performed: str | None = None
    status: str | WorkOrderStatus | None = None


def format_order_number(prefix: str, when: datetime, sequence: int) -> str:
    return f"{prefix}{when:%Y%m%d}-{sequence:04d}"


def _non_negative(value: Any, field: str) -> Decimal:
    amount = to_money(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative.", details={field: str(amount)})
    return amount


class WorkOrderService:
    """Entry point for everything that changes a work order.

    Every method expects to run inside one transaction (``Db.transaction()``);
    locks are taken inventory rows first, then the work order row.
    """

    def __init__(
        self,
        *,
        order_repo: WorkOrderRepo,
        order_item_repo: OrderItemRepo,
        inventory_repo: InventoryRepo,
        vehicle_repo: VehicleRepo,
        customer_repo: CustomerRepo,
        employee_repo: EmployeeRepo,
        order_number_prefix: str = "OS",
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.order_repo = order_repo
        self.order_item_repo = order_item_repo
        self.inventory_repo = inventory_repo
        self.vehicle_repo = vehicle_repo
        self.customer_repo = customer_repo
        self.employee_repo = employee_repo
        self.order_number_prefix = order_number_prefix
        self.clock = clock
        self.ledger = InventoryLedger(inventory_repo)
        self.accounting = OrderItemAccounting(
            order_repo=order_repo,
            order_item_repo=order_item_repo,
            ledger=self.ledger,
        )

    # -- queries ---------------------------------------------------------

    def get(self, conn: Any, order_id: int) -> WorkOrder:
        order = self.order_repo.find_by_id(conn, order_id)
        if order is None:
            raise NotFound("work order", order_id)
        order.items = self.order_item_repo.find_items_by_order(conn, order_id)
        return order

    def list_all(self, conn: Any, limit: int = 100) -> list[WorkOrder]:
        return self.order_repo.find_all(conn, limit=limit)

    def find_by_customer(self, conn: Any, customer_id: int) -> list[WorkOrder]:
        if self.customer_repo.find_by_id(conn, customer_id) is None:
            raise NotFound("customer", customer_id)
        return self.order_repo.find_by_customer(conn, customer_id)

    def find_by_vehicle(self, conn: Any, vehicle_id: int) -> list[WorkOrder]:
        if self.vehicle_repo.find_by_id(conn, vehicle_id) is None:
            raise NotFound("vehicle", vehicle_id)
        return self.order_repo.find_by_vehicle(conn, vehicle_id)

    def find_by_status(self, conn: Any, status: str | WorkOrderStatus) -> list[WorkOrder]:
        return self.order_repo.find_by_status(conn, WorkOrderStatus.parse(status))

    def find_by_date_range(self, conn: Any, start: datetime, end: datetime) -> list[WorkOrder]:
        if start > end:
            raise ValidationError(
                "Start date must not be after end date.",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        return self.order_repo.find_by_date_range(conn, start, end)

    def find_by_order_number(self, conn: Any, order_number: str) -> WorkOrder:
        if not order_number or not order_number.strip():
            raise ValidationError("Order number is required.")
        order = self.order_repo.find_by_order_number(conn, order_number.strip())
        if order is None:
            raise NotFound("work order", order_number)
        order.items = self.order_item_repo.find_items_by_order(conn, order.id)
        return order

    # -- lifecycle -------------------------------------------------------

    def create(self, conn: Any, data: CreateWorkOrderInput) -> WorkOrder:
        if not data.vehicle_id:
            raise ValidationError("Vehicle is required.")
        if not data.customer_id:
            raise ValidationError("Customer is required.")
        if not (data.description and data.description.strip()):
            raise ValidationError("Service description is required.")

        vehicle = self.vehicle_repo.find_by_id(conn, data.vehicle_id)
        if vehicle is None:
            raise NotFound("vehicle", data.vehicle_id)
        if self.customer_repo.find_by_id(conn, data.customer_id) is None:
            raise NotFound("customer", data.customer_id)
        if data.employee_id and self.employee_repo.find_by_id(conn, data.employee_id) is None:
            raise NotFound("employee", data.employee_id)
        if vehicle.customer_id != data.customer_id:
            raise InvalidRelationship(
                vehicle_id=data.vehicle_id,
                customer_id=data.customer_id,
                owner_id=vehicle.customer_id,
            )

        now = self.clock()
        order = WorkOrder(
            vehicle_id=data.vehicle_id,
            customer_id=data.customer_id,
            employee_id=data.employee_id or None,
            description=data.description.strip(),
            entry_date=data.entry_date or now,
            expected_date=data.expected_date,
            status=WorkOrderStatus.OPEN,
            diagnosis=data.diagnosis,
            payment_method=data.payment_method,
            notes=data.notes,
            services_performed=data.services_performed,
            parts_value=ZERO,
            service_value=_non_negative(data.service_value, "service_value"),
            discount_value=_non_negative(data.discount_value, "discount_value"),
        )
        recompute_total(order)

        sequence = self.order_repo.next_order_sequence(conn)
        order.order_number = format_order_number(self.order_number_prefix, now, sequence)
        order.id = self.order_repo.create(conn, order)

        logger.info("Created work order %s (%s) for vehicle %s", order.id, order.order_number, order.vehicle_id)
        return order

    def update(self, conn: Any, order_id: int, data: UpdateWorkOrderInput) -> WorkOrder:
        current = self.order_repo.find_by_id(conn, order_id)
        if current is None:
            raise NotFound("work order", order_id)
        if current.status.is_terminal:
            raise OrderLocked(order_id, current.status.value, action="update")
        if not (data.description and data.description.strip()):
            raise ValidationError("Service description is required.")

        new_status = WorkOrderStatus.parse(data.status) if data.status else None
        locked: set[int] = set()
        if new_status == WorkOrderStatus.CANCELLED:
            locked = self._lock_order_stock(conn, order_id)

        order = self.order_repo.find_by_id(conn, order_id, for_update=True)
        if order is None:
            raise NotFound("work order", order_id)
        if order.status.is_terminal:
            raise OrderLocked(order_id, order.status.value, action="update")
        if new_status == WorkOrderStatus.CANCELLED:
            self._check_stock_locked(conn, order_id, locked)

        order.expected_date = data.expected_date
        order.description = data.description.strip()
        order.diagnosis = data.diagnosis
        order.service_value = _non_negative(data.service_value, "service_value")
        order.discount_value = _non_negative(data.discount_value, "discount_value")
        order.payment_method = data.payment_method
        order.notes = data.notes
        order.services_performed = data.services_performed

        if new_status is not None:
            self._apply_status(conn, order, new_status)

        recompute_total(order)
        self.order_repo.update(conn, order)
        logger.info("Updated work order %s", order_id)
        return order

    def change_status(self, conn: Any, order_id: int, new_status: str | WorkOrderStatus) -> WorkOrder:
        status = WorkOrderStatus.parse(new_status)
        current = self.order_repo.find_by_id(conn, order_id)
        if current is None:
            raise NotFound("work order", order_id)
        locked: set[int] = set()
        if status == WorkOrderStatus.CANCELLED and current.status != WorkOrderStatus.CANCELLED:
            locked = self._lock_order_stock(conn, order_id)

        order = self.order_repo.find_by_id(conn, order_id, for_update=True)
        if order is None:
            raise NotFound("work order", order_id)
        if status == WorkOrderStatus.CANCELLED and order.status != WorkOrderStatus.CANCELLED:
            self._check_stock_locked(conn, order_id, locked)
        if self._apply_status(conn, order, status):
            self.order_repo.update(conn, order)
        return order

    def complete(self, conn: Any, order_id: int) -> WorkOrder:
        return self.change_status(conn, order_id, WorkOrderStatus.COMPLETED)

    def cancel(self, conn: Any, order_id: int) -> WorkOrder:
        order = self.order_repo.find_by_id(conn, order_id)
        if order is None:
            raise NotFound("work order", order_id)
        if order.status == WorkOrderStatus.COMPLETED:
            raise OrderLocked(order_id, order.status.value, action="cancel")
        return self.change_status(conn, order_id, WorkOrderStatus.CANCELLED)

    def delete(self, conn: Any, order_id: int) -> None:
        order = self.order_repo.find_by_id(conn, order_id)
        if order is None:
            raise NotFound("work order", order_id)
        if order.status in (WorkOrderStatus.COMPLETED, WorkOrderStatus.IN_PROGRESS):
            raise OrderLocked(order_id, order.status.value, action="delete")

        locked: set[int] = set()
        if order.status == WorkOrderStatus.OPEN:
            locked = self._lock_order_stock(conn, order_id)
        order = self.order_repo.find_by_id(conn, order_id, for_update=True)
        if order is None:
            raise NotFound("work order", order_id)
        if order.status in (WorkOrderStatus.COMPLETED, WorkOrderStatus.IN_PROGRESS):
            raise OrderLocked(order_id, order.status.value, action="delete")

        # items of an open order still hold stock; a cancelled order already gave it back
        if order.status == WorkOrderStatus.OPEN:
            self._check_stock_locked(conn, order_id, locked)
            self._release_items(conn, order_id)
        self.order_repo.delete(conn, order_id)
        logger.info("Deleted work order %s (%s)", order_id, order.order_number)

    # -- items -----------------------------------------------------------

    def add_item(
        self, conn: Any, order_id: int, inventory_item_id: int, quantity: int, unit_price: Any = None
    ) -> OrderItem:
        return self.accounting.add_item(
            conn,
            order_id=order_id,
            inventory_item_id=inventory_item_id,
            quantity=quantity,
            unit_price=unit_price,
        )

    def update_item(
        self, conn: Any, order_id: int, item_id: int, quantity: int, unit_price: Any = None
    ) -> OrderItem:
        return self.accounting.update_item(
            conn,
            order_id=order_id,
            item_id=item_id,
            quantity=quantity,
            unit_price=unit_price,
        )

    def remove_item(self, conn: Any, order_id: int, item_id: int) -> None:
        self.accounting.remove_item(conn, order_id=order_id, item_id=item_id)

    def list_items(self, conn: Any, order_id: int) -> list[OrderItem]:
        return self.accounting.list_items(conn, order_id)

    # -- internals -------------------------------------------------------

    def _apply_status(self, conn: Any, order: WorkOrder, new_status: WorkOrderStatus) -> bool:
        if not check_transition(order.status, new_status):
            return False

        if new_status == WorkOrderStatus.CANCELLED:
            self._release_items(conn, order.id)
        if new_status == WorkOrderStatus.COMPLETED and order.completion_date is None:
            order.completion_date = self.clock()

        logger.info("Work order %s: %s -> %s", order.id, order.status.value, new_status.value)
        order.status = new_status
        return True

    def _stock_ids(self, conn: Any, order_id: int) -> set[int]:
        return {i.inventory_item_id for i in self.order_item_repo.find_items_by_order(conn, order_id)}

    def _lock_order_stock(self, conn: Any, order_id: int) -> set[int]:
        item_ids = self._stock_ids(conn, order_id)
        for item_id in sorted(item_ids):
            self.ledger.lock(conn, item_id)
        return item_ids

    def _check_stock_locked(self, conn: Any, order_id: int, locked: set[int]) -> None:
        """Call with the order row held: its item set can no longer change.

        An item committed on another inventory row after ``_lock_order_stock``
        read the list would have to be locked after the order row, against the
        inventory-first ordering, so the operation fails instead.
        """
        missing = self._stock_ids(conn, order_id) - locked
        if missing:
            logger.warning("Work order %s gained items on rows %s while locking stock", order_id, sorted(missing))
            raise ConcurrentModification("work order", order_id)

    def _release_items(self, conn: Any, order_id: int) -> None:
        for item in self.order_item_repo.find_items_by_order(conn, order_id):
            self.ledger.release(conn, item.inventory_item_id, item.quantity)
