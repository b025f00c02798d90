"""Repository contracts consumed by the service layer.

The PostgreSQL repositories in this package satisfy them; tests substitute
in-memory implementations. ``conn`` is whatever the active transaction scope
yields and is passed through untouched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from ..domain import Customer, Employee, InventoryItem, OrderItem, Vehicle, WorkOrder, WorkOrderStatus


class CustomerRepo(Protocol):
    def find_by_id(self, conn: Any, customer_id: int) -> Customer | None: ...
    def find_all(self, conn: Any, limit: int = 100) -> list[Customer]: ...
    def create(self, conn: Any, customer: Customer) -> int: ...
    def update(self, conn: Any, customer: Customer) -> None: ...
    def delete(self, conn: Any, customer_id: int) -> None: ...


class VehicleRepo(Protocol):
    def find_by_id(self, conn: Any, vehicle_id: int) -> Vehicle | None: ...
    def find_all(self, conn: Any, limit: int = 100) -> list[Vehicle]: ...
    def create(self, conn: Any, vehicle: Vehicle) -> int: ...
    def update(self, conn: Any, vehicle: Vehicle) -> None: ...
    def delete(self, conn: Any, vehicle_id: int) -> None: ...


class EmployeeRepo(Protocol):
    def find_by_id(self, conn: Any, employee_id: int) -> Employee | None: ...
    def find_all(self, conn: Any, limit: int = 100) -> list[Employee]: ...
    def create(self, conn: Any, employee: Employee) -> int: ...
    def update(self, conn: Any, employee: Employee) -> None: ...
    def delete(self, conn: Any, employee_id: int) -> None: ...


class InventoryRepo(Protocol):
    def find_by_id(self, conn: Any, item_id: int, *, for_update: bool = False) -> InventoryItem | None: ...
    def find_all(self, conn: Any, limit: int = 100) -> list[InventoryItem]: ...
    def find_by_category(self, conn: Any, category: str) -> list[InventoryItem]: ...
    def find_low_stock(self, conn: Any) -> list[InventoryItem]: ...
    def create(self, conn: Any, item: InventoryItem) -> int: ...
    def update(self, conn: Any, item: InventoryItem) -> None: ...
    def delete(self, conn: Any, item_id: int) -> None: ...
    def in_use(self, conn: Any, item_id: int) -> bool: ...
    def adjust_quantity(self, conn: Any, *, item_id: int, delta: int) -> int | None: ...


class WorkOrderRepo(Protocol):
    def find_by_id(self, conn: Any, order_id: int, *, for_update: bool = False) -> WorkOrder | None: ...
    def find_all(self, conn: Any, limit: int = 100) -> list[WorkOrder]: ...
    def find_by_customer(self, conn: Any, customer_id: int) -> list[WorkOrder]: ...
    def find_by_vehicle(self, conn: Any, vehicle_id: int) -> list[WorkOrder]: ...
    def find_by_status(self, conn: Any, status: WorkOrderStatus) -> list[WorkOrder]: ...
    def find_by_date_range(self, conn: Any, start: datetime, end: datetime) -> list[WorkOrder]: ...
    def find_by_order_number(self, conn: Any, order_number: str) -> WorkOrder | None: ...
    def next_order_sequence(self, conn: Any) -> int: ...
    def create(self, conn: Any, order: WorkOrder) -> int: ...
    def update(self, conn: Any, order: WorkOrder) -> None: ...
    def delete(self, conn: Any, order_id: int) -> None: ...


class OrderItemRepo(Protocol):
    def find_items_by_order(self, conn: Any, order_id: int) -> list[OrderItem]: ...
    def find_item(self, conn: Any, *, order_id: int, item_id: int) -> OrderItem | None: ...
    def add_item(self, conn: Any, item: OrderItem) -> int: ...
    def update_item(self, conn: Any, item: OrderItem) -> None: ...
    def remove_item(self, conn: Any, item_id: int) -> None: ...
