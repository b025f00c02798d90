"""In-memory stand-ins for the PostgreSQL repositories.

``MemoryDb`` mimics ``repairshop.db.Db``: ``transaction()`` snapshots the
store and restores it when the block raises, and every scope is serialized by
one lock, the way row locks serialize writers in the real database.
"""

from __future__ import annotations

import copy
import dataclasses
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from repairshop.domain import Customer, Employee, InventoryItem, OrderItem, Vehicle, WorkOrder, WorkOrderStatus
from repairshop.services.inventory_service import InventoryService
from repairshop.services.work_order_service import WorkOrderService

FIXED_NOW = datetime(2024, 6, 10, 9, 30).astimezone()


class MemoryStore:
    def __init__(self) -> None:
        self.customers: dict[int, Customer] = {}
        self.vehicles: dict[int, Vehicle] = {}
        self.employees: dict[int, Employee] = {}
        self.inventory: dict[int, InventoryItem] = {}
        self.orders: dict[int, WorkOrder] = {}
        self.items: dict[int, OrderItem] = {}
        self.next_id = 1
        self.order_sequence = 0
        self.lock_log: list[tuple[str, int]] = []
        self.fail_on_order_update = False

    def new_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def snapshot(self) -> dict:
        return copy.deepcopy({k: v for k, v in self.__dict__.items() if k != "lock_log"})

    def restore(self, state: dict) -> None:
        self.__dict__.update(state)


class MemoryDb:
    def __init__(self, store: MemoryStore | None = None) -> None:
        self.store = store or MemoryStore()
        self._lock = threading.RLock()
        self.rollbacks = 0

    @contextmanager
    def session(self) -> Iterator[MemoryStore]:
        with self._lock:
            yield self.store

    @contextmanager
    def transaction(self) -> Iterator[MemoryStore]:
        with self._lock:
            state = self.store.snapshot()
            try:
                yield self.store
            except Exception:
                self.store.restore(state)
                self.rollbacks += 1
                raise


class MemoryCustomerRepo:
    def find_by_id(self, conn: MemoryStore, customer_id: int) -> Customer | None:
        return conn.customers.get(customer_id)

    def find_all(self, conn: MemoryStore, limit: int = 100) -> list[Customer]:
        return list(conn.customers.values())[:limit]

    def create(self, conn: MemoryStore, customer: Customer) -> int:
        new_id = conn.new_id()
        conn.customers[new_id] = dataclasses.replace(customer, id=new_id)
        return new_id

    def update(self, conn: MemoryStore, customer: Customer) -> None:
        conn.customers[customer.id] = customer

    def delete(self, conn: MemoryStore, customer_id: int) -> None:
        conn.customers.pop(customer_id, None)


class MemoryVehicleRepo:
    def find_by_id(self, conn: MemoryStore, vehicle_id: int) -> Vehicle | None:
        return conn.vehicles.get(vehicle_id)

    def find_all(self, conn: MemoryStore, limit: int = 100) -> list[Vehicle]:
        return list(conn.vehicles.values())[:limit]

    def create(self, conn: MemoryStore, vehicle: Vehicle) -> int:
        new_id = conn.new_id()
        conn.vehicles[new_id] = dataclasses.replace(vehicle, id=new_id)
        return new_id

    def update(self, conn: MemoryStore, vehicle: Vehicle) -> None:
        conn.vehicles[vehicle.id] = vehicle

    def delete(self, conn: MemoryStore, vehicle_id: int) -> None:
        conn.vehicles.pop(vehicle_id, None)


class MemoryEmployeeRepo:
    def find_by_id(self, conn: MemoryStore, employee_id: int) -> Employee | None:
        return conn.employees.get(employee_id)

    def find_all(self, conn: MemoryStore, limit: int = 100) -> list[Employee]:
        return list(conn.employees.values())[:limit]

    def create(self, conn: MemoryStore, employee: Employee) -> int:
        new_id = conn.new_id()
        conn.employees[new_id] = dataclasses.replace(employee, id=new_id)
        return new_id

    def update(self, conn: MemoryStore, employee: Employee) -> None:
        conn.employees[employee.id] = employee

    def delete(self, conn: MemoryStore, employee_id: int) -> None:
        conn.employees.pop(employee_id, None)


class MemoryInventoryRepo:
    def find_by_id(self, conn: MemoryStore, item_id: int, *, for_update: bool = False) -> InventoryItem | None:
        if for_update:
            conn.lock_log.append(("inventory", item_id))
        return conn.inventory.get(item_id)

    def find_all(self, conn: MemoryStore, limit: int = 100) -> list[InventoryItem]:
        return sorted(conn.inventory.values(), key=lambda i: i.name)[:limit]

    def find_by_category(self, conn: MemoryStore, category: str) -> list[InventoryItem]:
        return [i for i in conn.inventory.values() if i.category == category]

    def find_low_stock(self, conn: MemoryStore) -> list[InventoryItem]:
        return [i for i in conn.inventory.values() if i.needs_restock]

    def create(self, conn: MemoryStore, item: InventoryItem) -> int:
        new_id = conn.new_id()
        conn.inventory[new_id] = dataclasses.replace(item, id=new_id)
        return new_id

    def update(self, conn: MemoryStore, item: InventoryItem) -> None:
        current = conn.inventory[item.id]
        conn.inventory[item.id] = dataclasses.replace(item, quantity=current.quantity)

    def delete(self, conn: MemoryStore, item_id: int) -> None:
        conn.inventory.pop(item_id, None)

    def in_use(self, conn: MemoryStore, item_id: int) -> bool:
        return any(i.inventory_item_id == item_id for i in conn.items.values())

    def adjust_quantity(self, conn: MemoryStore, *, item_id: int, delta: int) -> int | None:
        current = conn.inventory.get(item_id)
        if current is None or current.quantity + delta < 0:
            return None
        conn.inventory[item_id] = dataclasses.replace(current, quantity=current.quantity + delta)
        return current.quantity + delta


class MemoryOrderRepo:
    def find_by_id(self, conn: MemoryStore, order_id: int, *, for_update: bool = False) -> WorkOrder | None:
        if for_update:
            conn.lock_log.append(("order", order_id))
        order = conn.orders.get(order_id)
        return copy.deepcopy(order) if order else None

    def _select(self, conn: MemoryStore, predicate) -> list[WorkOrder]:
        return [copy.deepcopy(o) for o in sorted(conn.orders.values(), key=lambda o: -o.id) if predicate(o)]

    def find_all(self, conn: MemoryStore, limit: int = 100) -> list[WorkOrder]:
        return self._select(conn, lambda o: True)[:limit]

    def find_by_customer(self, conn: MemoryStore, customer_id: int) -> list[WorkOrder]:
        return self._select(conn, lambda o: o.customer_id == customer_id)

    def find_by_vehicle(self, conn: MemoryStore, vehicle_id: int) -> list[WorkOrder]:
        return self._select(conn, lambda o: o.vehicle_id == vehicle_id)

    def find_by_status(self, conn: MemoryStore, status: WorkOrderStatus) -> list[WorkOrder]:
        return self._select(conn, lambda o: o.status == status)

    def find_by_date_range(self, conn: MemoryStore, start: datetime, end: datetime) -> list[WorkOrder]:
        return self._select(conn, lambda o: start <= o.entry_date <= end)

    def find_by_order_number(self, conn: MemoryStore, order_number: str) -> WorkOrder | None:
        found = self._select(conn, lambda o: o.order_number == order_number)
        return found[0] if found else None

    def next_order_sequence(self, conn: MemoryStore) -> int:
        conn.order_sequence += 1
        return conn.order_sequence

    def create(self, conn: MemoryStore, order: WorkOrder) -> int:
        new_id = conn.new_id()
        stored = copy.deepcopy(order)
        stored.id = new_id
        stored.items = []
        conn.orders[new_id] = stored
        return new_id

    def update(self, conn: MemoryStore, order: WorkOrder) -> None:
        if conn.fail_on_order_update:
            raise RuntimeError("simulated failure while saving work order")
        stored = copy.deepcopy(order)
        stored.items = []
        conn.orders[order.id] = stored

    def delete(self, conn: MemoryStore, order_id: int) -> None:
        conn.orders.pop(order_id, None)
        for item_id in [i.id for i in conn.items.values() if i.order_id == order_id]:
            del conn.items[item_id]


class MemoryOrderItemRepo:
    def find_items_by_order(self, conn: MemoryStore, order_id: int) -> list[OrderItem]:
        rows = []
        for item in sorted(conn.items.values(), key=lambda i: i.id):
            if item.order_id == order_id:
                row = copy.deepcopy(item)
                row.inventory_item = conn.inventory.get(item.inventory_item_id)
                rows.append(row)
        return rows

    def find_item(self, conn: MemoryStore, *, order_id: int, item_id: int) -> OrderItem | None:
        item = conn.items.get(item_id)
        if item is None or item.order_id != order_id:
            return None
        return copy.deepcopy(item)

    def add_item(self, conn: MemoryStore, item: OrderItem) -> int:
        new_id = conn.new_id()
        stored = copy.deepcopy(item)
        stored.id = new_id
        conn.items[new_id] = stored
        return new_id

    def update_item(self, conn: MemoryStore, item: OrderItem) -> None:
        stored = copy.deepcopy(item)
        stored.inventory_item = None
        conn.items[item.id] = stored

    def remove_item(self, conn: MemoryStore, item_id: int) -> None:
        conn.items.pop(item_id, None)


@dataclasses.dataclass
class Shop:
    db: MemoryDb
    service: WorkOrderService
    inventory_repo: MemoryInventoryRepo
    inventory_service: InventoryService

    @property
    def store(self) -> MemoryStore:
        return self.db.store

    def add_customer(self, name: str = "Ana Souza") -> int:
        return MemoryCustomerRepo().create(self.store, Customer(id=0, name=name))

    def add_vehicle(self, customer_id: int, plate: str = "ABC1D23") -> int:
        return MemoryVehicleRepo().create(self.store, Vehicle(id=0, customer_id=customer_id, plate=plate))

    def add_employee(self, name: str = "Carlos") -> int:
        return MemoryEmployeeRepo().create(self.store, Employee(id=0, name=name, role="mecânico"))

    def add_part(
        self,
        name: str = "Pastilha de freio",
        quantity: int = 10,
        sale_price: str = "10.00",
        min_stock: int = 2,
        category: str = "Freio",
    ) -> int:
        item = InventoryItem(
            id=0,
            name=name,
            code=f"P-{name[:3].upper()}-{self.store.next_id}",
            quantity=quantity,
            sale_price=Decimal(sale_price),
            cost_price=Decimal("5.00"),
            min_stock=min_stock,
            category=category,
        )
        return self.inventory_repo.create(self.store, item)

    def stock(self, item_id: int) -> int:
        return self.store.inventory[item_id].quantity

    def order(self, order_id: int) -> WorkOrder:
        return self.store.orders[order_id]


def build_shop() -> Shop:
    db = MemoryDb()
    inventory_repo = MemoryInventoryRepo()
    service = WorkOrderService(
        order_repo=MemoryOrderRepo(),
        order_item_repo=MemoryOrderItemRepo(),
        inventory_repo=inventory_repo,
        vehicle_repo=MemoryVehicleRepo(),
        customer_repo=MemoryCustomerRepo(),
        employee_repo=MemoryEmployeeRepo(),
        clock=lambda: FIXED_NOW,
    )
    return Shop(
        db=db,
        service=service,
        inventory_repo=inventory_repo,
        inventory_service=InventoryService(inventory_repo),
    )
