from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .errors import ValidationError

ZERO = Decimal("0.00")


class WorkOrderStatus(str, Enum):
    """Work order status; the value is the token used by the API and the database."""

    OPEN = "aberta"
    IN_PROGRESS = "emandamento"
    COMPLETED = "concluida"
    CANCELLED = "cancelada"

    @classmethod
    def parse(cls, value: "str | WorkOrderStatus") -> "WorkOrderStatus":
        if isinstance(value, cls):
            return value
        for status in cls:
            if status.value == value:
                return status
        raise ValidationError(
            f"Invalid status: {value!r}",
            details={"status": value, "allowed": [s.value for s in cls]},
        )

    @property
    def is_terminal(self) -> bool:
        return self in (WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED)


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Vehicle:
    id: int
    customer_id: int
    plate: str
    brand: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None
    model_year: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Employee:
    id: int
    name: str
    phone: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class InventoryItem:
    id: int
    name: str
    code: Optional[str]
    quantity: int
    sale_price: Decimal
    cost_price: Decimal = ZERO
    min_stock: int = 5
    category: Optional[str] = None
    description: Optional[str] = None
    supplier: Optional[str] = None
    status: str = "disponível"
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def needs_restock(self) -> bool:
        return self.quantity < self.min_stock

    @property
    def unit_profit(self) -> Decimal:
        return self.sale_price - self.cost_price

    @property
    def stock_value(self) -> Decimal:
        return self.sale_price * self.quantity


@dataclass
class OrderItem:
    order_id: int
    inventory_item_id: int
    quantity: int
    unit_price: Decimal
    total: Decimal = ZERO
    id: Optional[int] = None
    inventory_item: Optional[InventoryItem] = None
    created_at: Optional[datetime] = None


@dataclass
class WorkOrder:
    vehicle_id: int
    customer_id: int
    description: str
    employee_id: Optional[int] = None
    id: Optional[int] = None
    order_number: Optional[str] = None
    entry_date: Optional[datetime] = None
    expected_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    status: WorkOrderStatus = WorkOrderStatus.OPEN
    diagnosis: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    services_performed: Optional[str] = None
    parts_value: Decimal = ZERO
    service_value: Decimal = ZERO
    discount_value: Decimal = ZERO
    total_value: Decimal = ZERO
    items: list[OrderItem] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
