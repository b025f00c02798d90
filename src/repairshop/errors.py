from __future__ import annotations

from typing import Any


class RepairShopError(Exception):
    """Base for every failure the service layer reports to its callers."""

    http_status = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFound(RepairShopError):
    http_status = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class ValidationError(RepairShopError):
    http_status = 400
    error_code = "VALIDATION_ERROR"


class InvalidRelationship(RepairShopError):
    http_status = 400
    error_code = "INVALID_RELATIONSHIP"

    def __init__(self, *, vehicle_id: int, customer_id: int, owner_id: int) -> None:
        super().__init__(
            f"Vehicle {vehicle_id} belongs to customer {owner_id}, not to customer {customer_id}.",
            details={"vehicle_id": vehicle_id, "customer_id": customer_id, "owner_id": owner_id},
        )


class InvalidTransition(RepairShopError):
    http_status = 400
    error_code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid status transition: from {current} to {requested}",
            details={"current": current, "requested": requested},
        )


class OrderLocked(RepairShopError):
    http_status = 400
    error_code = "ORDER_LOCKED"

    def __init__(self, order_id: int, status: str, action: str = "modify") -> None:
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Cannot {action} work order {order_id} with status {status}.",
            details={"order_id": order_id, "status": status},
        )


class InsufficientStock(RepairShopError):
    http_status = 400
    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: int, requested: int, available: int) -> None:
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock for inventory item {item_id}: requested {requested}, available {available}.",
            details={"item_id": item_id, "requested": requested, "available": available},
        )


class PersistenceError(RepairShopError):
    http_status = 500
    error_code = "PERSISTENCE_ERROR"


class ConcurrentModification(RepairShopError):
    """The aggregate changed between the unlocked read and the row lock; retry the request."""

    http_status = 409
    error_code = "CONCURRENT_MODIFICATION"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity} {entity_id} was modified concurrently, please retry.",
            details={"entity": entity, "id": entity_id},
        )
