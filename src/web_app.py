from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from repairshop.config import ConfigError, load_config
from repairshop.db import Db
from repairshop.errors import RepairShopError, ValidationError
from repairshop.logging_setup import configure_logging
from repairshop.repositories.customer_repo import CustomerRepository
from repairshop.repositories.employee_repo import EmployeeRepository
from repairshop.repositories.inventory_repo import InventoryRepository
from repairshop.repositories.order_item_repo import OrderItemRepository
from repairshop.repositories.order_repo import OrderRepository
from repairshop.repositories.vehicle_repo import VehicleRepository
from repairshop.services.inventory_service import InventoryItemInput, InventoryService
from repairshop.services.work_order_service import (
    CreateWorkOrderInput,
    UpdateWorkOrderInput,
    WorkOrderService,
)

logger = logging.getLogger(__name__)


def to_json(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, list):
        return [to_json(v) for v in value]
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def _int_field(data: dict, key: str, *, required: bool = True) -> int | None:
    value = data.get(key)
    if value is None or value == "":
        if required:
            raise ValidationError(f"Field '{key}' is required.", details={"field": key})
        return None
    # int() would silently truncate 2.9 to 2
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"Field '{key}' must be an integer.", details={"field": key, "value": value})


def _datetime_field(data: dict, key: str) -> datetime | None:
    value = data.get(key)
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"Field '{key}' must be an ISO-8601 date.", details={"field": key}) from e


def _query_date(key: str) -> date:
    value = request.args.get(key, "").strip()
    if not value:
        raise ValidationError(f"Query parameter '{key}' is required (YYYY-MM-DD).", details={"param": key})
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date for '{key}', use YYYY-MM-DD.", details={"param": key}) from e


def _inventory_input(data: dict) -> InventoryItemInput:
    min_stock = _int_field(data, "min_stock", required=False)
    return InventoryItemInput(
        name=str(data.get("name") or ""),
        sale_price=data.get("sale_price"),
        cost_price=data.get("cost_price"),
        quantity=_int_field(data, "quantity", required=False),
        min_stock=5 if min_stock is None else min_stock,
        code=data.get("code"),
        category=data.get("category"),
        description=data.get("description"),
        supplier=data.get("supplier"),
        status=data.get("status") or "disponível",
        notes=data.get("notes"),
    )


def create_app(
    db: Any,
    order_service: WorkOrderService,
    inventory_service: InventoryService,
) -> Flask:
    app = Flask(__name__)

    @app.errorhandler(RepairShopError)
    def handle_repair_shop_error(exc: RepairShopError):
        if exc.http_status >= 500:
            logger.error("Request failed: %s", exc.message)
        else:
            logger.info("Request rejected (%s): %s", exc.error_code, exc.message)
        body = {"error_code": exc.error_code, "message": exc.message, "details": to_json(exc.details)}
        return jsonify(body), exc.http_status

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        # let Flask render its own 404/405 responses
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unexpected error")
        body = {
            "error_code": "INTERNAL_SERVER_ERROR",
            "message": "The server encountered an unexpected error.",
            "details": {},
        }
        return jsonify(body), 500

    # -- work orders -------------------------------------------------

    @app.get("/api/work-orders")
    def orders_list():
        with db.session() as conn:
            rows = order_service.list_all(conn, limit=request.args.get("limit", 100, type=int))
        return jsonify(to_json(rows))

    @app.get("/api/work-orders/<int:order_id>")
    def orders_get(order_id: int):
        with db.session() as conn:
            order = order_service.get(conn, order_id)
        return jsonify(to_json(order))

    @app.get("/api/work-orders/number/<order_number>")
    def orders_by_number(order_number: str):
        with db.session() as conn:
            order = order_service.find_by_order_number(conn, order_number)
        return jsonify(to_json(order))

    @app.get("/api/work-orders/customer/<int:customer_id>")
    def orders_by_customer(customer_id: int):
        with db.session() as conn:
            rows = order_service.find_by_customer(conn, customer_id)
        return jsonify(to_json(rows))

    @app.get("/api/work-orders/vehicle/<int:vehicle_id>")
    def orders_by_vehicle(vehicle_id: int):
        with db.session() as conn:
            rows = order_service.find_by_vehicle(conn, vehicle_id)
        return jsonify(to_json(rows))

    @app.get("/api/work-orders/status/<status>")
    def orders_by_status(status: str):
        with db.session() as conn:
            rows = order_service.find_by_status(conn, status)
        return jsonify(to_json(rows))

    @app.get("/api/work-orders/period")
    def orders_by_period():
        start = datetime.combine(_query_date("start"), time.min).astimezone()
        # end date is inclusive: up to the last second of that day
        end = datetime.combine(_query_date("end"), time.min).astimezone() + timedelta(days=1, seconds=-1)
        with db.session() as conn:
            rows = order_service.find_by_date_range(conn, start, end)
        return jsonify(to_json(rows))

    @app.post("/api/work-orders")
    def orders_create():
        data = _payload()
        order_input = CreateWorkOrderInput(
            vehicle_id=_int_field(data, "vehicle_id", required=False) or 0,
            customer_id=_int_field(data, "customer_id", required=False) or 0,
            description=str(data.get("description") or ""),
            employee_id=_int_field(data, "employee_id", required=False),
            entry_date=_datetime_field(data, "entry_date"),
            expected_date=_datetime_field(data, "expected_date"),
            diagnosis=data.get("diagnosis"),
            payment_method=data.get("payment_method"),
            notes=data.get("notes"),
            services_performed=data.get("services_performed"),
            service_value=data.get("service_value"),
            discount_value=data.get("discount_value"),
        )
        with db.transaction() as conn:
            order = order_service.create(conn, order_input)
        return jsonify(to_json(order)), 201

    @app.put("/api/work-orders/<int:order_id>")
    def orders_update(order_id: int):
        data = _payload()
        update_input = UpdateWorkOrderInput(
            description=str(data.get("description") or ""),
            expected_date=_datetime_field(data, "expected_date"),
            diagnosis=data.get("diagnosis"),
            service_value=data.get("service_value"),
            discount_value=data.get("discount_value"),
            payment_method=data.get("payment_method"),
            notes=data.get("notes"),
            services_performed=data.get("services_performed"),
            status=data.get("status") or None,
        )
        with db.transaction() as conn:
            order = order_service.update(conn, order_id, update_input)
        return jsonify(to_json(order))

    @app.patch("/api/work-orders/<int:order_id>/status")
    def orders_change_status(order_id: int):
        status = _payload().get("status")
        if not status:
            raise ValidationError("Field 'status' is required.", details={"field": "status"})
        with db.transaction() as conn:
            order = order_service.change_status(conn, order_id, str(status))
        return jsonify(to_json(order))

    @app.post("/api/work-orders/<int:order_id>/complete")
    def orders_complete(order_id: int):
        with db.transaction() as conn:
            order = order_service.complete(conn, order_id)
        return jsonify(to_json(order))

    @app.post("/api/work-orders/<int:order_id>/cancel")
    def orders_cancel(order_id: int):
        with db.transaction() as conn:
            order = order_service.cancel(conn, order_id)
        return jsonify(to_json(order))

    @app.delete("/api/work-orders/<int:order_id>")
    def orders_delete(order_id: int):
        with db.transaction() as conn:
            order_service.delete(conn, order_id)
        return "", 204

    # -- order items -------------------------------------------------

    @app.get("/api/work-orders/<int:order_id>/items")
    def items_list(order_id: int):
        with db.session() as conn:
            items = order_service.list_items(conn, order_id)
        return jsonify(to_json(items))

    @app.post("/api/work-orders/<int:order_id>/items")
    def items_add(order_id: int):
        data = _payload()
        inventory_item_id = _int_field(data, "inventory_item_id")
        quantity = _int_field(data, "quantity")
        with db.transaction() as conn:
            item = order_service.add_item(conn, order_id, inventory_item_id, quantity, data.get("unit_price"))
        return jsonify(to_json(item)), 201

    @app.put("/api/work-orders/<int:order_id>/items/<int:item_id>")
    def items_update(order_id: int, item_id: int):
        data = _payload()
        quantity = _int_field(data, "quantity")
        with db.transaction() as conn:
            item = order_service.update_item(conn, order_id, item_id, quantity, data.get("unit_price"))
        return jsonify(to_json(item))

    @app.delete("/api/work-orders/<int:order_id>/items/<int:item_id>")
    def items_remove(order_id: int, item_id: int):
        with db.transaction() as conn:
            order_service.remove_item(conn, order_id, item_id)
        return "", 204

    # -- inventory ---------------------------------------------------

    @app.get("/api/inventory")
    def inventory_list():
        with db.session() as conn:
            rows = inventory_service.list_all(conn, limit=request.args.get("limit", 100, type=int))
        return jsonify(to_json(rows))

    @app.get("/api/inventory/<int:item_id>")
    def inventory_get(item_id: int):
        with db.session() as conn:
            item = inventory_service.get(conn, item_id)
        return jsonify(to_json(item))

    @app.get("/api/inventory/low-stock")
    def inventory_low_stock():
        with db.session() as conn:
            rows = inventory_service.find_low_stock(conn)
        return jsonify(to_json(rows))

    @app.get("/api/inventory/category/<category>")
    def inventory_by_category(category: str):
        with db.session() as conn:
            rows = inventory_service.find_by_category(conn, category)
        return jsonify(to_json(rows))

    @app.post("/api/inventory")
    def inventory_create():
        data = _payload()
        with db.transaction() as conn:
            item = inventory_service.create(conn, _inventory_input(data))
        return jsonify(to_json(item)), 201

    @app.put("/api/inventory/<int:item_id>")
    def inventory_update(item_id: int):
        data = _payload()
        with db.transaction() as conn:
            item = inventory_service.update(conn, item_id, _inventory_input(data))
        return jsonify(to_json(item))

    @app.post("/api/inventory/<int:item_id>/restock")
    def inventory_restock(item_id: int):
        quantity = _int_field(_payload(), "quantity")
        with db.transaction() as conn:
            item = inventory_service.restock(conn, item_id, quantity)
        return jsonify(to_json(item))

    @app.delete("/api/inventory/<int:item_id>")
    def inventory_delete(item_id: int):
        with db.transaction() as conn:
            inventory_service.delete(conn, item_id)
        return "", 204

    return app


def build_service(order_number_prefix: str, inventory_repo: InventoryRepository) -> WorkOrderService:
    return WorkOrderService(
        order_repo=OrderRepository(),
        order_item_repo=OrderItemRepository(),
        inventory_repo=inventory_repo,
        vehicle_repo=VehicleRepository(),
        customer_repo=CustomerRepository(),
        employee_repo=EmployeeRepository(),
        order_number_prefix=order_number_prefix,
    )


if __name__ == "__main__":
    try:
        cfg = load_config("config.toml")
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        raise SystemExit(2)

    configure_logging(cfg.log_level)
    inventory_repo = InventoryRepository()
    app = create_app(
        Db(cfg.db),
        build_service(cfg.business.order_number_prefix, inventory_repo),
        InventoryService(inventory_repo),
    )
    app.run(debug=False, host=cfg.web.host, port=cfg.web.port)
