from __future__ import annotations

from repairshop.cli import run_cli
from repairshop.config import ConfigError, load_config
from repairshop.db import Db, DbError
from repairshop.logging_setup import configure_logging
from repairshop.repositories.customer_repo import CustomerRepository
from repairshop.repositories.employee_repo import EmployeeRepository
from repairshop.repositories.inventory_repo import InventoryRepository
from repairshop.repositories.order_item_repo import OrderItemRepository
from repairshop.repositories.order_repo import OrderRepository
from repairshop.repositories.vehicle_repo import VehicleRepository
from repairshop.services.inventory_service import InventoryService
from repairshop.services.work_order_service import WorkOrderService


def main() -> int:
    try:
        cfg = load_config("config.toml")
        configure_logging(cfg.log_level)
        db = Db(cfg.db)
        inventory_repo = InventoryRepository()
        service = WorkOrderService(
            order_repo=OrderRepository(),
            order_item_repo=OrderItemRepository(),
            inventory_repo=inventory_repo,
            vehicle_repo=VehicleRepository(),
            customer_repo=CustomerRepository(),
            employee_repo=EmployeeRepository(),
            order_number_prefix=cfg.business.order_number_prefix,
        )
        run_cli(db, service, InventoryService(inventory_repo))
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}")
        return 3
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
