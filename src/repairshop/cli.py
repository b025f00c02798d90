from __future__ import annotations

from typing import Any, Callable

from .errors import NotFound, PersistenceError, RepairShopError
from .services.inventory_service import InventoryService
from .services.work_order_service import CreateWorkOrderInput, WorkOrderService


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _print_order(order) -> None:
    print(
        f"#{order.id} {order.order_number} status={order.status.value} vehicle={order.vehicle_id} "
        f"parts={order.parts_value} service={order.service_value} "
        f"discount={order.discount_value} total={order.total_value}"
    )


def run_cli(
    db: Any,
    service: WorkOrderService,
    inventory_service: InventoryService,
    prompt: Callable[[str], str] = _prompt,
) -> None:
    while True:
        print("\n=== Repair Shop CLI ===")
        print("1) List work orders")
        print("2) List inventory (stock)")
        print("3) Create work order")
        print("4) Add item to work order")
        print("5) Remove item from work order")
        print("6) Change work order status")
        print("7) Cancel work order (restores stock)")
        print("8) Show work order with items")
        print("9) Low stock report")
        print("10) Restock inventory item")
        print("0) Exit")

        choice = prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                with db.session() as conn:
                    orders = service.list_all(conn, limit=50)
                for o in orders:
                    _print_order(o)

            elif choice == "2":
                with db.session() as conn:
                    items = inventory_service.list_all(conn, limit=50)
                for i in items:
                    print(f"#{i.id} {i.code} {i.name} price={i.sale_price} stock={i.quantity} min={i.min_stock}")

            elif choice == "3":
                vehicle_id = int(prompt("vehicle_id: "))
                customer_id = int(prompt("customer_id: "))
                employee_in = prompt("employee_id (optional): ")
                description = prompt("description: ")
                service_in = prompt("service value (optional): ")
                data = CreateWorkOrderInput(
                    vehicle_id=vehicle_id,
                    customer_id=customer_id,
                    description=description,
                    employee_id=int(employee_in) if employee_in else None,
                    service_value=service_in or None,
                )
                with db.transaction() as conn:
                    order = service.create(conn, data)
                print(f"Created work order {order.order_number} (id={order.id})")

            elif choice == "4":
                order_id = int(prompt("order_id: "))
                inventory_item_id = int(prompt("inventory_item_id: "))
                qty = int(prompt("quantity: "))
                price_in = prompt("unit price (empty = sale price): ")
                with db.transaction() as conn:
                    item = service.add_item(conn, order_id, inventory_item_id, qty, price_in or None)
                print(f"Added item #{item.id}: {item.quantity} x {item.unit_price} = {item.total}")

            elif choice == "5":
                order_id = int(prompt("order_id: "))
                item_id = int(prompt("item_id: "))
                with db.transaction() as conn:
                    service.remove_item(conn, order_id, item_id)
                print("Item removed, stock restored.")

            elif choice == "6":
                order_id = int(prompt("order_id: "))
                status = prompt("new status (aberta/emandamento/concluida/cancelada): ")
                with db.transaction() as conn:
                    order = service.change_status(conn, order_id, status)
                _print_order(order)

            elif choice == "7":
                order_id = int(prompt("order_id: "))
                with db.transaction() as conn:
                    order = service.cancel(conn, order_id)
                _print_order(order)

            elif choice == "8":
                order_id = int(prompt("order_id: "))
                with db.session() as conn:
                    order = service.get(conn, order_id)
                _print_order(order)
                for it in order.items:
                    name = it.inventory_item.name if it.inventory_item else it.inventory_item_id
                    print(f"  item#{it.id} {name} qty={it.quantity} unit={it.unit_price} total={it.total}")

            elif choice == "9":
                with db.session() as conn:
                    items = inventory_service.find_low_stock(conn)
                for i in items:
                    print(f"#{i.id} {i.name} stock={i.quantity} min={i.min_stock}")

            elif choice == "10":
                item_id = int(prompt("inventory_item_id: "))
                qty = int(prompt("quantity received: "))
                with db.transaction() as conn:
                    item = inventory_service.restock(conn, item_id, qty)
                print(f"Restocked #{item.id} {item.name}: stock={item.quantity}")

            else:
                print("Unknown choice.")

        except NotFound as e:
            print(f"[NOT FOUND] {e}")
        except PersistenceError as e:
            print(f"[DB ERROR] {e}")
        except RepairShopError as e:
            print(f"[INPUT ERROR] {e}")
        except ValueError as e:
            print(f"[VALUE ERROR] {e}")
