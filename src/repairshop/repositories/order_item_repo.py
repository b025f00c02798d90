from __future__ import annotations

from psycopg import Connection

from ..domain import InventoryItem, OrderItem
from .rows import fetch_all, fetch_one


def _to_item(row: dict) -> OrderItem:
    return OrderItem(
        id=row["id"],
        order_id=row["order_id"],
        inventory_item_id=row["inventory_item_id"],
        quantity=row["quantity"],
        unit_price=row["unit_price"],
        total=row["total"],
        created_at=row["created_at"],
    )


class OrderItemRepository:
    def find_items_by_order(self, conn: Connection, order_id: int) -> list[OrderItem]:
        cur = conn.execute(
            """
            SELECT oi.id, oi.order_id, oi.inventory_item_id, oi.quantity, oi.unit_price, oi.total,
                   oi.created_at,
                   ii.name AS item_name, ii.code AS item_code, ii.category AS item_category,
                   ii.quantity AS item_quantity, ii.min_stock AS item_min_stock,
                   ii.cost_price AS item_cost_price, ii.sale_price AS item_sale_price,
                   ii.supplier AS item_supplier, ii.status AS item_status
            FROM order_item oi
            JOIN inventory_item ii ON ii.id = oi.inventory_item_id
            WHERE oi.order_id = %s
            ORDER BY oi.id;
            """,
            (order_id,),
        )
        items = []
        for r in fetch_all(cur):
            item = _to_item(r)
            item.inventory_item = InventoryItem(
                id=r["inventory_item_id"],
                name=r["item_name"],
                code=r["item_code"],
                category=r["item_category"],
                quantity=r["item_quantity"],
                min_stock=r["item_min_stock"],
                cost_price=r["item_cost_price"],
                sale_price=r["item_sale_price"],
                supplier=r["item_supplier"],
                status=r["item_status"],
            )
            items.append(item)
        return items

    def find_item(self, conn: Connection, *, order_id: int, item_id: int) -> OrderItem | None:
        cur = conn.execute(
            """
            SELECT id, order_id, inventory_item_id, quantity, unit_price, total, created_at
            FROM order_item
            WHERE id = %s AND order_id = %s;
            """,
            (item_id, order_id),
        )
        row = fetch_one(cur)
        return _to_item(row) if row else None

    def add_item(self, conn: Connection, item: OrderItem) -> int:
        cur = conn.execute(
            """
            INSERT INTO order_item(order_id, inventory_item_id, quantity, unit_price, total)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (item.order_id, item.inventory_item_id, item.quantity, item.unit_price, item.total),
        )
        return int(cur.fetchone()[0])

    def update_item(self, conn: Connection, item: OrderItem) -> None:
        conn.execute(
            """
            UPDATE order_item
            SET quantity = %s, unit_price = %s, total = %s, updated_at = now()
            WHERE id = %s;
            """,
            (item.quantity, item.unit_price, item.total, item.id),
        )

    def remove_item(self, conn: Connection, item_id: int) -> None:
        conn.execute("DELETE FROM order_item WHERE id = %s;", (item_id,))
