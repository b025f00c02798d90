from __future__ import annotations

from psycopg import Connection

from ..domain import InventoryItem
from .rows import fetch_all, fetch_one

_COLUMNS = (
    "id, name, code, description, category, quantity, min_stock, cost_price, sale_price, "
    "supplier, status, notes, created_at"
)


def _to_item(row: dict) -> InventoryItem:
    return InventoryItem(**row)


class InventoryRepository:
    def find_by_id(self, conn: Connection, item_id: int, *, for_update: bool = False) -> InventoryItem | None:
        sql = f"SELECT {_COLUMNS} FROM inventory_item WHERE id = %s"
        if for_update:
            sql += " FOR UPDATE"
        row = fetch_one(conn.execute(sql + ";", (item_id,)))
        return _to_item(row) if row else None

    def find_all(self, conn: Connection, limit: int = 100) -> list[InventoryItem]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM inventory_item ORDER BY name LIMIT %s;",
            (limit,),
        )
        return [_to_item(r) for r in fetch_all(cur)]

    def find_by_category(self, conn: Connection, category: str) -> list[InventoryItem]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM inventory_item WHERE category = %s ORDER BY name;",
            (category,),
        )
        return [_to_item(r) for r in fetch_all(cur)]

    def find_low_stock(self, conn: Connection) -> list[InventoryItem]:
        cur = conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM inventory_item
            WHERE quantity < min_stock
            ORDER BY quantity, name;
            """
        )
        return [_to_item(r) for r in fetch_all(cur)]

    def create(self, conn: Connection, item: InventoryItem) -> int:
        cur = conn.execute(
            """
            INSERT INTO inventory_item(
              name, code, description, category, quantity, min_stock,
              cost_price, sale_price, supplier, status, notes
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                item.name,
                item.code,
                item.description,
                item.category,
                item.quantity,
                item.min_stock,
                item.cost_price,
                item.sale_price,
                item.supplier,
                item.status,
                item.notes,
            ),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, item: InventoryItem) -> None:
        # quantity is owned by adjust_quantity
        conn.execute(
            """
            UPDATE inventory_item
            SET name = %s, code = %s, description = %s, category = %s, min_stock = %s,
                cost_price = %s, sale_price = %s, supplier = %s, status = %s, notes = %s,
                updated_at = now()
            WHERE id = %s;
            """,
            (
                item.name,
                item.code,
                item.description,
                item.category,
                item.min_stock,
                item.cost_price,
                item.sale_price,
                item.supplier,
                item.status,
                item.notes,
                item.id,
            ),
        )

    def delete(self, conn: Connection, item_id: int) -> None:
        conn.execute("DELETE FROM inventory_item WHERE id = %s;", (item_id,))

    def in_use(self, conn: Connection, item_id: int) -> bool:
        cur = conn.execute(
            "SELECT EXISTS (SELECT 1 FROM order_item WHERE inventory_item_id = %s);",
            (item_id,),
        )
        return bool(cur.fetchone()[0])

    def adjust_quantity(self, conn: Connection, *, item_id: int, delta: int) -> int | None:
        """Add ``delta`` to the stock; returns the new quantity, or None if it would go negative."""
        cur = conn.execute(
            """
            UPDATE inventory_item
            SET quantity = quantity + %s, updated_at = now()
            WHERE id = %s AND quantity + %s >= 0
            RETURNING quantity;
            """,
            (delta, item_id, delta),
        )
        row = cur.fetchone()
        if cur.rowcount != 1 or not row:
            return None
        return int(row[0])
