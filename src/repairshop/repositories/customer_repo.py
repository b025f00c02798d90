from __future__ import annotations

from psycopg import Connection

from ..domain import Customer
from .rows import fetch_all, fetch_one

_COLUMNS = "id, name, email, phone, address, created_at"


def _to_customer(row: dict) -> Customer:
    return Customer(**row)


class CustomerRepository:
    def find_by_id(self, conn: Connection, customer_id: int) -> Customer | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM customer WHERE id = %s;", (customer_id,))
        row = fetch_one(cur)
        return _to_customer(row) if row else None

    def find_all(self, conn: Connection, limit: int = 100) -> list[Customer]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM customer ORDER BY id DESC LIMIT %s;",
            (limit,),
        )
        return [_to_customer(r) for r in fetch_all(cur)]

    def create(self, conn: Connection, customer: Customer) -> int:
        cur = conn.execute(
            """
            INSERT INTO customer(name, email, phone, address)
            VALUES (%s, %s, %s, %s)
            RETURNING id;
            """,
            (customer.name, customer.email, customer.phone, customer.address),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, customer: Customer) -> None:
        conn.execute(
            """
            UPDATE customer
            SET name = %s, email = %s, phone = %s, address = %s
            WHERE id = %s;
            """,
            (customer.name, customer.email, customer.phone, customer.address, customer.id),
        )

    def delete(self, conn: Connection, customer_id: int) -> None:
        conn.execute("DELETE FROM customer WHERE id = %s;", (customer_id,))
