from __future__ import annotations

from datetime import datetime

from psycopg import Connection

from ..domain import WorkOrder, WorkOrderStatus
from .rows import fetch_all, fetch_one

_COLUMNS = (
    "id, vehicle_id, customer_id, employee_id, order_number, entry_date, expected_date, "
    "completion_date, status, description, diagnosis, payment_method, notes, services_performed, "
    "parts_value, service_value, discount_value, total_value, created_at, updated_at"
)


def _to_order(row: dict) -> WorkOrder:
    row["status"] = WorkOrderStatus(row["status"])
    return WorkOrder(**row)


class OrderRepository:
    def find_by_id(self, conn: Connection, order_id: int, *, for_update: bool = False) -> WorkOrder | None:
        sql = f"SELECT {_COLUMNS} FROM work_order WHERE id = %s"
        if for_update:
            sql += " FOR UPDATE"
        row = fetch_one(conn.execute(sql + ";", (order_id,)))
        return _to_order(row) if row else None

    def find_all(self, conn: Connection, limit: int = 100) -> list[WorkOrder]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM work_order ORDER BY id DESC LIMIT %s;",
            (limit,),
        )
        return [_to_order(r) for r in fetch_all(cur)]

    def find_by_customer(self, conn: Connection, customer_id: int) -> list[WorkOrder]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM work_order WHERE customer_id = %s ORDER BY id DESC;",
            (customer_id,),
        )
        return [_to_order(r) for r in fetch_all(cur)]

    def find_by_vehicle(self, conn: Connection, vehicle_id: int) -> list[WorkOrder]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM work_order WHERE vehicle_id = %s ORDER BY id DESC;",
            (vehicle_id,),
        )
        return [_to_order(r) for r in fetch_all(cur)]

    def find_by_status(self, conn: Connection, status: WorkOrderStatus) -> list[WorkOrder]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM work_order WHERE status = %s ORDER BY id DESC;",
            (status.value,),
        )
        return [_to_order(r) for r in fetch_all(cur)]

    def find_by_date_range(self, conn: Connection, start: datetime, end: datetime) -> list[WorkOrder]:
        cur = conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM work_order
            WHERE entry_date BETWEEN %s AND %s
            ORDER BY entry_date;
            """,
            (start, end),
        )
        return [_to_order(r) for r in fetch_all(cur)]

    def find_by_order_number(self, conn: Connection, order_number: str) -> WorkOrder | None:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM work_order WHERE order_number = %s;",
            (order_number,),
        )
        row = fetch_one(cur)
        return _to_order(row) if row else None

    def next_order_sequence(self, conn: Connection) -> int:
        cur = conn.execute("SELECT nextval('work_order_number_seq');")
        return int(cur.fetchone()[0])

    def create(self, conn: Connection, order: WorkOrder) -> int:
        cur = conn.execute(
            """
            INSERT INTO work_order(
              vehicle_id, customer_id, employee_id, order_number, entry_date, expected_date,
              status, description, diagnosis, payment_method, notes, services_performed,
              parts_value, service_value, discount_value, total_value
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                order.vehicle_id,
                order.customer_id,
                order.employee_id,
                order.order_number,
                order.entry_date,
                order.expected_date,
                order.status.value,
                order.description,
                order.diagnosis,
                order.payment_method,
                order.notes,
                order.services_performed,
                order.parts_value,
                order.service_value,
                order.discount_value,
                order.total_value,
            ),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, order: WorkOrder) -> None:
        conn.execute(
            """
            UPDATE work_order
            SET employee_id = %s, expected_date = %s, completion_date = %s, status = %s,
                description = %s, diagnosis = %s, payment_method = %s, notes = %s,
                services_performed = %s, parts_value = %s, service_value = %s,
                discount_value = %s, total_value = %s, updated_at = now()
            WHERE id = %s;
            """,
            (
                order.employee_id,
                order.expected_date,
                order.completion_date,
                order.status.value,
                order.description,
                order.diagnosis,
                order.payment_method,
                order.notes,
                order.services_performed,
                order.parts_value,
                order.service_value,
                order.discount_value,
                order.total_value,
                order.id,
            ),
        )

    def delete(self, conn: Connection, order_id: int) -> None:
        # order_item rows go with ON DELETE CASCADE
        conn.execute("DELETE FROM work_order WHERE id = %s;", (order_id,))
