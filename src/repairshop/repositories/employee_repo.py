from __future__ import annotations

from psycopg import Connection

from ..domain import Employee
from .rows import fetch_all, fetch_one

_COLUMNS = "id, name, phone, role, created_at"


class EmployeeRepository:
    def find_by_id(self, conn: Connection, employee_id: int) -> Employee | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM employee WHERE id = %s;", (employee_id,))
        row = fetch_one(cur)
        return Employee(**row) if row else None

    def find_all(self, conn: Connection, limit: int = 100) -> list[Employee]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM employee ORDER BY name LIMIT %s;",
            (limit,),
        )
        return [Employee(**r) for r in fetch_all(cur)]

    def create(self, conn: Connection, employee: Employee) -> int:
        cur = conn.execute(
            "INSERT INTO employee(name, phone, role) VALUES (%s, %s, %s) RETURNING id;",
            (employee.name, employee.phone, employee.role),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, employee: Employee) -> None:
        conn.execute(
            "UPDATE employee SET name = %s, phone = %s, role = %s WHERE id = %s;",
            (employee.name, employee.phone, employee.role, employee.id),
        )

    def delete(self, conn: Connection, employee_id: int) -> None:
        conn.execute("DELETE FROM employee WHERE id = %s;", (employee_id,))
