from __future__ import annotations

from psycopg import Connection

from ..domain import Vehicle
from .rows import fetch_all, fetch_one

_COLUMNS = "id, customer_id, plate, brand, model, color, model_year, created_at"


def _to_vehicle(row: dict) -> Vehicle:
    return Vehicle(**row)


class VehicleRepository:
    def find_by_id(self, conn: Connection, vehicle_id: int) -> Vehicle | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM vehicle WHERE id = %s;", (vehicle_id,))
        row = fetch_one(cur)
        return _to_vehicle(row) if row else None

    def find_all(self, conn: Connection, limit: int = 100) -> list[Vehicle]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM vehicle ORDER BY id DESC LIMIT %s;",
            (limit,),
        )
        return [_to_vehicle(r) for r in fetch_all(cur)]

    def create(self, conn: Connection, vehicle: Vehicle) -> int:
        cur = conn.execute(
            """
            INSERT INTO vehicle(customer_id, plate, brand, model, color, model_year)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (vehicle.customer_id, vehicle.plate, vehicle.brand, vehicle.model, vehicle.color, vehicle.model_year),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, vehicle: Vehicle) -> None:
        conn.execute(
            """
            UPDATE vehicle
            SET customer_id = %s, plate = %s, brand = %s, model = %s, color = %s, model_year = %s
            WHERE id = %s;
            """,
            (
                vehicle.customer_id,
                vehicle.plate,
                vehicle.brand,
                vehicle.model,
                vehicle.color,
                vehicle.model_year,
                vehicle.id,
            ),
        )

    def delete(self, conn: Connection, vehicle_id: int) -> None:
        conn.execute("DELETE FROM vehicle WHERE id = %s;", (vehicle_id,))
