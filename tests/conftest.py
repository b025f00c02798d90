"""
Shared test configuration.
The service layer runs against the in-memory backend in tests/support.py,
so the suite needs no PostgreSQL server and stays deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from repairshop.services.work_order_service import CreateWorkOrderInput
from tests.support import Shop, build_shop


@dataclass
class Seed:
    customer_id: int
    other_customer_id: int
    vehicle_id: int
    employee_id: int
    part_id: int


@pytest.fixture
def shop() -> Shop:
    return build_shop()


@pytest.fixture
def seed(shop: Shop) -> Seed:
    c1 = shop.add_customer("Ana Souza")
    c2 = shop.add_customer("Bruno Lima")
    return Seed(
        customer_id=c1,
        other_customer_id=c2,
        vehicle_id=shop.add_vehicle(c1),
        employee_id=shop.add_employee(),
        part_id=shop.add_part(quantity=10, sale_price="10.00"),
    )


@pytest.fixture
def open_order(shop: Shop, seed: Seed):
    with shop.db.transaction() as conn:
        return shop.service.create(
            conn,
            CreateWorkOrderInput(
                vehicle_id=seed.vehicle_id,
                customer_id=seed.customer_id,
                description="Troca de pastilhas",
            ),
        )
