from __future__ import annotations

from decimal import Decimal

import pytest

from repairshop.errors import NotFound, ValidationError
from repairshop.services.inventory_service import InventoryItemInput


def _input(**overrides) -> InventoryItemInput:
    values = dict(name="Amortecedor", sale_price="350.00", cost_price="210.00", quantity=6, min_stock=2)
    values.update(overrides)
    return InventoryItemInput(**values)


def test_create_normalizes_money_and_stores_quantity(shop) -> None:
    with shop.db.transaction() as conn:
        item = shop.inventory_service.create(conn, _input(name="  Amortecedor  ", sale_price="350"))

    assert item.id in shop.store.inventory
    assert item.name == "Amortecedor"
    assert item.sale_price == Decimal("350.00")
    assert item.unit_profit == Decimal("140.00")
    assert shop.stock(item.id) == 6


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"name": "   "},
        {"sale_price": "200.00"},
        {"sale_price": "-1"},
        {"quantity": -3},
        {"min_stock": -1},
        {"sale_price": "abc"},
    ],
)
def test_create_rejects_invalid_items(shop, overrides) -> None:
    with pytest.raises(ValidationError):
        with shop.db.transaction() as conn:
            shop.inventory_service.create(conn, _input(**overrides))

    assert shop.store.inventory == {}


def test_sale_price_equal_to_cost_is_allowed(shop) -> None:
    with shop.db.transaction() as conn:
        item = shop.inventory_service.create(conn, _input(sale_price="210.00"))

    assert item.unit_profit == Decimal("0.00")


def test_update_changes_description_but_not_stock(shop, seed) -> None:
    with shop.db.transaction() as conn:
        item = shop.inventory_service.update(
            conn, seed.part_id, _input(name="Pastilha cerâmica", sale_price="12.00", cost_price="5.00", quantity=None)
        )

    assert item.quantity == 10
    assert shop.store.inventory[seed.part_id].name == "Pastilha cerâmica"
    assert shop.stock(seed.part_id) == 10
    assert shop.store.lock_log == [("inventory", seed.part_id)]


def test_update_applies_the_same_validations(shop, seed) -> None:
    with shop.db.transaction() as conn:
        with pytest.raises(ValidationError):
            shop.inventory_service.update(conn, seed.part_id, _input(name="", quantity=None))
        with pytest.raises(ValidationError):
            shop.inventory_service.update(conn, seed.part_id, _input(sale_price="1.00", quantity=None))
        with pytest.raises(ValidationError):
            shop.inventory_service.update(conn, seed.part_id, _input(quantity=3))
        with pytest.raises(NotFound):
            shop.inventory_service.update(conn, 999, _input())


def test_restock_goes_through_the_ledger(shop, seed) -> None:
    with shop.db.transaction() as conn:
        item = shop.inventory_service.restock(conn, seed.part_id, 5)
        with pytest.raises(ValidationError):
            shop.inventory_service.restock(conn, seed.part_id, 0)
        with pytest.raises(NotFound):
            shop.inventory_service.restock(conn, 999, 1)

    assert item.quantity == 15
    assert ("inventory", seed.part_id) in shop.store.lock_log


def test_delete_unused_item(shop, seed) -> None:
    with shop.db.transaction() as conn:
        shop.inventory_service.delete(conn, seed.part_id)
        with pytest.raises(NotFound):
            shop.inventory_service.get(conn, seed.part_id)
        with pytest.raises(NotFound):
            shop.inventory_service.delete(conn, seed.part_id)


def test_delete_item_referenced_by_work_order_is_rejected(shop, seed, open_order) -> None:
    with shop.db.transaction() as conn:
        shop.service.add_item(conn, open_order.id, seed.part_id, 1)

    with pytest.raises(ValidationError):
        with shop.db.transaction() as conn:
            shop.inventory_service.delete(conn, seed.part_id)

    assert seed.part_id in shop.store.inventory


def test_category_query_requires_a_name(shop, seed) -> None:
    with shop.db.session() as conn:
        assert [i.id for i in shop.inventory_service.find_by_category(conn, " Freio ")] == [seed.part_id]
        with pytest.raises(ValidationError):
            shop.inventory_service.find_by_category(conn, "  ")
