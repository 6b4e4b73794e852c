from datetime import datetime
from math import isclose

import pytest

from menucost.domain.errors import NotFoundError, ValidationError
from menucost.infra.repositories import IngredientRepo, OrderRepo, SalesRecordRepo, StockLogRepo
from menucost.usecases.orders import cancel_order, create_order, list_orders


CREATED = "2026-03-10T12:00:00"


def _stock(kitchen, name):
    return IngredientRepo(kitchen.db_path).get(kitchen.store_id, kitchen.ing[name])["current_stock"]


def test_create_order_deducts_stock_through_preps(kitchen):
    res = create_order(
        kitchen.store_id,
        [{"menu_id": kitchen.stew, "quantity": 2}],
        "card",
        CREATED,
        db_path=kitchen.db_path,
    )
    assert res["total_amount"] == 18000
    assert isclose(res["total_cost"], 3400)
    assert res["items"] == 1
    assert res["warning_count"] == 0

    # 2 x (Pork 100 g + Onion 50 g + Kimchi 150 g), em unidade de compra
    assert isclose(_stock(kitchen, "Pork"), 10 - 0.2)
    assert isclose(_stock(kitchen, "Onion"), 4 - 0.02)
    assert isclose(_stock(kitchen, "Kimchi"), 5 - 0.03)
    assert _stock(kitchen, "Flour") == 2

    logs = StockLogRepo(kitchen.db_path).history(kitchen.store_id, types=["order"])
    assert len(logs) == 3
    assert all(log["reason"] == f"order {res['order_id']}" for log in logs)

    day = SalesRecordRepo(kitchen.db_path).get(kitchen.store_id, "2026-03-10")
    assert day["daily_revenue"] == 18000
    assert isclose(day["daily_cogs"], 3400)


def test_create_order_with_explicit_price(kitchen):
    res = create_order(kitchen.store_id, [{"menu_id": kitchen.dumplings, "quantity": 1, "price": 5000}],
                       "cash", CREATED, db_path=kitchen.db_path)
    assert res["total_amount"] == 5000
    assert isclose(res["total_cost"], 657.398, rel_tol=1e-4)


@pytest.mark.parametrize("items,payment,error", [
    ([], "card", ValidationError),
    ([{"menu_id": "x", "quantity": 1}], "bitcoin", ValidationError),
    ([{"menu_id": "ghost", "quantity": 1}], "card", NotFoundError),
])
def test_create_order_rejects_bad_input(kitchen, items, payment, error):
    with pytest.raises(error):
        create_order(kitchen.store_id, items, payment, CREATED, db_path=kitchen.db_path)


def test_prep_cannot_be_ordered(kitchen):
    with pytest.raises(NotFoundError):
        create_order(kitchen.store_id, [{"menu_id": kitchen.base, "quantity": 1}], "card", db_path=kitchen.db_path)


def test_failed_order_changes_nothing(kitchen):
    with pytest.raises(ValidationError):
        create_order(kitchen.store_id,
                     [{"menu_id": kitchen.stew, "quantity": 1}, {"menu_id": kitchen.stew, "quantity": 0}],
                     "card", CREATED, db_path=kitchen.db_path)
    assert _stock(kitchen, "Pork") == 10
    assert list_orders(kitchen.store_id, db_path=kitchen.db_path) == []


def test_cancel_order_restores_stock_and_is_idempotent(kitchen):
    order = create_order(kitchen.store_id, [{"menu_id": kitchen.stew, "quantity": 2}], "card", CREATED,
                         db_path=kitchen.db_path)

    res = cancel_order(kitchen.store_id, order["order_id"], db_path=kitchen.db_path)
    assert res["changed"] is True
    assert isclose(_stock(kitchen, "Pork"), 10)
    assert isclose(_stock(kitchen, "Kimchi"), 5)

    refunds = StockLogRepo(kitchen.db_path).history(kitchen.store_id, types=["refund"])
    assert len(refunds) == 3

    day = SalesRecordRepo(kitchen.db_path).get(kitchen.store_id, "2026-03-10")
    assert isclose(day["daily_revenue"], 0)
    assert isclose(day["daily_cogs"], 0, abs_tol=1e-9)

    again = cancel_order(kitchen.store_id, order["order_id"], db_path=kitchen.db_path)
    assert again["changed"] is False
    assert isclose(_stock(kitchen, "Pork"), 10)

    with pytest.raises(NotFoundError):
        cancel_order(kitchen.store_id, "ghost", db_path=kitchen.db_path)


def test_list_orders_with_items(kitchen):
    create_order(kitchen.store_id, [{"menu_id": kitchen.stew, "quantity": 1}], "card",
                 "2026-03-09T10:00:00", db_path=kitchen.db_path)
    create_order(kitchen.store_id, [{"menu_id": kitchen.dumplings, "quantity": 3}], "cash",
                 "2026-03-10T10:00:00", db_path=kitchen.db_path)

    orders = list_orders(kitchen.store_id, db_path=kitchen.db_path)
    assert len(orders) == 2
    assert orders[0]["payment_method"] == "cash"
    assert orders[0]["items"][0]["name"] == "Dumplings"
    assert orders[0]["items"][0]["quantity"] == 3

    only_ninth = list_orders(kitchen.store_id, start="2026-03-09", end="2026-03-09", db_path=kitchen.db_path)
    assert [o["total_amount"] for o in only_ninth] == [9000]


def test_created_at_is_normalised_to_iso(kitchen):
    res = create_order(kitchen.store_id, [{"menu_id": kitchen.stew, "quantity": 1}], "card",
                       "2026-03-10", db_path=kitchen.db_path)
    order = list_orders(kitchen.store_id, db_path=kitchen.db_path)[0]
    assert order["id"] == res["order_id"]
    assert order["created_at"] == "2026-03-10T00:00:00"

    summary = OrderRepo(kitchen.db_path).sales_summary(kitchen.store_id, 30, datetime(2026, 3, 15))
    assert summary.total_units_sold == 1


def test_unparseable_created_at_is_rejected(kitchen):
    with pytest.raises(ValidationError):
        create_order(kitchen.store_id, [{"menu_id": kitchen.stew, "quantity": 1}], "card",
                     "yesterday", db_path=kitchen.db_path)
    assert list_orders(kitchen.store_id, db_path=kitchen.db_path) == []
    assert _stock(kitchen, "Pork") == 10
