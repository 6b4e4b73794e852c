import sqlite3
from datetime import datetime

import pytest

from menucost.domain.errors import NotFoundError, ValidationError
from menucost.domain.models import Ingredient, Recipe, RecipeComponent, Store
from menucost.infra.db import connect
from menucost.infra.migrations import apply_migrations
from menucost.infra.repositories import (
    CategoryRepo,
    IngredientRepo,
    OrderRepo,
    RecipeRepo,
    SalesRecordRepo,
    StoreRepo,
    load_cost_catalog,
)


def test_migrations_are_idempotent(db_path):
    apply_migrations(db_path)
    with connect(db_path) as c:
        assert c.execute("PRAGMA user_version;").fetchone()[0] == 2
        cols = [r[1] for r in c.execute("PRAGMA table_info(recipes);").fetchall()]
    assert "target_cost_rate" in cols
    assert "portion_unit" in cols


def test_connect_rolls_back_on_error(db_path):
    repo = StoreRepo(db_path)
    with pytest.raises(RuntimeError):
        with connect(db_path) as c:
            repo.insert(Store(name="Temp"), conn=c)
            raise RuntimeError("boom")
    assert repo.get_all() == []


def test_store_repo_accepts_dataclasses(db_path):
    repo = StoreRepo(db_path)
    sid = repo.insert(Store(name="Centro", monthly_fixed_cost=1000))
    store = repo.require(sid)
    assert store["name"] == "Centro"
    assert store["monthly_target_sales_count"] == 1000
    with pytest.raises(NotFoundError):
        repo.require("nope")


def test_category_get_or_create_is_stable(db_path):
    sid = StoreRepo(db_path).insert({"name": "Centro"})
    repo = CategoryRepo(db_path)
    a = repo.get_or_create(sid, "Soups", "menu")
    b = repo.get_or_create(sid, "Soups", "menu")
    assert a == b
    assert repo.names_by_id(sid) == {a: "Soups"}


def test_ingredient_add_stock(db_path):
    sid = StoreRepo(db_path).insert({"name": "Centro"})
    repo = IngredientRepo(db_path)
    iid = repo.insert(sid, Ingredient(name="Pork", purchase_price=12000, purchase_unit="1kg",
                                      usage_unit="g", conversion_factor=1000, current_stock=1))
    with connect(db_path) as c:
        assert repo.add_stock(c, iid, -0.25) == 0.75
        assert repo.add_stock(c, iid, -5, floor_zero=True) == 0
    assert repo.find_by_name(sid, "PORK")["current_stock"] == 0

    with pytest.raises(NotFoundError):
        with connect(db_path) as c:
            repo.add_stock(c, "ghost", 1)


def test_ingredient_conversion_factor_must_be_positive(db_path):
    sid = StoreRepo(db_path).insert({"name": "Centro"})
    with pytest.raises(sqlite3.IntegrityError):
        IngredientRepo(db_path).insert(sid, {"name": "Bad", "purchase_unit": "ea", "usage_unit": "ea",
                                             "conversion_factor": 0})


def test_components_keep_position_and_cascade(db_path):
    sid = StoreRepo(db_path).insert({"name": "Centro"})
    ing = IngredientRepo(db_path)
    a = ing.insert(sid, {"name": "A", "purchase_unit": "ea", "usage_unit": "ea"})
    b = ing.insert(sid, {"name": "B", "purchase_unit": "ea", "usage_unit": "ea"})
    repo = RecipeRepo(db_path)
    rid = repo.insert(sid, Recipe(name="Menu"))
    repo.insert_components(rid, [
        RecipeComponent(item_id=b, item_type="ingredient", quantity=2),
        RecipeComponent(item_id=a, item_type="ingredient", quantity=1),
    ])
    assert [c["item_id"] for c in repo.components(rid)] == [b, a]

    catalog = load_cost_catalog(db_path, sid)
    assert [c["item_id"] for c in catalog.get_components(rid)] == [b, a]

    assert repo.delete(sid, rid) == 1
    assert repo.components(rid) == []


def test_store_scoping(db_path):
    stores = StoreRepo(db_path)
    s1 = stores.insert({"name": "Centro"})
    s2 = stores.insert({"name": "Norte"})
    iid = IngredientRepo(db_path).insert(s1, {"name": "A", "purchase_unit": "ea", "usage_unit": "ea"})
    assert IngredientRepo(db_path).get(s2, iid) is None
    assert load_cost_catalog(db_path, s2).ingredients() == []


def test_sales_record_accumulates_and_keeps_cogs(db_path):
    sid = StoreRepo(db_path).insert({"name": "Centro"})
    repo = SalesRecordRepo(db_path)
    repo.add_to_day(sid, "2026-03-10", 9000, 1700)
    repo.add_to_day(sid, "2026-03-10", 6000, 657)
    row = repo.get(sid, "2026-03-10")
    assert row["daily_revenue"] == 15000
    assert row["daily_cogs"] == 2357

    repo.set_revenue(sid, "2026-03-10", 20000, memo="fechamento")
    row = repo.get(sid, "2026-03-10")
    assert row["daily_revenue"] == 20000
    assert row["daily_cogs"] == 2357
    assert row["memo"] == "fechamento"

    months = repo.monthly_financials(sid, "2026-03-01", "2026-03-31")
    assert months == [{"month": "2026-03", "revenue": 20000.0, "cogs": 2357.0, "expenses": 0.0}]


def test_sales_summary_window_excludes_cancelled(kitchen):
    repo = OrderRepo(kitchen.db_path)
    for created, status in (("2026-03-10T12:00:00", "completed"),
                            ("2026-03-11T12:00:00", "cancelled"),
                            ("2026-01-01T12:00:00", "completed")):
        order = repo.insert(kitchen.store_id, 9000, 1700, "card", created)
        repo.insert_items(order["id"], [{"menu_id": kitchen.stew, "quantity": 2, "price": 9000}], created)
        repo.set_status(order["id"], status)

    summary = repo.sales_summary(kitchen.store_id, 30, now=datetime(2026, 3, 15))
    assert summary.total_units_sold == 2
    assert summary.units_by_item() == {kitchen.stew: 2.0}
    assert summary.per_item[0]["revenue"] == 18000


def test_order_status_is_validated(kitchen):
    repo = OrderRepo(kitchen.db_path)
    order = repo.insert(kitchen.store_id, 0, 0, "cash")
    with pytest.raises(ValidationError):
        repo.set_status(order["id"], "refunded")
