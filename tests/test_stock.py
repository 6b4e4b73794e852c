from math import isclose

import pandas as pd
import pytest

from menucost.config import DEFAULTS
from menucost.domain.errors import NotFoundError, ValidationError
from menucost.infra.repositories import CategoryRepo, ExpenseRepo, IngredientRepo, SalesRecordRepo, StockLogRepo
from menucost.usecases.stock import (
    add_expense,
    adjust_stock,
    create_ingredient,
    create_purchase,
    import_ingredients,
    list_ingredients,
    record_production,
    update_ingredient,
    upsert_sales_record,
    validate_ingredient,
)


def _ing(kitchen, name):
    return IngredientRepo(kitchen.db_path).get(kitchen.store_id, kitchen.ing[name])


def test_validate_ingredient_rules():
    base = {"name": "Flour", "purchase_price": 25000, "purchase_unit": "20kg", "usage_unit": "g"}
    assert validate_ingredient(base)["conversion_factor"] == 20000
    assert validate_ingredient({**base, "purchase_unit": "bag"})["conversion_factor"] == 1.0
    for bad in ({"loss_rate": 1.0}, {"loss_rate": -0.1}, {"conversion_factor": 0},
                {"purchase_price": -1}, {"current_stock": -1}, {"name": ""}):
        with pytest.raises(ValidationError):
            validate_ingredient({**base, **bad})
    with pytest.raises(ValidationError):
        validate_ingredient({"name": "No units"})


def test_create_and_update_ingredient(kitchen):
    res = create_ingredient(kitchen.store_id, {"name": "Milk", "purchase_price": 3000, "purchase_unit": "1l",
                                               "usage_unit": "ml", "category": "Dairy"}, db_path=kitchen.db_path)
    assert res["conversion_factor"] == 1000

    row = update_ingredient(kitchen.store_id, res["ingredient_id"], {"purchase_price": 3200}, db_path=kitchen.db_path)
    assert row["purchase_price"] == 3200
    assert row["category_id"] is not None

    with pytest.raises(ValidationError):
        update_ingredient(kitchen.store_id, res["ingredient_id"], {"loss_rate": 2}, db_path=kitchen.db_path)
    with pytest.raises(NotFoundError):
        update_ingredient(kitchen.store_id, "ghost", {"purchase_price": 1}, db_path=kitchen.db_path)

    names = [i["name"] for i in list_ingredients(kitchen.store_id, db_path=kitchen.db_path)]
    assert names == sorted(names)
    assert "Milk" in names


def test_adjust_stock_signs(kitchen):
    spoil = adjust_stock(kitchen.store_id, kitchen.ing["Pork"], 1.5, "spoilage", "freezer", db_path=kitchen.db_path)
    assert spoil["delta"] == -1.5
    assert spoil["current_stock"] == 8.5

    bought = adjust_stock(kitchen.store_id, kitchen.ing["Pork"], -2, "purchase", db_path=kitchen.db_path)
    assert bought["delta"] == 2

    fixed = adjust_stock(kitchen.store_id, kitchen.ing["Pork"], -0.5, "correction", db_path=kitchen.db_path)
    assert fixed["current_stock"] == 10

    logs = StockLogRepo(kitchen.db_path).history(kitchen.store_id, kitchen.ing["Pork"])
    assert sorted(log["adjustment_type"] for log in logs) == ["correction", "purchase", "spoilage"]

    with pytest.raises(ValidationError):
        adjust_stock(kitchen.store_id, kitchen.ing["Pork"], 1, "order", db_path=kitchen.db_path)
    with pytest.raises(NotFoundError):
        adjust_stock(kitchen.store_id, "ghost", 1, "spoilage", db_path=kitchen.db_path)


def test_create_purchase_updates_stock_price_and_expense(kitchen):
    res = create_purchase(
        kitchen.store_id, "Mercado Central",
        [{"ingredient_id": kitchen.ing["Pork"], "quantity": 5, "price": 11000},
         {"ingredient_id": kitchen.ing["Onion"], "quantity": 2, "price": 5500}],
        "2026-03-05",
        db_path=kitchen.db_path,
    )
    assert res["total_amount"] == 5 * 11000 + 2 * 5500
    pork = _ing(kitchen, "Pork")
    assert pork["current_stock"] == 15
    assert pork["purchase_price"] == 11000

    expenses = ExpenseRepo(kitchen.db_path).between(kitchen.store_id, "2026-03-01", "2026-03-31")
    assert len(expenses) == 1
    assert expenses[0]["amount"] == res["total_amount"]
    assert expenses[0]["category_name"] == DEFAULTS.purchase_expense_category


def test_purchase_with_unknown_ingredient_rolls_back(kitchen):
    with pytest.raises(NotFoundError):
        create_purchase(kitchen.store_id, None,
                        [{"ingredient_id": kitchen.ing["Pork"], "quantity": 1, "price": 100},
                         {"ingredient_id": "ghost", "quantity": 1, "price": 100}],
                        db_path=kitchen.db_path)
    assert _ing(kitchen, "Pork")["current_stock"] == 10
    with pytest.raises(ValidationError):
        create_purchase(kitchen.store_id, None, [], db_path=kitchen.db_path)


def test_record_production_floors_at_zero(kitchen):
    res = record_production(kitchen.store_id, kitchen.base, 10, db_path=kitchen.db_path)
    # 10 x (Pork 100 g, Onion 50 g)
    assert isclose(res["consumed"][kitchen.ing["Pork"]], -1.0)
    assert isclose(_ing(kitchen, "Onion")["current_stock"], 4 - 0.1)

    record_production(kitchen.store_id, kitchen.base, 1000, db_path=kitchen.db_path)
    assert _ing(kitchen, "Pork")["current_stock"] == 0

    logs = StockLogRepo(kitchen.db_path).history(kitchen.store_id, kitchen.ing["Pork"], types=["correction"])
    assert len(logs) == 2

    with pytest.raises(ValidationError):
        record_production(kitchen.store_id, kitchen.base, 0, db_path=kitchen.db_path)


def test_add_expense_and_sales_record(kitchen):
    res = add_expense(kitchen.store_id, "Rent", 2_000_000, "2026-03-01", is_fixed=True, db_path=kitchen.db_path)
    assert res["amount"] == 2_000_000
    with pytest.raises(ValidationError):
        add_expense(kitchen.store_id, "Rent", -1, db_path=kitchen.db_path)

    SalesRecordRepo(kitchen.db_path).add_to_day(kitchen.store_id, "2026-03-02", 10000, 3500)
    row = upsert_sales_record(kitchen.store_id, "2026-03-02", 12000, db_path=kitchen.db_path)
    assert row["daily_revenue"] == 12000
    assert row["daily_cogs"] == 3500

    with pytest.raises(ValidationError):
        upsert_sales_record(kitchen.store_id, "02/03/2026", 100, db_path=kitchen.db_path)


def test_import_ingredients_updates_existing(kitchen, tmp_path):
    path = tmp_path / "ingredients.xlsx"
    pd.DataFrame({
        "Ingredient": ["pork", "Garlic"],
        "Price": ["13000", "8000"],
        "Purchase Unit": ["1kg", "1kg"],
        "Usage Unit": ["g", "g"],
        "Category": ["Meat", "Veg"],
    }).to_excel(path, index=False)

    res = import_ingredients(kitchen.store_id, str(path), db_path=kitchen.db_path)
    assert res["inserted"] == 1
    assert res["updated"] == 1
    assert _ing(kitchen, "Pork")["purchase_price"] == 13000
    garlic = IngredientRepo(kitchen.db_path).find_by_name(kitchen.store_id, "garlic")
    assert garlic["conversion_factor"] == 1000


def test_failed_update_leaves_no_category(kitchen):
    with pytest.raises(NotFoundError):
        update_ingredient(kitchen.store_id, "ghost", {"category": "Seafood"}, db_path=kitchen.db_path)
    assert "Seafood" not in CategoryRepo(kitchen.db_path).names_by_id(kitchen.store_id).values()
