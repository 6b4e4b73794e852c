from types import SimpleNamespace

import pytest

from menucost.usecases.recipes import create_recipe
from menucost.usecases.reports import prepare_database
from menucost.usecases.stock import create_ingredient
from menucost.usecases.stores import create_store


# preço por unidade de compra; custo por grama = preço / fator / (1 - perda)
INGREDIENTS = [
    {"name": "Flour", "purchase_price": 25000, "purchase_unit": "20kg", "usage_unit": "g",
     "conversion_factor": 20000, "loss_rate": 0.02, "current_stock": 2},
    {"name": "Pork", "purchase_price": 12000, "purchase_unit": "1kg", "usage_unit": "g",
     "conversion_factor": 1000, "loss_rate": 0.0, "current_stock": 10, "safety_stock": 2},
    {"name": "Kimchi", "purchase_price": 30000, "purchase_unit": "10kg", "usage_unit": "g",
     "conversion_factor": 10000, "loss_rate": 0.0, "current_stock": 5},
    {"name": "Onion", "purchase_price": 5000, "purchase_unit": "5kg", "usage_unit": "g",
     "conversion_factor": 5000, "loss_rate": 0.0, "current_stock": 4},
]


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "menucost_test.sqlite")
    prepare_database(path)
    return path


@pytest.fixture
def kitchen(db_path):
    """Loja com 4 insumos, um prep e dois menus.

    Stew Base (prep)  = Pork 100 g (1200) + Onion 50 g (50)      -> 1250
    Kimchi Stew (menu) = Stew Base 1 (1250) + Kimchi 150 g (450) -> 1700
    Dumplings (menu)   = Flour 45 g (~57.40) + Pork 50 g (600)   -> ~657.40
    """
    store_id = create_store(
        {"name": "Loja Teste", "monthly_fixed_cost": 3_000_000, "monthly_target_sales_count": 1000},
        db_path=db_path,
    )["store_id"]
    ing = {
        row["name"]: create_ingredient(store_id, dict(row), db_path=db_path)["ingredient_id"]
        for row in INGREDIENTS
    }
    base = create_recipe(
        store_id,
        {"name": "Stew Base", "type": "prep", "batch_size": 1, "batch_unit": "ea"},
        [
            {"item_type": "ingredient", "item_id": ing["Pork"], "quantity": 100},
            {"item_type": "ingredient", "item_id": ing["Onion"], "quantity": 50},
        ],
        db_path=db_path,
    )["recipe_id"]
    stew = create_recipe(
        store_id,
        {"name": "Kimchi Stew", "type": "menu", "selling_price": 9000, "category": "Soups"},
        [
            {"item_type": "prep", "item_id": base, "quantity": 1},
            {"item_type": "ingredient", "item_id": ing["Kimchi"], "quantity": 150},
        ],
        db_path=db_path,
    )["recipe_id"]
    dumplings = create_recipe(
        store_id,
        {"name": "Dumplings", "type": "menu", "selling_price": 6000},
        [
            {"item_type": "ingredient", "item_id": ing["Flour"], "quantity": 45},
            {"item_type": "ingredient", "item_id": ing["Pork"], "quantity": 50},
        ],
        db_path=db_path,
    )["recipe_id"]
    return SimpleNamespace(
        db_path=db_path, store_id=store_id, ing=ing,
        base=base, stew=stew, dumplings=dumplings,
    )
