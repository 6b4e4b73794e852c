"""
Leitura de planilhas de insumos e fichas técnicas (CSV e XLSX).
"""

from math import isclose

import pandas as pd

from menucost.adapters.loaders import _normalize_columns, _INGREDIENT_ALIASES, load_ingredients, load_recipe_components


def test_normalize_columns_accents_and_synonyms():
    df = pd.DataFrame({"Insumo": ["Farinha"], "Preço Compra": ["25000"], "Fator Conversão": ["20000"]})
    cols = list(_normalize_columns(df, _INGREDIENT_ALIASES).columns)
    assert cols == ["name", "purchase_price", "conversion_factor"]


def test_load_ingredients_csv(tmp_path):
    path = tmp_path / "ingredients.csv"
    pd.DataFrame({
        "Ingredient": ["Flour", "Pork", None],
        "Category": ["Dry", None, None],
        "Price": ["25,000", "12000", None],
        "Purchase Unit": ["20kg", "1kg", None],
        "Usage Unit": ["g", "gr", None],
        "Loss": ["2%", "0", None],
        "Stock": ["3", None, None],
    }).to_csv(path, index=False)

    rows = load_ingredients(str(path))
    assert len(rows) == 2
    flour, pork = rows
    assert flour["name"] == "Flour"
    assert flour["category"] == "Dry"
    assert flour["purchase_price"] == 25000
    assert flour["purchase_unit"] == "20kg"
    assert flour["usage_unit"] == "g"
    assert isclose(flour["loss_rate"], 0.02)
    assert flour["current_stock"] == 3
    assert flour["conversion_factor"] is None
    assert pork["usage_unit"] == "g"
    assert pork["loss_rate"] == 0
    assert pork["current_stock"] is None


def test_load_ingredients_xlsx(tmp_path):
    path = tmp_path / "ingredients.xlsx"
    pd.DataFrame({
        "Nome": ["Cebola"],
        "Preço": ["5000"],
        "Unidade Compra": ["5kg"],
        "Unidade Uso": ["g"],
        "Perda": ["5"],
    }).to_excel(path, index=False)

    rows = load_ingredients(str(path))
    assert rows[0]["name"] == "Cebola"
    assert rows[0]["purchase_price"] == 5000
    assert isclose(rows[0]["loss_rate"], 0.05)


def test_load_recipe_components_carries_recipe_name(tmp_path):
    path = tmp_path / "recipes.csv"
    pd.DataFrame({
        "Recipe": ["Dumplings", None, "Stew Base"],
        "Type": ["Menu", None, "prep"],
        "Price": ["6000", None, None],
        "Component": ["Flour", "Pork", "Pork"],
        "Qty": ["45", "50", "100"],
    }).to_csv(path, index=False)

    rows = load_recipe_components(str(path))
    assert [r["recipe"] for r in rows] == ["Dumplings", "Dumplings", "Stew Base"]
    assert rows[0]["recipe_type"] == "menu"
    assert rows[0]["selling_price"] == 6000
    assert rows[1]["recipe_type"] is None
    assert rows[1]["component"] == "Pork"
    assert rows[1]["quantity"] == 50
    assert rows[2]["recipe_type"] == "prep"
