# menucost/usecases/stock.py
"""
UC: Insumos, estoque e compras.

- cadastro/importação de insumos (com validação de fator e perda)
- ajuste manual de estoque (compra avulsa, descarte, correção)
- compras: entrada de estoque, último preço pago e despesa automática
- produção de preps: baixa dos insumos consumidos
- despesas e lançamento manual de vendas do dia

Estoque é sempre mantido em unidade de compra; consumo de receitas
(unidade de uso) é convertido por `uso / conversion_factor`.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from menucost.config import DB_PATH, DEFAULTS
from menucost.adapters.loaders import load_ingredients
from menucost.adapters.parsers import suggest_conversion_factor
from menucost.domain.bom import explode_usage
from menucost.domain.errors import NotFoundError, ValidationError
from menucost.domain.formulas import safe_div
from menucost.domain.models import MANUAL_ADJUSTMENT_TYPES
from menucost.infra.db import connect
from menucost.infra.repositories import (
    CategoryRepo,
    ExpenseRepo,
    IngredientRepo,
    PurchaseRepo,
    SalesRecordRepo,
    StockLogRepo,
    StoreRepo,
    _as_dict,
    load_cost_catalog,
)
from menucost.infra.logger import (
    log_database_operation, log_file_operation, log_stock,
    log_system_event, log_transaction, print_system,
)


# ----------------------
# insumos
# ----------------------

def validate_ingredient(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Valida/normaliza os campos de um insumo.

    - purchase_price >= 0
    - conversion_factor > 0 (sugerido a partir das unidades quando ausente)
    - 0 <= loss_rate < 1
    """
    out = {k: v for k, v in fields.items() if v is not None}
    if not partial or "name" in out:
        if not str(out.get("name") or "").strip():
            raise ValidationError("ingredient name is required")
        out["name"] = str(out["name"]).strip()
    if not partial:
        for k in ("purchase_unit", "usage_unit"):
            if not out.get(k):
                raise ValidationError(f"{k} is required")
        if out.get("conversion_factor") is None:
            suggested = suggest_conversion_factor(out["purchase_unit"], out["usage_unit"])
            out["conversion_factor"] = suggested if suggested is not None else 1.0
    if "purchase_price" in out and float(out["purchase_price"]) < 0:
        raise ValidationError("purchase_price must not be negative")
    if "conversion_factor" in out and float(out["conversion_factor"]) <= 0:
        raise ValidationError("conversion_factor must be positive")
    if "loss_rate" in out:
        loss = float(out["loss_rate"])
        if not (0.0 <= loss < 1.0):
            raise ValidationError(f"loss_rate must be in [0, 1), got {loss}")
    for k in ("current_stock", "safety_stock"):
        if k in out and float(out[k]) < 0:
            raise ValidationError(f"{k} must not be negative")
    return out


def _with_category(store_id: str, fields: Dict[str, Any], db_path: str, conn=None) -> Dict[str, Any]:
    cat = fields.pop("category", None)
    if cat and not fields.get("category_id"):
        fields["category_id"] = CategoryRepo(db_path).get_or_create(store_id, cat, "ingredient", conn=conn)
    return fields


def create_ingredient(store_id: str, ingredient: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    fields = _as_dict(ingredient)
    fields.pop("id", None)
    fields.pop("store_id", None)
    try:
        fields = validate_ingredient(fields)
        with connect(db_path) as c:
            StoreRepo(db_path).require(store_id, conn=c)
            fields = _with_category(store_id, fields, db_path, conn=c)
            ing_id = IngredientRepo(db_path).insert(store_id, fields, conn=c)
    except Exception as e:
        log_transaction("create_ingredient", {"store_id": store_id, "name": fields.get("name")}, error=str(e))
        raise
    log_database_operation("ingredients", "INSERT", 1, ingredient_id=ing_id)
    log_transaction("create_ingredient", {"store_id": store_id, "name": fields["name"]}, result=ing_id)
    return {"ingredient_id": ing_id, "name": fields["name"], "conversion_factor": fields["conversion_factor"]}


def update_ingredient(store_id: str, ingredient_id: str, changes: Dict[str, Any], db_path: str = DB_PATH) -> Dict[str, Any]:
    fields = validate_ingredient(dict(changes), partial=True)
    repo = IngredientRepo(db_path)
    with connect(db_path) as c:
        if repo.get(store_id, ingredient_id, conn=c) is None:
            raise NotFoundError("ingredient", ingredient_id)
        fields = _with_category(store_id, fields, db_path, conn=c)
        repo.update(store_id, ingredient_id, fields, conn=c)
    log_database_operation("ingredients", "UPDATE", 1, ingredient_id=ingredient_id, fields=list(fields))
    return repo.get(store_id, ingredient_id)


def list_ingredients(store_id: str, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return IngredientRepo(db_path).get_all(store_id)


def import_ingredients(store_id: str, path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Importa insumos de planilha; nomes já cadastrados são atualizados."""
    log_system_event("import_ingredients_start", {"store_id": store_id, "file_path": path})
    log_file_operation("import", path)
    try:
        rows = load_ingredients(path)
        log_file_operation("import", path, rows_processed=len(rows))
        StoreRepo(db_path).require(store_id)
        repo = IngredientRepo(db_path)

        inserted = updated = 0
        with connect(db_path) as c:
            for row in rows:
                fields = _with_category(store_id, dict(row), db_path, conn=c)
                existing = repo.find_by_name(store_id, fields["name"], conn=c)
                if existing:
                    repo.update(store_id, existing["id"], validate_ingredient(fields, partial=True), conn=c)
                    updated += 1
                else:
                    repo.insert(store_id, validate_ingredient(fields), conn=c)
                    inserted += 1
        log_database_operation("ingredients", "UPSERT", inserted + updated, file_path=path)
        print_system(f">> {inserted} insumos inseridos, {updated} atualizados.")
        result = {"file": path, "inserted": inserted, "updated": updated}
        log_transaction("import_ingredients", {"file": path, "rows_count": len(rows)}, result=result)
        return result
    except Exception as e:
        log_transaction("import_ingredients", {"file": path}, error=str(e))
        log_system_event("import_ingredients_error", {"file_path": path, "error": str(e)}, level="error")
        raise


# ----------------------
# ajustes de estoque
# ----------------------

def adjust_stock(
    store_id: str,
    ingredient_id: str,
    amount: float,
    adjustment_type: str,
    reason: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Ajuste manual (unidade de compra).

    - purchase:   soma |amount|
    - spoilage:   subtrai |amount| (sempre negativo)
    - correction: soma `amount` com o sinal informado
    """
    if adjustment_type not in MANUAL_ADJUSTMENT_TYPES:
        raise ValidationError(f"adjustment_type must be one of {MANUAL_ADJUSTMENT_TYPES}, got {adjustment_type!r}")
    amount = float(amount)
    if amount == 0:
        raise ValidationError("amount must not be zero")
    if adjustment_type == "spoilage":
        delta = -abs(amount)
    elif adjustment_type == "purchase":
        delta = abs(amount)
    else:
        delta = amount

    repo = IngredientRepo(db_path)
    try:
        with connect(db_path) as c:
            ing = repo.get(store_id, ingredient_id, conn=c)
            if ing is None:
                raise NotFoundError("ingredient", ingredient_id)
            new_stock = repo.add_stock(c, ingredient_id, delta)
            StockLogRepo(db_path).insert(ingredient_id, adjustment_type, delta, reason, conn=c)
    except Exception as e:
        log_transaction("adjust_stock", {"ingredient_id": ingredient_id, "type": adjustment_type}, error=str(e))
        raise
    log_stock(adjustment_type, ingredient_id, delta, reason=reason, current_stock=new_stock)
    return {"ingredient_id": ingredient_id, "name": ing["name"], "delta": delta, "current_stock": new_stock}


# ----------------------
# compras
# ----------------------

def create_purchase(
    store_id: str,
    supplier_name: Optional[str],
    items: Iterable[Dict[str, Any]],
    purchase_date: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Registra uma compra.

    `items`: [{ingredient_id, quantity, price}] com preço por unidade de compra.
    Cada item soma ao estoque, atualiza o preço de compra do insumo para o
    último preço pago e gera um log 'purchase'. O total vira uma despesa na
    categoria de compras de insumos.
    """
    items = list(items)
    purchase_date = purchase_date or date.today().isoformat()
    log_system_event("create_purchase_start", {"store_id": store_id, "items": len(items)})
    try:
        if not items:
            raise ValidationError("a purchase needs at least one item")
        clean = []
        for it in items:
            qty = float(it.get("quantity") or 0)
            price = float(it.get("price") or 0)
            if qty <= 0:
                raise ValidationError(f"quantity must be positive, got {qty}")
            if price < 0:
                raise ValidationError("price must not be negative")
            clean.append({"ingredient_id": it.get("ingredient_id"), "quantity": qty, "price": price})
        total = sum(it["quantity"] * it["price"] for it in clean)

        ing_repo = IngredientRepo(db_path)
        log_repo = StockLogRepo(db_path)
        exp_repo = ExpenseRepo(db_path)
        pur_repo = PurchaseRepo(db_path)
        with connect(db_path) as c:
            StoreRepo(db_path).require(store_id, conn=c)
            for it in clean:
                if ing_repo.get(store_id, it["ingredient_id"], conn=c) is None:
                    raise NotFoundError("ingredient", it["ingredient_id"])
            purchase_id = pur_repo.insert(store_id, supplier_name, purchase_date, total, conn=c)
            pur_repo.insert_items(purchase_id, clean, conn=c)
            for it in clean:
                ing_repo.add_stock(c, it["ingredient_id"], it["quantity"])
                ing_repo.update(store_id, it["ingredient_id"], {"purchase_price": it["price"]}, conn=c)
                log_repo.insert(it["ingredient_id"], "purchase", it["quantity"], f"purchase {purchase_id}", conn=c)
            cat_id = exp_repo.category_id(store_id, DEFAULTS.purchase_expense_category, conn=c)
            memo = f"Purchase from {supplier_name}" if supplier_name else "Ingredient purchase"
            expense_id = exp_repo.insert(store_id, cat_id, total, purchase_date, memo, conn=c)

        for it in clean:
            log_stock("purchase", it["ingredient_id"], it["quantity"], purchase_id=purchase_id, price=it["price"])
        log_database_operation("purchases", "INSERT", 1, purchase_id=purchase_id, items=len(clean))
        result = {"purchase_id": purchase_id, "total_amount": total, "expense_id": expense_id, "items": len(clean)}
        log_transaction("create_purchase", {"store_id": store_id, "supplier": supplier_name}, result=result)
        return result
    except Exception as e:
        log_transaction("create_purchase", {"store_id": store_id, "supplier": supplier_name}, error=str(e))
        log_system_event("create_purchase_error", {"error": str(e)}, level="error")
        raise


# ----------------------
# produção de preps
# ----------------------

def record_production(store_id: str, recipe_id: str, quantity: float, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Baixa os insumos consumidos por `quantity` lotes de uma receita.

    O estoque resultante nunca fica negativo; cada baixa gera um log
    'correction'.
    """
    quantity = float(quantity)
    if quantity <= 0:
        raise ValidationError(f"quantity must be positive, got {quantity}")
    ing_repo = IngredientRepo(db_path)
    log_repo = StockLogRepo(db_path)
    try:
        with connect(db_path) as c:
            catalog = load_cost_catalog(db_path, store_id, conn=c)
            recipe = catalog.get_recipe(recipe_id)
            if recipe is None:
                raise NotFoundError("recipe", recipe_id)
            missing: List = []
            usage = explode_usage(catalog, recipe_id, quantity, missing)
            reason = f"production {recipe.get('name')} x{quantity:g}"
            consumed: Dict[str, float] = {}
            for ing_id, used in usage.items():
                ing = catalog.get_ingredient(ing_id)
                delta = -safe_div(used, ing.get("conversion_factor") or 1.0)
                ing_repo.add_stock(c, ing_id, delta, floor_zero=True)
                log_repo.insert(ing_id, "correction", delta, reason, conn=c)
                consumed[ing_id] = delta
    except Exception as e:
        log_transaction("record_production", {"recipe_id": recipe_id, "quantity": quantity}, error=str(e))
        raise
    for ing_id, delta in consumed.items():
        log_stock("correction", ing_id, delta, reason=reason)
    result = {"recipe_id": recipe_id, "quantity": quantity, "consumed": consumed, "warning_count": len(missing)}
    log_transaction("record_production", {"recipe_id": recipe_id, "quantity": quantity}, result=result)
    return result


# ----------------------
# despesas e vendas do dia
# ----------------------

def add_expense(
    store_id: str,
    category: str,
    amount: float,
    expense_date: Optional[str] = None,
    memo: Optional[str] = None,
    is_fixed: bool = False,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    amount = float(amount)
    if amount < 0:
        raise ValidationError("amount must not be negative")
    expense_date = expense_date or date.today().isoformat()
    repo = ExpenseRepo(db_path)
    with connect(db_path) as c:
        StoreRepo(db_path).require(store_id, conn=c)
        cat_id = repo.category_id(store_id, category, is_fixed, conn=c)
        eid = repo.insert(store_id, cat_id, amount, expense_date, memo, conn=c)
    log_database_operation("expense_records", "INSERT", 1, expense_id=eid, category=category)
    return {"expense_id": eid, "category": category, "amount": amount, "expense_date": expense_date}


def upsert_sales_record(
    store_id: str,
    sales_date: str,
    daily_revenue: float,
    memo: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Lança a receita do dia manualmente; o CMV já acumulado é mantido."""
    try:
        datetime.strptime(sales_date, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise ValidationError(f"sales_date must be YYYY-MM-DD, got {sales_date!r}")
    daily_revenue = float(daily_revenue)
    if daily_revenue < 0:
        raise ValidationError("daily_revenue must not be negative")
    repo = SalesRecordRepo(db_path)
    StoreRepo(db_path).require(store_id)
    repo.set_revenue(store_id, sales_date, daily_revenue, memo)
    log_database_operation("sales_records", "UPSERT", 1, sales_date=sales_date)
    return repo.get(store_id, sales_date)
