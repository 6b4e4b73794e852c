# menucost/usecases/recipe_cost.py
"""
UC: Custo de uma receita (árvore BOM + rateio de custo fixo + margem).
"""
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

from menucost.config import DB_PATH, DEFAULTS
from menucost.domain.bom import CostCatalog, resolve_recipe_cost
from menucost.domain.errors import AllocationUnavailable, CyclicCompositionError
from menucost.domain.formulas import cost_rate, margin, margin_rate, safe_div
from menucost.domain.models import METHOD_NOT_CONFIGURED, CostResolution, OverheadAllocation
from menucost.domain.overhead import allocate_overhead
from menucost.infra.repositories import OrderRepo, StoreRepo, load_cost_catalog
from menucost.infra.logger import log_costing, log_system_event


def resolve_with_warnings(catalog: CostCatalog, recipe_id: str) -> CostResolution:
    """Resolve a árvore de custos e registra cada referência omitida como aviso."""
    try:
        resolution = resolve_recipe_cost(catalog, recipe_id, DEFAULTS.min_yield)
    except CyclicCompositionError as e:
        log_costing("cycle", recipe_id, level="error", path=e.path)
        raise
    for item_type, item_id in resolution.missing:
        log_costing("missing_reference", recipe_id, level="warning", item_type=item_type, item_id=item_id)
    return resolution


def store_overhead(
    store: Dict[str, Any],
    window_days: int = DEFAULTS.analysis_window_days,
    now: Optional[datetime] = None,
    db_path: str = DB_PATH,
) -> OverheadAllocation:
    """Rateio por unidade da loja, ponderado pelas vendas da janela quando houver."""
    order_repo = OrderRepo(db_path)

    def lookup() -> float:
        try:
            return order_repo.sales_summary(store["id"], window_days, now).total_units_sold
        except sqlite3.Error as e:
            log_costing("overhead_fallback", store["id"], level="warning", error=str(e))
            raise AllocationUnavailable(str(e)) from e

    return allocate_overhead(
        store.get("monthly_fixed_cost"),
        store.get("monthly_target_sales_count"),
        sales_lookup=lookup,
    )


def overhead_dict(allocation: OverheadAllocation) -> Dict[str, Any]:
    return {
        "per_unit": allocation.per_unit,
        "method": allocation.method,
        "configured": allocation.is_configured,
        "weighted": allocation.is_weighted,
        "denominator": allocation.denominator,
    }


def run_recipe_cost(
    store_id: str,
    recipe_id: str,
    window_days: int = DEFAULTS.analysis_window_days,
    now: Optional[datetime] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Calcula custo de material, rateio de custo fixo e margem de uma receita.

    Para itens 'prep' não há rateio (não são vendidos); `batch_unit_cost`
    traz o custo por unidade de rendimento.
    """
    log_system_event("recipe_cost_start", {"store_id": store_id, "recipe_id": recipe_id})
    try:
        store = StoreRepo(db_path).require(store_id)
        catalog = load_cost_catalog(db_path, store_id)
        res = resolve_with_warnings(catalog, recipe_id)
        recipe = catalog.get_recipe(recipe_id)

        if res.recipe_type == "menu":
            allocation = store_overhead(store, window_days, now, db_path)
        else:
            allocation = OverheadAllocation(0.0, METHOD_NOT_CONFIGURED)

        price = recipe.get("selling_price")
        total_cost = res.material_cost + allocation.per_unit
        mg = margin(price, total_cost)
        result = {
            "recipe_id": recipe_id,
            "name": res.name,
            "type": res.recipe_type,
            "selling_price": float(price or 0.0),
            "tree": [i.to_dict() for i in res.items],
            "material_cost": res.material_cost,
            "batch_unit_cost": safe_div(res.material_cost, recipe.get("batch_size") or 1.0),
            "overhead": overhead_dict(allocation),
            "total_cost": total_cost,
            "margin": mg,
            "margin_rate": margin_rate(price, mg),
            "cost_rate": cost_rate(price, total_cost),
            "target_cost_rate": recipe.get("target_cost_rate"),
            "warning_count": res.warning_count,
            "missing": [{"item_type": t, "item_id": i} for t, i in res.missing],
        }
        log_costing(
            "resolved", recipe_id,
            material_cost=res.material_cost, overhead_method=allocation.method,
            warning_count=res.warning_count,
        )
        return result
    except Exception as e:
        log_system_event("recipe_cost_error", {"recipe_id": recipe_id, "error": str(e)}, level="error")
        raise
