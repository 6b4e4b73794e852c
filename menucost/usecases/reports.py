# menucost/usecases/reports.py
"""
Relatórios gerenciais:
- engenharia de cardápio (matriz volume x margem)
- simulação de lucro (what-if de volume, preço e custo)
- ponto de equilíbrio
- painel mensal (receita, CMV, despesas, lucro)
- perdas de estoque (consumo teórico x descarte)
- previsão de compras e esgotamento
- oportunidades de economia por fornecedor

Todos os relatórios devolvem dicionários prontos para JSON; nenhuma
divisão produz NaN ou exceção (ver `safe_div`).
"""

from __future__ import annotations

import calendar
import sqlite3
from collections import defaultdict
from dataclasses import asdict
from datetime import date, datetime, timedelta
from math import ceil
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from menucost.config import DB_PATH, DEFAULTS
from menucost.domain.bom import explode_usage
from menucost.domain.errors import CyclicCompositionError, ValidationError
from menucost.domain.formulas import (
    break_even,
    days_remaining,
    round_half_up,
    safe_div,
    safety_stock,
    simulate_profit,
    z_from_service_level,
)
from menucost.domain.policies import build_menu_performance
from menucost.infra.migrations import apply_migrations
from menucost.infra.views import create_views
from menucost.infra.repositories import (
    CategoryRepo,
    IngredientRepo,
    OrderRepo,
    PurchaseRepo,
    SalesRecordRepo,
    StockLogRepo,
    StoreRepo,
    load_cost_catalog,
)
from menucost.infra.logger import (
    log_costing, log_database_operation, log_system_event,
)
from menucost.usecases.recipe_cost import overhead_dict, resolve_with_warnings, store_overhead


# ----------------------
# util
# ----------------------

def prepare_database(db_path: str = DB_PATH) -> None:
    """Aplica migrações e (re)cria as views."""
    apply_migrations(db_path)
    log_database_operation("migrations", "APPLY", 0)
    create_views(db_path)
    log_database_operation("views", "CREATE", 0)


def _month_bounds(month: Optional[str] = None) -> Tuple[str, str]:
    """Converte "YYYY-MM" (default: mês corrente) em (primeiro dia, último dia) ISO."""
    if month:
        y, m = (int(p) for p in month.split("-", 1))
    else:
        today = date.today()
        y, m = today.year, today.month
    last = calendar.monthrange(y, m)[1]
    return date(y, m, 1).isoformat(), date(y, m, last).isoformat()


def _since(now: Optional[datetime], days: int) -> str:
    now = now or datetime.now()
    return (now - timedelta(days=days)).isoformat(timespec="seconds")


def month_financials(store_id: str, month: Optional[str] = None, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Receita/CMV do mês a partir dos registros diários.

    Sem CMV registrado, a taxa de CMV cai no padrão (35%) e
    `cogs_estimated` fica True.
    """
    start, end = _month_bounds(month)
    rows = SalesRecordRepo(db_path).between(store_id, start, end)
    revenue = sum(float(r["daily_revenue"] or 0) for r in rows)
    cogs = sum(float(r["daily_cogs"] or 0) for r in rows)
    estimated = not (revenue > 0 and cogs > 0)
    rate = DEFAULTS.default_cogs_rate if estimated else safe_div(cogs, revenue) * 100.0
    return {"start": start, "end": end, "revenue": revenue, "cogs": cogs,
            "cogs_rate": rate, "cogs_estimated": estimated}


# ----------------------
# 1) Engenharia de cardápio
# ----------------------

def report_menu_performance(
    store_id: str,
    days: int = DEFAULTS.analysis_window_days,
    now: Optional[datetime] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Matriz de engenharia de cardápio.

    Retorna `data` (um registro por menu, ordenado por lucro total),
    `metrics` ({avg_volume, avg_margin}) calculadas sobre os menus com
    vendas na janela, e o rateio de custo fixo aplicado.
    """
    log_system_event("report_menu_performance_start", {"store_id": store_id, "days": days})
    store = StoreRepo(db_path).require(store_id)
    catalog = load_cost_catalog(db_path, store_id)

    menus = catalog.recipes("menu")
    costs: Dict[str, float] = {}
    warnings = 0
    skipped: List[str] = []
    for m in menus:
        try:
            res = resolve_with_warnings(catalog, m["id"])
        except CyclicCompositionError:
            skipped.append(m["id"])
            continue
        costs[m["id"]] = res.material_cost
        warnings += res.warning_count
    menus = [m for m in menus if m["id"] in costs]

    try:
        units = OrderRepo(db_path).sales_summary(store_id, days, now).units_by_item()
    except sqlite3.Error as e:
        log_costing("sales_unavailable", store_id, level="warning", error=str(e))
        units = {}
    allocation = store_overhead(store, days, now, db_path)

    records, metrics = build_menu_performance(
        menus, costs, units, allocation.per_unit, CategoryRepo(db_path).names_by_id(store_id)
    )
    log_system_event("report_menu", {"items": len(records), "method": allocation.method})
    return {
        "data": [asdict(r) for r in records],
        "metrics": asdict(metrics),
        "overhead": overhead_dict(allocation),
        "window_days": days,
        "warning_count": warnings,
        "skipped": skipped,
    }


# ----------------------
# 2) Simulação de lucro
# ----------------------

def report_profit_simulation(
    store_id: str,
    vol_adj: float = 0.0,
    price_adj: float = 0.0,
    cost_adj: float = 0.0,
    month: Optional[str] = None,
    base_revenue: Optional[float] = None,
    variable_expense_rate: float = DEFAULTS.default_variable_expense_rate,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Simulação what-if sobre a receita do mês (ou `base_revenue` informada)."""
    store = StoreRepo(db_path).require(store_id)
    fin = month_financials(store_id, month, db_path)
    base = fin["revenue"] if base_revenue is None else float(base_revenue)
    fixed = float(store.get("monthly_fixed_cost") or 0.0)
    args = dict(
        base_revenue=base,
        cogs_rate=fin["cogs_rate"],
        fixed_cost=fixed,
        variable_expense_rate=variable_expense_rate,
    )
    result = {
        "base": {**fin, "base_revenue": base, "fixed_cost": fixed,
                 "variable_expense_rate": variable_expense_rate},
        "adjustments": {"vol_adj": vol_adj, "price_adj": price_adj, "cost_adj": cost_adj},
        "current": asdict(simulate_profit(**args)),
        "simulated": asdict(simulate_profit(**args, vol_adj=vol_adj, price_adj=price_adj, cost_adj=cost_adj)),
    }
    result["profit_delta"] = result["simulated"]["operating_profit"] - result["current"]["operating_profit"]
    return result


# ----------------------
# 3) Ponto de equilíbrio
# ----------------------

def report_break_even(
    store_id: str,
    target_profit: float = 0.0,
    avg_ticket_price: Optional[float] = None,
    margin_rate_pct: Optional[float] = None,
    month: Optional[str] = None,
    operating_days: int = DEFAULTS.operating_days,
    variable_expense_rate: float = DEFAULTS.default_variable_expense_rate,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Vendas mensais necessárias para cobrir o custo fixo (+ lucro alvo).

    Sem `margin_rate_pct`, usa a margem de contribuição do mês:
    100 - taxa de CMV - taxa de despesas variáveis.
    """
    store = StoreRepo(db_path).require(store_id)
    fin = month_financials(store_id, month, db_path)
    if margin_rate_pct is None:
        margin_rate_pct = max(0.0, 100.0 - fin["cogs_rate"] - variable_expense_rate)
    if avg_ticket_price is None:
        avg_ticket_price = OrderRepo(db_path).average_ticket(store_id, fin["start"], fin["end"])
    fixed = float(store.get("monthly_fixed_cost") or 0.0)
    out = break_even(fixed, margin_rate_pct, target_profit, operating_days, avg_ticket_price)
    out.update({
        "fixed_cost": fixed,
        "margin_rate": margin_rate_pct,
        "target_profit": float(target_profit or 0.0),
        "avg_ticket_price": avg_ticket_price,
        "operating_days": operating_days,
        "current_revenue": fin["revenue"],
        "progress_rate": safe_div(fin["revenue"], out["required_sales"]) * 100.0,
    })
    return out


# ----------------------
# 4) Painel mensal
# ----------------------

def report_dashboard(store_id: str, months: int = 6, today: Optional[date] = None,
                     db_path: str = DB_PATH) -> Dict[str, Any]:
    """Série mensal de receita, CMV, despesas e lucro + resumo do mês corrente."""
    StoreRepo(db_path).require(store_id)
    today = today or date.today()
    periods = pd.period_range(end=pd.Period(today.strftime("%Y-%m"), freq="M"), periods=max(1, int(months)), freq="M")
    start = periods[0].start_time.date().isoformat()
    end = periods[-1].end_time.date().isoformat()

    rows = {r["month"]: r for r in SalesRecordRepo(db_path).monthly_financials(store_id, start, end)}
    log_database_operation("vw_daily_financials", "SELECT_MONTHLY", len(rows))

    series: List[Dict[str, Any]] = []
    for p in periods:
        key = p.strftime("%Y-%m")
        r = rows.get(key, {})
        revenue = float(r.get("revenue") or 0.0)
        cogs = float(r.get("cogs") or 0.0)
        expenses = float(r.get("expenses") or 0.0)
        series.append({
            "month": key, "revenue": revenue, "cogs": cogs, "expenses": expenses,
            "profit": revenue - cogs - expenses,
        })

    cur = dict(series[-1])
    cur["cogs_estimated"] = False
    if cur["cogs"] == 0 and cur["revenue"] > 0:
        cur["cogs"] = cur["revenue"] * DEFAULTS.default_cogs_rate / 100.0
        cur["cogs_estimated"] = True
        cur["profit"] = cur["revenue"] - cur["cogs"] - cur["expenses"]
    cur["profit_rate"] = safe_div(cur["profit"], cur["revenue"]) * 100.0

    ingredients = IngredientRepo(db_path).get_all(store_id)
    low = [
        i["name"] for i in ingredients
        if float(i.get("safety_stock") or 0) > 0
        and float(i.get("current_stock") or 0) <= float(i.get("safety_stock") or 0)
    ]
    return {
        "series": series,
        "current": cur,
        "stock_value": SalesRecordRepo(db_path).stock_value(store_id),
        "low_stock": low,
    }


# ----------------------
# 5) Perdas de estoque
# ----------------------

def report_inventory_loss(
    store_id: str,
    days: int = DEFAULTS.analysis_window_days,
    now: Optional[datetime] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Consumo teórico (vendas x ficha técnica) comparado ao descarte registrado.

    `theoretical_usage` em unidade de uso; `loss_quantity` em unidade de
    compra; `loss_rate` = descarte / (teórico + descarte), em unidade de uso.
    """
    since = _since(now, days)
    catalog = load_cost_catalog(db_path, store_id)

    theoretical: Dict[str, float] = defaultdict(float)
    for sale in OrderRepo(db_path).sold_units(store_id, since):
        if catalog.get_recipe(sale["menu_id"]) is None:
            continue
        try:
            usage = explode_usage(catalog, sale["menu_id"], float(sale["quantity"]))
        except CyclicCompositionError as e:
            log_costing("cycle", sale["menu_id"], level="error", path=e.path)
            continue
        for ing_id, qty in usage.items():
            theoretical[ing_id] += qty

    losses: Dict[str, float] = defaultdict(float)
    for log in StockLogRepo(db_path).history(store_id, since=since, types=["spoilage"]):
        losses[log["ingredient_id"]] += abs(float(log["quantity"]))

    rows: List[Dict[str, Any]] = []
    for ing in catalog.ingredients():
        t_usage = theoretical.get(ing["id"], 0.0)
        loss_qty = losses.get(ing["id"], 0.0)
        if t_usage <= 0 and loss_qty <= 0:
            continue
        loss_usage = loss_qty * float(ing.get("conversion_factor") or 1.0)
        actual = t_usage + loss_usage
        rows.append({
            "ingredient_id": ing["id"],
            "name": ing["name"],
            "usage_unit": ing.get("usage_unit"),
            "theoretical_usage": t_usage,
            "actual_usage": actual,
            "loss_quantity": loss_qty,
            "loss_rate": safe_div(loss_usage, actual) * 100.0,
            "loss_value": loss_qty * float(ing.get("purchase_price") or 0.0),
        })
    rows.sort(key=lambda r: r["loss_value"], reverse=True)
    return {"data": rows, "window_days": days, "total_loss_value": sum(r["loss_value"] for r in rows)}


def report_predictive_depletion(
    store_id: str,
    now: Optional[datetime] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """Insumos que devem esgotar em menos de uma semana pelo consumo recente.

    Consumo diário = uso real (teórico + descarte) da janela curta / dias,
    convertido para unidade de compra.
    """
    days = DEFAULTS.depletion_window_days
    usage = {r["ingredient_id"]: r for r in report_inventory_loss(store_id, days, now, db_path)["data"]}
    out: List[Dict[str, Any]] = []
    for ing in IngredientRepo(db_path).get_all(store_id):
        r = usage.get(ing["id"])
        daily_usage_unit = safe_div(r["actual_usage"], days) if r else 0.0
        daily = safe_div(daily_usage_unit, ing.get("conversion_factor") or 1.0)
        stock = float(ing.get("current_stock") or 0.0)
        if daily > 0:
            left = stock / daily
        else:
            left = 999.0 if stock > 0 else 0.0
        if left < DEFAULTS.reorder_horizon_days:
            out.append({
                "ingredient_id": ing["id"],
                "name": ing["name"],
                "current_stock": stock,
                "usage_per_day": round(daily, 2),
                "days_left": round_half_up(left),
                "unit": ing.get("purchase_unit"),
            })
    out.sort(key=lambda r: r["days_left"])
    return out


# ----------------------
# 6) Previsão de compras
# ----------------------

def report_procurement_forecast(
    store_id: str,
    window_days: int = DEFAULTS.forecast_window_days,
    now: Optional[datetime] = None,
    service_level: float = DEFAULTS.service_level,
    lead_time_days: float = DEFAULTS.lead_time_days,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Consumo médio diário, dias restantes e quantidade sugerida de compra.

    Consumo = soma dos ajustes negativos (pedidos, descarte, produção) na
    janela, em unidade de compra. Com menos de `reorder_horizon_days` de
    cobertura, sugere comprar o suficiente para `cover_days` dias mais o
    estoque de segurança cadastrado. `statistical_safety_stock` traz
    z * sigma_d * sqrt(L) pela variabilidade diária observada.
    """
    if window_days <= 0:
        raise ValidationError(f"window_days must be positive, got {window_days}")
    now = now or datetime.now()
    since = _since(now, window_days)
    logs = StockLogRepo(db_path).history(store_id, since=since)
    z = z_from_service_level(service_level)

    totals: Dict[str, float] = {}
    sigmas: Dict[str, float] = {}
    df = pd.DataFrame(logs, columns=["ingredient_id", "quantity", "created_at"])
    df = df[df["quantity"].astype(float) < 0]
    if not df.empty:
        df = df.assign(day=df["created_at"].str[:10], used=df["quantity"].astype(float).abs())
        daily = df.pivot_table(index="day", columns="ingredient_id", values="used", aggfunc="sum")
        days_idx = pd.date_range(end=now.date(), periods=window_days, freq="D").strftime("%Y-%m-%d")
        daily = daily.reindex(days_idx, fill_value=0.0).fillna(0.0)
        totals = df.groupby("ingredient_id")["used"].sum().to_dict()
        sigmas = daily.std(ddof=0).to_dict()

    rows: List[Dict[str, Any]] = []
    for ing in IngredientRepo(db_path).get_all(store_id):
        stock = float(ing.get("current_stock") or 0.0)
        safety = float(ing.get("safety_stock") or 0.0)
        avg = safe_div(totals.get(ing["id"], 0.0), window_days)
        left = days_remaining(stock, avg)
        suggested = 0
        if left is not None and left < DEFAULTS.reorder_horizon_days:
            suggested = ceil(max(0.0, avg * DEFAULTS.cover_days + safety - stock))
        rows.append({
            "ingredient_id": ing["id"],
            "name": ing["name"],
            "current_stock": stock,
            "safety_stock": safety,
            "avg_daily_usage": avg,
            "days_remaining": left,
            "suggested_purchase_qty": suggested,
            "statistical_safety_stock": safety_stock(z, sigmas.get(ing["id"], 0.0), lead_time_days),
            "unit": ing.get("purchase_unit") or "ea",
        })
    rows.sort(key=lambda r: (r["days_remaining"] is None, r["days_remaining"] or 0.0))
    critical = sum(1 for r in rows if r["days_remaining"] is not None and r["days_remaining"] < DEFAULTS.reorder_horizon_days)
    return {"data": rows, "critical": critical, "window_days": window_days, "service_level": service_level}


# ----------------------
# 7) Fornecedores
# ----------------------

def report_sourcing(store_id: str, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Preço médio por fornecedor; lista insumos com diferença entre o melhor e o pior."""
    hist = PurchaseRepo(db_path).price_history(store_id)
    if not hist:
        return []
    df = pd.DataFrame(hist)
    df["name"] = df["name"].fillna("Unknown")
    avg = df.groupby(["ingredient_id", "name", "supplier_name"], as_index=False)["price"].mean()

    out: List[Dict[str, Any]] = []
    for (ing_id, name), grp in avg.groupby(["ingredient_id", "name"]):
        if len(grp) < 2:
            continue
        grp = grp.sort_values("price")
        best, worst = grp.iloc[0], grp.iloc[-1]
        saving = float(worst["price"] - best["price"])
        if saving <= 0:
            continue
        out.append({
            "ingredient_id": ing_id,
            "name": name,
            "best_supplier": best["supplier_name"],
            "best_price": round_half_up(best["price"]),
            "worst_supplier": worst["supplier_name"],
            "worst_price": round_half_up(worst["price"]),
            "saving_per_unit": round_half_up(saving),
            "saving_percent": round_half_up(safe_div(saving, worst["price"]) * 100.0),
        })
    out.sort(key=lambda r: r["saving_per_unit"], reverse=True)
    return out
