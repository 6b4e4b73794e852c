"""
Cost and profitability formulas.

These functions implement the arithmetic used throughout the costing
reports: ingredient unit cost after packaging conversion and waste,
margins, the what-if profit simulation, break-even sales and the
statistical safety stock used by the procurement forecast.

All functions are pure: they depend solely on their inputs and do
not modify any external state. Every ratio goes through ``safe_div``
so that a zero or absent denominator yields a defined neutral value
instead of an exception or NaN.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from math import ceil, sqrt
from typing import Dict, Optional, Union

from scipy.stats import norm

from menucost.domain.models import ProfitSimulation

Number = Union[int, float]


def _num(x: Optional[Number], default: float = 0.0) -> float:
    if x is None:
        return default
    try:
        v = float(x)
    except (TypeError, ValueError):
        return default
    if math.isnan(v):
        return default
    return v


def safe_div(num: Optional[Number], den: Optional[Number], default: float = 0.0) -> float:
    """Divide ``num`` by ``den``; a zero, absent or non-finite denominator yields ``default``."""
    d = _num(den)
    if d == 0.0 or math.isinf(d):
        return default
    return _num(num) / d


def round_half_up(x: Optional[Number]) -> float:
    """Round to the nearest integer, halves away from zero (currency display)."""
    return float(Decimal(str(_num(x))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ingredient_unit_cost(
    purchase_price: Optional[Number],
    conversion_factor: Optional[Number],
    loss_rate: Optional[Number],
    min_yield: float = 0.001,
) -> float:
    """Return the cost of one usage unit of an ingredient.

    ``(purchase_price / conversion_factor) / (1 - loss_rate)``

    A missing price counts as zero and a missing or zero conversion
    factor as one. Rows written before loss-rate validation existed may
    carry ``loss_rate >= 1``; for those the yield ``1 - loss_rate`` is
    floored at ``min_yield`` so the cost stays finite.
    """
    price = _num(purchase_price)
    factor = _num(conversion_factor, 1.0) or 1.0
    loss = _num(loss_rate)
    yield_ = 1.0 - loss
    if yield_ < min_yield:
        yield_ = min_yield
    return (price / factor) / yield_


def margin(selling_price: Optional[Number], total_cost: Optional[Number]) -> float:
    return _num(selling_price) - _num(total_cost)


def margin_rate(selling_price: Optional[Number], margin_value: Optional[Number]) -> float:
    """Margin as a percentage of the selling price; 0 when the price is zero or unset."""
    price = _num(selling_price)
    if price <= 0:
        return 0.0
    return _num(margin_value) / price * 100.0


def cost_rate(selling_price: Optional[Number], total_cost: Optional[Number]) -> float:
    price = _num(selling_price)
    if price <= 0:
        return 0.0
    return _num(total_cost) / price * 100.0


def simulate_profit(
    base_revenue: Number,
    cogs_rate: Number,
    fixed_cost: Number,
    variable_expense_rate: Number = 0.0,
    vol_adj: Number = 0.0,
    price_adj: Number = 0.0,
    cost_adj: Number = 0.0,
) -> ProfitSimulation:
    """What-if profit simulation.

    Rates and adjustments are percentages. Volume, price and cost
    adjustments are independent multiplicative factors:

        revenue   = base_revenue * (1 + price_adj) * (1 + vol_adj)
        cogs      = revenue * cogs_rate * (1 + cost_adj)
        gross     = revenue - cogs
        variable  = revenue * variable_expense_rate
        operating = gross - fixed_cost - variable
    """
    revenue = _num(base_revenue) * (1 + _num(price_adj) / 100.0) * (1 + _num(vol_adj) / 100.0)
    cogs = revenue * (_num(cogs_rate) / 100.0) * (1 + _num(cost_adj) / 100.0)
    gross_profit = revenue - cogs
    variable_expenses = revenue * (_num(variable_expense_rate) / 100.0)
    fixed = _num(fixed_cost)
    operating_profit = gross_profit - fixed - variable_expenses
    return ProfitSimulation(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        fixed_cost=fixed,
        variable_expenses=variable_expenses,
        operating_profit=operating_profit,
        operating_margin_rate=safe_div(operating_profit, revenue) * 100.0,
        cogs_share=safe_div(cogs, revenue) * 100.0,
        opex_share=safe_div(fixed + variable_expenses, revenue) * 100.0,
        profit_share=max(0.0, safe_div(operating_profit, revenue) * 100.0),
    )


def break_even(
    fixed_cost: Number,
    margin_rate_pct: Number,
    target_profit: Number = 0.0,
    operating_days: Number = 25,
    avg_ticket_price: Number = 0.0,
) -> Dict[str, float]:
    """Monthly sales needed to cover fixed cost (and reach a target profit).

        required_sales = (fixed_cost + target_profit) / (margin_rate / 100)
    """
    rate = _num(margin_rate_pct) / 100.0
    fixed = _num(fixed_cost)
    required = round_half_up(safe_div(fixed + _num(target_profit), rate)) if rate > 0 else 0.0
    bep_only = round_half_up(safe_div(fixed, rate)) if rate > 0 else 0.0
    per_day = round_half_up(safe_div(required, operating_days))
    ticket = _num(avg_ticket_price)
    covers = float(ceil(per_day / ticket)) if ticket > 0 else 0.0
    return {
        "required_sales": required,
        "bep_sales": bep_only,
        "sales_per_day": per_day,
        "covers_per_day": covers,
    }


def z_from_service_level(service_level: float) -> float:
    """Return the z-score such that Φ(z) = service_level."""
    if service_level is None:
        raise ValueError("service_level must be provided")
    if not (0.0 < service_level < 1.0):
        raise ValueError("service_level must be between 0 and 1")
    return float(norm.ppf(service_level))


def safety_stock(z: float, sigma_daily: Number, lead_time_days: Number) -> float:
    """Safety stock for a fixed lead time: ``z * sigma_d * sqrt(L)``."""
    lt = _num(lead_time_days)
    if lt <= 0:
        return 0.0
    return max(0.0, float(z) * _num(sigma_daily) * sqrt(lt))


def days_remaining(stock: Optional[Number], daily_usage: Optional[Number]) -> Optional[float]:
    """Days of cover left; None when there is no usage to project."""
    usage = _num(daily_usage)
    if usage <= 0:
        return None
    return _num(stock) / usage
