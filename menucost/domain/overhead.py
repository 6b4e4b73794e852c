"""
Rateio de custo fixo mensal por unidade vendida.

Regras (em ordem):
1. custo fixo não configurado (None/0)   -> 0, método 'not-configured'
2. vendas reais nos últimos N dias > 0   -> round(fixo / unidades), 'weighted'
3. caso contrário                        -> round(fixo / meta mensal), 'target-based'

Se a consulta de vendas falhar, o rateio cai silenciosamente para a meta
(regra 3). Uma meta ausente ou <= 0 sem vendas resulta em 0,
'not-configured'.
"""

from __future__ import annotations

from typing import Callable, Optional

from menucost.domain.formulas import round_half_up, safe_div
from menucost.domain.models import (
    METHOD_NOT_CONFIGURED,
    METHOD_TARGET,
    METHOD_WEIGHTED,
    OverheadAllocation,
)


def _target_based(fixed: float, target: Optional[float]) -> OverheadAllocation:
    t = float(target or 0)
    if t <= 0:
        return OverheadAllocation(0.0, METHOD_NOT_CONFIGURED, fixed, 0.0)
    return OverheadAllocation(round_half_up(safe_div(fixed, t)), METHOD_TARGET, fixed, t)


def allocate_overhead(
    monthly_fixed_cost: Optional[float],
    monthly_target_sales_count: Optional[float],
    sales_lookup: Optional[Callable[[], float]] = None,
) -> OverheadAllocation:
    """Per-unit fixed-cost allocation for a menu item.

    ``sales_lookup`` returns the trailing-window total of units sold
    across all menu items. Any exception it raises is treated as
    "allocation unavailable" and the target-based figure is returned.
    """
    fixed = float(monthly_fixed_cost or 0)
    if fixed <= 0:
        return OverheadAllocation(0.0, METHOD_NOT_CONFIGURED, 0.0, 0.0)

    total_units = 0.0
    if sales_lookup is not None:
        try:
            total_units = float(sales_lookup() or 0)
        except Exception:
            return _target_based(fixed, monthly_target_sales_count)

    if total_units > 0:
        return OverheadAllocation(
            round_half_up(safe_div(fixed, total_units)), METHOD_WEIGHTED, fixed, total_units
        )
    return _target_based(fixed, monthly_target_sales_count)
