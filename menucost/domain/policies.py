"""
Políticas de classificação do cardápio (engenharia de menu).

Este módulo contém as regras de negócio que combinam preço de venda,
custo resolvido e rateio de custo fixo em indicadores de rentabilidade,
e que classificam cada item na matriz 2x2 volume x margem.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from menucost.domain.formulas import margin, margin_rate
from menucost.domain.models import MatrixMetrics, MenuPerformance


def classify_quadrant(volume: float, margin_value: float, avg_volume: float, avg_margin: float) -> str:
    """Classifica um item na matriz de engenharia de menu.

    Empates exatamente na média caem no lado "alto" (>=) dos dois eixos.

    Regras:
        - volume >= média e margem >= média  -> ``'star'``
        - volume >= média e margem <  média  -> ``'plowhorse'``
        - volume <  média e margem >= média  -> ``'puzzle'``
        - volume <  média e margem <  média  -> ``'dog'``
    """
    high_volume = float(volume) >= float(avg_volume)
    high_margin = float(margin_value) >= float(avg_margin)
    if high_volume and high_margin:
        return "star"
    if high_volume:
        return "plowhorse"
    if high_margin:
        return "puzzle"
    return "dog"


def matrix_baseline(population: Iterable[MenuPerformance]) -> MatrixMetrics:
    """Mean sales volume and mean per-unit margin over the population."""
    items = list(population)
    if not items:
        return MatrixMetrics(0.0, 0.0)
    n = float(len(items))
    return MatrixMetrics(
        avg_volume=sum(float(m.sales_volume) for m in items) / n,
        avg_margin=sum(float(m.margin) for m in items) / n,
    )


def build_menu_performance(
    menus: Iterable[Dict],
    material_costs: Dict[str, float],
    units_sold: Dict[str, float],
    overhead_per_unit: float = 0.0,
    categories: Optional[Dict[str, str]] = None,
    default_category: str = "Uncategorized",
) -> tuple[List[MenuPerformance], MatrixMetrics]:
    """Monta os registros da matriz e atribui quadrantes.

    A população usada para as médias é a dos itens com vendas na janela
    (volume > 0); se nenhum item vendeu, as médias são zero e todos os
    itens ficam no lado alto dos dois eixos.

    Returns:
        (registros ordenados por lucro total decrescente, médias)
    """
    categories = categories or {}
    out: List[MenuPerformance] = []
    for m in menus:
        mid = m["id"]
        price = float(m.get("selling_price") or 0.0)
        material = float(material_costs.get(mid, 0.0))
        total_cost = material + float(overhead_per_unit or 0.0)
        mg = margin(price, total_cost)
        volume = float(units_sold.get(mid, 0.0))
        out.append(
            MenuPerformance(
                item_id=mid,
                name=m.get("name") or mid,
                category=categories.get(m.get("category_id")) or default_category,
                selling_price=price,
                material_cost=material,
                overhead_per_unit=float(overhead_per_unit or 0.0),
                total_cost=total_cost,
                margin=mg,
                margin_rate=margin_rate(price, mg),
                sales_volume=volume,
                total_profit=mg * volume,
            )
        )

    metrics = matrix_baseline([m for m in out if m.sales_volume > 0])
    for m in out:
        m.quadrant = classify_quadrant(m.sales_volume, m.margin, metrics.avg_volume, metrics.avg_margin)

    out.sort(key=lambda r: r.total_profit, reverse=True)
    return out, metrics
