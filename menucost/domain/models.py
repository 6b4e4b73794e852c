# menucost/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios aceitam dicionários ou dataclasses; as dataclasses
  servem para tipagem/clareza nas fronteiras do domínio.
- `CostItem` é o único formato de nó da árvore de custos; relatórios e CLI
  consomem sempre esse objeto em vez de montar junções ad hoc.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple


ITEM_TYPES = ("ingredient", "menu", "prep")
RECIPE_TYPES = ("menu", "prep")
ADJUSTMENT_TYPES = ("purchase", "spoilage", "order", "correction", "refund")
MANUAL_ADJUSTMENT_TYPES = ("purchase", "spoilage", "correction")
ORDER_STATUSES = ("completed", "cancelled")
PAYMENT_METHODS = ("card", "cash", "transfer")
QUADRANTS = ("star", "plowhorse", "puzzle", "dog")

# Métodos de rateio do custo fixo
METHOD_WEIGHTED = "weighted"
METHOD_TARGET = "target-based"
METHOD_NOT_CONFIGURED = "not-configured"


@dataclass
class Store:
    """Loja e parâmetros de rateio de custo fixo."""
    name: str
    id: Optional[str] = None
    business_number: Optional[str] = None
    address: Optional[str] = None
    contact: Optional[str] = None
    monthly_fixed_cost: float = 0.0
    monthly_target_sales_count: int = 1000


@dataclass
class Ingredient:
    """Insumo comprado (matéria-prima)."""
    name: str
    purchase_price: float
    purchase_unit: str                  # ex.: "20kg"
    usage_unit: str                     # ex.: "g"
    conversion_factor: float = 1.0      # usage units per purchase unit
    loss_rate: float = 0.0              # fraction in [0, 1)
    current_stock: float = 0.0          # purchase units
    safety_stock: float = 0.0           # purchase units
    store_id: Optional[str] = None
    category_id: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Recipe:
    """Menu vendável ou item 'prep' (semi-acabado)."""
    name: str
    type: str = "menu"                  # 'menu' | 'prep'
    selling_price: Optional[float] = None
    target_cost_rate: Optional[float] = None
    description: Optional[str] = None
    batch_size: float = 1.0
    batch_unit: str = "ea"
    portion_size: Optional[float] = None
    portion_unit: Optional[str] = None
    store_id: Optional[str] = None
    category_id: Optional[str] = None
    id: Optional[str] = None


@dataclass
class RecipeComponent:
    """Aresta ponderada do grafo de composição."""
    item_id: str
    item_type: str                      # 'ingredient' | 'menu' | 'prep'
    quantity: float
    recipe_id: Optional[str] = None
    position: int = 0


@dataclass
class CostItem:
    """Nó resolvido da árvore de custos.

    `children` é None para folhas (ingredientes). Para menu/prep a soma de
    `child.total_cost` é igual a `unit_cost`.
    """
    item_id: str
    name: str
    item_type: str
    quantity: float
    usage_unit: str
    unit_cost: float
    total_cost: float
    children: Optional[List["CostItem"]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CostResolution:
    recipe_id: str
    name: str
    recipe_type: str
    items: List[CostItem] = field(default_factory=list)
    material_cost: float = 0.0
    missing: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def warning_count(self) -> int:
        return len(self.missing)


@dataclass
class SalesSummary:
    window_days: int
    per_item: List[Dict[str, Any]] = field(default_factory=list)   # {item_id, units_sold, revenue}
    total_units_sold: float = 0.0

    def units_by_item(self) -> Dict[str, float]:
        return {r["item_id"]: float(r["units_sold"]) for r in self.per_item}


@dataclass
class OverheadAllocation:
    per_unit: float
    method: str
    monthly_fixed_cost: float = 0.0
    denominator: float = 0.0

    @property
    def is_configured(self) -> bool:
        return self.method != METHOD_NOT_CONFIGURED

    @property
    def is_weighted(self) -> bool:
        return self.method == METHOD_WEIGHTED


@dataclass
class MenuPerformance:
    item_id: str
    name: str
    category: str
    selling_price: float
    material_cost: float
    overhead_per_unit: float
    total_cost: float
    margin: float
    margin_rate: float
    sales_volume: float
    total_profit: float
    quadrant: str = "dog"


@dataclass
class MatrixMetrics:
    avg_volume: float = 0.0
    avg_margin: float = 0.0


@dataclass
class ProfitSimulation:
    revenue: float
    cogs: float
    gross_profit: float
    fixed_cost: float
    variable_expenses: float
    operating_profit: float
    operating_margin_rate: float
    cogs_share: float
    opex_share: float
    profit_share: float
