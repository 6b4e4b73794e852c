"""
Resolução de custo por ficha técnica (BOM) recursiva.

Uma receita pode conter ingredientes, outros menus ou itens 'prep', em
qualquer profundidade. O resolvedor percorre o grafo em profundidade
(pós-ordem): os filhos são resolvidos antes do custo unitário do pai.

Regras:
- folha (ingrediente): custo unitário = (preço / fator) / (1 - perda)
- nó composto (menu/prep): custo unitário = soma de child.total_cost
- total_cost = unit_cost * quantity
- referência inexistente: o componente é omitido e registrado em `missing`
- receita revisitada no caminho atual: CyclicCompositionError

O módulo é puro: trabalha sobre um `CostCatalog` já carregado em memória.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from menucost.config import DEFAULTS
from menucost.domain.errors import CyclicCompositionError, NotFoundError
from menucost.domain.formulas import ingredient_unit_cost
from menucost.domain.models import CostItem, CostResolution


COMPOSITE_TYPES = ("menu", "prep")


class CostCatalog:
    """Snapshot em memória dos ingredientes, receitas e componentes de uma loja.

    Implementa as consultas de leitura usadas pelo resolvedor:
    get_ingredient, get_recipe e get_components. Itens não encontrados
    retornam None (ou lista vazia para componentes).
    """

    def __init__(
        self,
        ingredients: Optional[Dict[str, Dict[str, Any]]] = None,
        recipes: Optional[Dict[str, Dict[str, Any]]] = None,
        components: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ):
        self._ingredients = dict(ingredients or {})
        self._recipes = dict(recipes or {})
        self._components = {k: list(v) for k, v in (components or {}).items()}

    @classmethod
    def from_rows(
        cls,
        ingredients: Iterable[Dict[str, Any]],
        recipes: Iterable[Dict[str, Any]],
        components: Iterable[Dict[str, Any]],
    ) -> "CostCatalog":
        grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for c in components:
            grouped[c["recipe_id"]].append(c)
        for links in grouped.values():
            links.sort(key=lambda c: c.get("position") or 0)
        return cls(
            {i["id"]: i for i in ingredients},
            {r["id"]: r for r in recipes},
            grouped,
        )

    def get_ingredient(self, item_id: str) -> Optional[Dict[str, Any]]:
        return self._ingredients.get(item_id)

    def get_recipe(self, item_id: str) -> Optional[Dict[str, Any]]:
        return self._recipes.get(item_id)

    def get_components(self, recipe_id: str) -> List[Dict[str, Any]]:
        return list(self._components.get(recipe_id, []))

    def ingredients(self) -> List[Dict[str, Any]]:
        return list(self._ingredients.values())

    def recipes(self, recipe_type: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = list(self._recipes.values())
        if recipe_type:
            rows = [r for r in rows if r.get("type") == recipe_type]
        return rows


# -------------------------
# Árvore de custos
# -------------------------

def _build_item(
    catalog: CostCatalog,
    link: Dict[str, Any],
    path: List[str],
    on_path: Set[str],
    missing: List[Tuple[str, str]],
    min_yield: float,
) -> Optional[CostItem]:
    item_id = link["item_id"]
    item_type = link["item_type"]
    qty = float(link.get("quantity") or 0.0)

    if item_type == "ingredient":
        ing = catalog.get_ingredient(item_id)
        if ing is None:
            missing.append((item_type, item_id))
            return None
        unit_cost = ingredient_unit_cost(
            ing.get("purchase_price"), ing.get("conversion_factor"), ing.get("loss_rate"), min_yield
        )
        return CostItem(
            item_id=item_id,
            name=ing.get("name") or item_id,
            item_type="ingredient",
            quantity=qty,
            usage_unit=ing.get("usage_unit") or "",
            unit_cost=unit_cost,
            total_cost=unit_cost * qty,
        )

    if item_type not in COMPOSITE_TYPES:
        missing.append((item_type, item_id))
        return None

    if item_id in on_path:
        raise CyclicCompositionError(path + [item_id])
    sub = catalog.get_recipe(item_id)
    if sub is None:
        missing.append((item_type, item_id))
        return None

    path.append(item_id)
    on_path.add(item_id)
    try:
        children = _resolve_children(catalog, item_id, path, on_path, missing, min_yield)
    finally:
        path.pop()
        on_path.discard(item_id)

    unit_cost = sum(c.total_cost for c in children)
    resolved_type = sub.get("type") or item_type
    usage_unit = (sub.get("batch_unit") if resolved_type == "prep" else None) or "ea"
    return CostItem(
        item_id=item_id,
        name=sub.get("name") or item_id,
        item_type=resolved_type,
        quantity=qty,
        usage_unit=usage_unit,
        unit_cost=unit_cost,
        total_cost=unit_cost * qty,
        children=children,
    )


def _resolve_children(
    catalog: CostCatalog,
    recipe_id: str,
    path: List[str],
    on_path: Set[str],
    missing: List[Tuple[str, str]],
    min_yield: float,
) -> List[CostItem]:
    out: List[CostItem] = []
    for link in catalog.get_components(recipe_id):
        item = _build_item(catalog, link, path, on_path, missing, min_yield)
        if item is not None:
            out.append(item)
    return out


def resolve_recipe_cost(
    catalog: CostCatalog,
    recipe_id: str,
    min_yield: float = DEFAULTS.min_yield,
) -> CostResolution:
    """Resolve the full cost tree of ``recipe_id``.

    Raises NotFoundError if the root recipe does not exist and
    CyclicCompositionError if the composition graph loops back onto a
    recipe on the current path. Missing component references are
    dropped and reported in ``CostResolution.missing``.
    """
    recipe = catalog.get_recipe(recipe_id)
    if recipe is None:
        raise NotFoundError("recipe", recipe_id)

    missing: List[Tuple[str, str]] = []
    items = _resolve_children(catalog, recipe_id, [recipe_id], {recipe_id}, missing, min_yield)
    return CostResolution(
        recipe_id=recipe_id,
        name=recipe.get("name") or recipe_id,
        recipe_type=recipe.get("type") or "menu",
        items=items,
        material_cost=sum(i.total_cost for i in items),
        missing=missing,
    )


def material_cost(catalog: CostCatalog, recipe_id: str, min_yield: float = DEFAULTS.min_yield) -> float:
    return resolve_recipe_cost(catalog, recipe_id, min_yield).material_cost


# -------------------------
# Explosão de consumo
# -------------------------

def explode_usage(
    catalog: CostCatalog,
    recipe_id: str,
    quantity: float,
    missing: Optional[List[Tuple[str, str]]] = None,
) -> Dict[str, float]:
    """Total ingredient usage (usage units) for ``quantity`` units of a recipe.

    Walks menu and prep components at every level. Unknown references are
    skipped (and appended to ``missing`` when given).
    """
    usage: Dict[str, float] = defaultdict(float)
    sink = missing if missing is not None else []

    def walk(rid: str, qty: float, path: List[str]) -> None:
        for link in catalog.get_components(rid):
            item_id = link["item_id"]
            total_qty = float(link.get("quantity") or 0.0) * qty
            if link["item_type"] == "ingredient":
                if catalog.get_ingredient(item_id) is None:
                    sink.append(("ingredient", item_id))
                    continue
                usage[item_id] += total_qty
            elif link["item_type"] in COMPOSITE_TYPES:
                if item_id in path:
                    raise CyclicCompositionError(path + [item_id])
                if catalog.get_recipe(item_id) is None:
                    sink.append((link["item_type"], item_id))
                    continue
                walk(item_id, total_qty, path + [item_id])

    if catalog.get_recipe(recipe_id) is None:
        raise NotFoundError("recipe", recipe_id)
    walk(recipe_id, float(quantity), [recipe_id])
    return dict(usage)


def find_cycle(
    catalog: CostCatalog,
    recipe_id: str,
    components: Iterable[Dict[str, Any]],
) -> Optional[List[str]]:
    """Check whether giving ``recipe_id`` these components would close a cycle.

    Returns the offending id path (starting and ending at ``recipe_id``)
    or None. Edges of ``recipe_id`` already stored in the catalog are
    ignored in favour of the proposed ones.
    """
    visited: Set[str] = set()

    def reaches(node: str, path: List[str]) -> Optional[List[str]]:
        if node == recipe_id:
            return path
        if node in visited:
            return None
        visited.add(node)
        for link in catalog.get_components(node):
            if link["item_type"] in COMPOSITE_TYPES:
                found = reaches(link["item_id"], path + [link["item_id"]])
                if found:
                    return found
        return None

    for link in components:
        if link["item_type"] not in COMPOSITE_TYPES:
            continue
        found = reaches(link["item_id"], [recipe_id, link["item_id"]])
        if found:
            return found
    return None
