from math import isclose

import pytest

from menucost.domain.bom import CostCatalog, explode_usage, find_cycle, material_cost, resolve_recipe_cost
from menucost.domain.errors import CyclicCompositionError, NotFoundError


def _ing(id_, price, factor=1.0, loss=0.0, unit="g"):
    return {"id": id_, "name": id_.title(), "purchase_price": price, "conversion_factor": factor,
            "loss_rate": loss, "usage_unit": unit}


def _link(recipe_id, item_id, item_type, qty, pos=0):
    return {"recipe_id": recipe_id, "item_id": item_id, "item_type": item_type, "quantity": qty, "position": pos}


def _catalog(components, recipes=None, ingredients=None):
    ingredients = ingredients or [
        _ing("flour", 25000, 20000, 0.02),
        _ing("pork", 12000, 1000),
        _ing("onion", 5000, 5000),
        _ing("sauce", 1500),
    ]
    recipes = recipes or [
        {"id": "dumplings", "name": "Dumplings", "type": "menu", "selling_price": 6000},
        {"id": "filling", "name": "Filling", "type": "prep", "batch_unit": "g"},
        {"id": "combo", "name": "Combo", "type": "menu", "selling_price": 15000},
    ]
    return CostCatalog.from_rows(ingredients, recipes, components)


def test_leaf_cost_is_price_over_factor_over_yield():
    cat = _catalog([_link("dumplings", "flour", "ingredient", 45)])
    res = resolve_recipe_cost(cat, "dumplings")
    assert len(res.items) == 1
    leaf = res.items[0]
    assert leaf.children is None
    assert isclose(leaf.unit_cost, 1.27551, rel_tol=1e-4)
    assert isclose(leaf.total_cost, 57.398, rel_tol=1e-4)
    assert leaf.usage_unit == "g"


def test_composite_unit_cost_is_sum_of_children():
    cat = _catalog([
        _link("filling", "pork", "ingredient", 40, 0),
        _link("filling", "onion", "ingredient", 10, 1),
        _link("dumplings", "flour", "ingredient", 45, 0),
        _link("dumplings", "filling", "prep", 1, 1),
        _link("combo", "dumplings", "menu", 2, 0),
        _link("combo", "sauce", "ingredient", 1, 1),
    ])
    res = resolve_recipe_cost(cat, "combo")

    def check(node):
        if node.children is not None:
            assert isclose(node.unit_cost, sum(c.total_cost for c in node.children))
            for c in node.children:
                check(c)
        assert isclose(node.total_cost, node.unit_cost * node.quantity)

    for item in res.items:
        check(item)

    dumplings = res.items[0]
    assert dumplings.item_type == "menu"
    assert dumplings.usage_unit == "ea"
    filling = dumplings.children[1]
    assert filling.item_type == "prep"
    assert filling.usage_unit == "g"
    assert isclose(filling.unit_cost, 480 + 10)
    assert isclose(res.material_cost, 2 * (57.398 + 490) + 1500, rel_tol=1e-4)


def test_children_keep_insertion_order():
    cat = _catalog([
        _link("dumplings", "pork", "ingredient", 50, 1),
        _link("dumplings", "flour", "ingredient", 45, 0),
    ])
    res = resolve_recipe_cost(cat, "dumplings")
    assert [i.item_id for i in res.items] == ["flour", "pork"]


def test_missing_ingredient_is_omitted_and_reported():
    cat = _catalog([
        _link("dumplings", "flour", "ingredient", 45, 0),
        _link("dumplings", "ghost", "ingredient", 10, 1),
        _link("dumplings", "nowhere", "prep", 1, 2),
    ])
    res = resolve_recipe_cost(cat, "dumplings")
    assert [i.item_id for i in res.items] == ["flour"]
    assert isclose(res.material_cost, 57.398, rel_tol=1e-4)
    assert res.missing == [("ingredient", "ghost"), ("prep", "nowhere")]
    assert res.warning_count == 2


def test_missing_root_raises():
    with pytest.raises(NotFoundError):
        resolve_recipe_cost(_catalog([]), "unknown")


def test_recipe_without_components_costs_zero():
    res = resolve_recipe_cost(_catalog([]), "dumplings")
    assert res.items == []
    assert res.material_cost == 0


def test_cycle_is_detected():
    cat = _catalog([
        _link("dumplings", "combo", "menu", 1),
        _link("combo", "dumplings", "menu", 1),
    ])
    with pytest.raises(CyclicCompositionError) as exc:
        resolve_recipe_cost(cat, "dumplings")
    assert exc.value.path == ["dumplings", "combo", "dumplings"]
    assert "dumplings -> combo -> dumplings" in str(exc.value)


def test_shared_prep_is_not_a_cycle():
    cat = _catalog([
        _link("dumplings", "filling", "prep", 1, 0),
        _link("combo", "filling", "prep", 1, 0),
        _link("combo", "dumplings", "menu", 1, 1),
        _link("filling", "pork", "ingredient", 10, 0),
    ])
    assert isclose(material_cost(cat, "combo"), 240.0)


def test_explode_usage_multiplies_through_levels():
    cat = _catalog([
        _link("filling", "pork", "ingredient", 40, 0),
        _link("dumplings", "flour", "ingredient", 45, 0),
        _link("dumplings", "filling", "prep", 1, 1),
        _link("dumplings", "ghost", "ingredient", 3, 2),
        _link("combo", "dumplings", "menu", 2, 0),
    ])
    missing = []
    usage = explode_usage(cat, "combo", 3, missing)
    assert usage == {"flour": 270.0, "pork": 240.0}
    assert missing == [("ingredient", "ghost")]


def test_find_cycle_on_proposed_components():
    cat = _catalog([_link("combo", "dumplings", "menu", 1)])
    assert find_cycle(cat, "dumplings", [_link("dumplings", "combo", "menu", 1)]) == ["dumplings", "combo", "dumplings"]
    assert find_cycle(cat, "dumplings", [_link("dumplings", "filling", "prep", 1)]) is None
    assert find_cycle(cat, "dumplings", [_link("dumplings", "flour", "ingredient", 1)]) is None
