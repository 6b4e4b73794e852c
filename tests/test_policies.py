from math import isclose

from menucost.domain.policies import build_menu_performance, classify_quadrant, matrix_baseline


def test_classify_quadrant_ties_go_high():
    assert classify_quadrant(10, 5, 10, 5) == "star"
    assert classify_quadrant(10, 4.99, 10, 5) == "plowhorse"
    assert classify_quadrant(9, 5, 10, 5) == "puzzle"
    assert classify_quadrant(9, 4, 10, 5) == "dog"


def test_matrix_baseline_empty():
    m = matrix_baseline([])
    assert m.avg_volume == 0
    assert m.avg_margin == 0


MENUS = [
    {"id": "stew", "name": "Kimchi Stew", "selling_price": 9000, "category_id": "c1"},
    {"id": "dumplings", "name": "Dumplings", "selling_price": 6000},
    {"id": "free", "name": "Water", "selling_price": 0},
]


def test_build_menu_performance():
    records, metrics = build_menu_performance(
        MENUS,
        {"stew": 1700, "dumplings": 657.4, "free": 0},
        {"stew": 3, "dumplings": 1},
        overhead_per_unit=1000,
        categories={"c1": "Soups"},
    )
    by_id = {r.item_id: r for r in records}

    stew = by_id["stew"]
    assert stew.total_cost == 2700
    assert stew.margin == 6300
    assert isclose(stew.margin_rate, 70.0)
    assert stew.total_profit == 18900
    assert stew.category == "Soups"
    assert stew.quadrant == "star"

    assert by_id["dumplings"].category == "Uncategorized"
    assert by_id["dumplings"].quadrant == "dog"

    # averages only over items sold in the window
    assert metrics.avg_volume == 2
    assert isclose(metrics.avg_margin, (6300 + 4342.6) / 2)

    free = by_id["free"]
    assert free.margin_rate == 0
    assert free.quadrant == "dog"
    assert [r.item_id for r in records][0] == "stew"


def test_no_sales_puts_every_item_high():
    records, metrics = build_menu_performance(MENUS[:2], {"stew": 1700, "dumplings": 657.4}, {})
    assert metrics.avg_volume == 0
    assert {r.quadrant for r in records} == {"star"}
