from datetime import date, datetime
from math import isclose

import pytest

from menucost.domain.errors import ValidationError
from menucost.infra.repositories import SalesRecordRepo
from menucost.usecases.orders import create_order
from menucost.usecases.reports import (
    month_financials,
    report_break_even,
    report_dashboard,
    report_inventory_loss,
    report_menu_performance,
    report_predictive_depletion,
    report_procurement_forecast,
    report_profit_simulation,
    report_sourcing,
)
from menucost.usecases.stock import add_expense, adjust_stock, create_purchase
from menucost.usecases.stores import update_store


NOW = datetime(2026, 3, 15, 12, 0, 0)


def _seed_month(kitchen):
    SalesRecordRepo(kitchen.db_path).add_to_day(kitchen.store_id, "2026-03-02", 10_000_000, 3_500_000)


def test_menu_performance_matrix(kitchen):
    update_store(kitchen.store_id, {"monthly_fixed_cost": 4000}, db_path=kitchen.db_path)
    create_order(kitchen.store_id, [{"menu_id": kitchen.stew, "quantity": 3},
                                    {"menu_id": kitchen.dumplings, "quantity": 1}],
                 "card", "2026-03-10T12:00:00", db_path=kitchen.db_path)

    res = report_menu_performance(kitchen.store_id, 30, now=NOW, db_path=kitchen.db_path)
    assert res["overhead"]["method"] == "weighted"
    assert res["overhead"]["per_unit"] == 1000

    data = res["data"]
    assert [r["name"] for r in data] == ["Kimchi Stew", "Dumplings"]
    stew, dumplings = data
    assert stew["category"] == "Soups"
    assert isclose(stew["total_cost"], 2700)
    assert stew["sales_volume"] == 3
    assert isclose(stew["total_profit"], 18900)
    assert stew["quadrant"] == "star"
    assert dumplings["quadrant"] == "dog"
    assert res["metrics"]["avg_volume"] == 2
    assert res["warning_count"] == 0


def test_menu_performance_without_sales(kitchen):
    res = report_menu_performance(kitchen.store_id, 30, now=NOW, db_path=kitchen.db_path)
    assert res["overhead"]["method"] == "target-based"
    assert res["metrics"] == {"avg_volume": 0.0, "avg_margin": 0.0}
    assert {r["quadrant"] for r in res["data"]} == {"star"}


def test_month_financials_falls_back_to_default_cogs_rate(kitchen):
    fin = month_financials(kitchen.store_id, "2026-02", db_path=kitchen.db_path)
    assert fin["start"] == "2026-02-01"
    assert fin["end"] == "2026-02-28"
    assert fin["cogs_rate"] == 35.0
    assert fin["cogs_estimated"] is True


def test_profit_simulation(kitchen):
    _seed_month(kitchen)
    res = report_profit_simulation(kitchen.store_id, vol_adj=10, month="2026-03", db_path=kitchen.db_path)
    assert isclose(res["base"]["cogs_rate"], 35.0)
    assert isclose(res["current"]["operating_profit"], 3_000_000)
    assert isclose(res["simulated"]["revenue"], 11_000_000)
    assert isclose(res["simulated"]["operating_profit"], 3_600_000)
    assert isclose(res["profit_delta"], 600_000)


def test_profit_simulation_with_explicit_base(kitchen):
    res = report_profit_simulation(kitchen.store_id, month="2026-02", base_revenue=0, db_path=kitchen.db_path)
    assert res["current"]["operating_profit"] == -3_000_000
    assert res["current"]["operating_margin_rate"] == 0


def test_break_even(kitchen):
    _seed_month(kitchen)
    res = report_break_even(kitchen.store_id, month="2026-03", db_path=kitchen.db_path)
    assert isclose(res["margin_rate"], 60.0)
    assert res["required_sales"] == 5_000_000
    assert res["sales_per_day"] == 200_000
    assert res["covers_per_day"] == 0
    assert isclose(res["progress_rate"], 200.0)

    explicit = report_break_even(kitchen.store_id, target_profit=600_000, avg_ticket_price=10_000,
                                 margin_rate_pct=60, month="2026-03", db_path=kitchen.db_path)
    assert explicit["required_sales"] == 6_000_000
    assert explicit["covers_per_day"] == 24


def test_dashboard(kitchen):
    _seed_month(kitchen)
    add_expense(kitchen.store_id, "Rent", 2_000_000, "2026-03-01", is_fixed=True, db_path=kitchen.db_path)
    res = report_dashboard(kitchen.store_id, months=3, today=date(2026, 3, 20), db_path=kitchen.db_path)

    assert [s["month"] for s in res["series"]] == ["2026-01", "2026-02", "2026-03"]
    assert res["series"][0]["revenue"] == 0
    march = res["series"][-1]
    assert march["profit"] == 4_500_000
    assert res["current"]["cogs_estimated"] is False
    assert isclose(res["current"]["profit_rate"], 45.0)
    assert res["stock_value"] == 2 * 25000 + 10 * 12000 + 5 * 30000 + 4 * 5000
    assert res["low_stock"] == []


def test_dashboard_estimates_missing_cogs(kitchen):
    SalesRecordRepo(kitchen.db_path).set_revenue(kitchen.store_id, "2026-03-02", 1_000_000)
    adjust_stock(kitchen.store_id, kitchen.ing["Pork"], 8.5, "spoilage", db_path=kitchen.db_path)
    res = report_dashboard(kitchen.store_id, months=1, today=date(2026, 3, 20), db_path=kitchen.db_path)
    assert res["current"]["cogs_estimated"] is True
    assert res["current"]["cogs"] == 350_000
    assert res["low_stock"] == ["Pork"]


def test_inventory_loss(kitchen):
    create_order(kitchen.store_id, [{"menu_id": kitchen.stew, "quantity": 2}], "card", db_path=kitchen.db_path)
    adjust_stock(kitchen.store_id, kitchen.ing["Kimchi"], 0.1, "spoilage", db_path=kitchen.db_path)

    res = report_inventory_loss(kitchen.store_id, 30, db_path=kitchen.db_path)
    kimchi = res["data"][0]
    assert kimchi["name"] == "Kimchi"
    assert isclose(kimchi["theoretical_usage"], 300)
    assert isclose(kimchi["actual_usage"], 1300)
    assert isclose(kimchi["loss_rate"], 1000 / 1300 * 100)
    assert isclose(kimchi["loss_value"], 3000)
    assert isclose(res["total_loss_value"], 3000)
    assert {r["name"] for r in res["data"]} == {"Kimchi", "Pork", "Onion"}


def test_predictive_depletion(kitchen):
    adjust_stock(kitchen.store_id, kitchen.ing["Pork"], 9, "spoilage", db_path=kitchen.db_path)
    res = report_predictive_depletion(kitchen.store_id, db_path=kitchen.db_path)
    assert [r["name"] for r in res] == ["Pork"]
    assert res[0]["usage_per_day"] == 0.64
    assert res[0]["days_left"] == 2


def test_procurement_forecast(kitchen):
    adjust_stock(kitchen.store_id, kitchen.ing["Pork"], 9.5, "spoilage", db_path=kitchen.db_path)
    res = report_procurement_forecast(kitchen.store_id, db_path=kitchen.db_path)

    assert res["critical"] == 1
    pork = res["data"][0]
    assert pork["name"] == "Pork"
    assert isclose(pork["avg_daily_usage"], 9.5 / 30)
    assert pork["days_remaining"] < 7
    assert pork["suggested_purchase_qty"] == 6
    assert pork["statistical_safety_stock"] > 0
    assert all(r["days_remaining"] is None for r in res["data"][1:])
    assert all(r["suggested_purchase_qty"] == 0 for r in res["data"][1:])


def test_sourcing(kitchen):
    pork = kitchen.ing["Pork"]
    onion = kitchen.ing["Onion"]
    create_purchase(kitchen.store_id, "Atacado A", [{"ingredient_id": pork, "quantity": 1, "price": 11000}],
                    db_path=kitchen.db_path)
    create_purchase(kitchen.store_id, "Atacado A", [{"ingredient_id": pork, "quantity": 1, "price": 11500}],
                    db_path=kitchen.db_path)
    create_purchase(kitchen.store_id, "Mercado B", [{"ingredient_id": pork, "quantity": 1, "price": 12500},
                                                    {"ingredient_id": onion, "quantity": 1, "price": 5000}],
                    db_path=kitchen.db_path)

    res = report_sourcing(kitchen.store_id, db_path=kitchen.db_path)
    assert len(res) == 1
    row = res[0]
    assert row["name"] == "Pork"
    assert row["best_supplier"] == "Atacado A"
    assert row["best_price"] == 11250
    assert row["worst_supplier"] == "Mercado B"
    assert row["saving_per_unit"] == 1250
    assert row["saving_percent"] == 10


def test_sourcing_empty(kitchen):
    assert report_sourcing(kitchen.store_id, db_path=kitchen.db_path) == []


def test_procurement_forecast_rejects_empty_window(kitchen):
    with pytest.raises(ValidationError):
        report_procurement_forecast(kitchen.store_id, 0, db_path=kitchen.db_path)
    with pytest.raises(ValidationError):
        report_procurement_forecast(kitchen.store_id, -7, db_path=kitchen.db_path)
