# menucost/usecases/orders.py
"""
UC: Pedidos do PDV (registro, cancelamento e listagem).

Um pedido grava, na mesma transação:
- o pedido e seus itens (preço praticado e CMV pelo custo de material);
- a baixa de estoque dos insumos, explodindo menus e preps em todos os
  níveis e convertendo para unidade de compra (uso / fator);
- um log 'order' por insumo;
- o acúmulo de receita/CMV no registro de vendas do dia.

O cancelamento desfaz exatamente as baixas registradas nos logs do pedido.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from menucost.config import DB_PATH
from menucost.domain.bom import explode_usage
from menucost.domain.errors import NotFoundError, ValidationError
from menucost.domain.formulas import safe_div
from menucost.domain.models import PAYMENT_METHODS
from menucost.infra.db import connect
from menucost.infra.repositories import (
    IngredientRepo,
    OrderRepo,
    SalesRecordRepo,
    StockLogRepo,
    StoreRepo,
    load_cost_catalog,
)
from menucost.infra.logger import (
    log_database_operation, log_order, log_stock, log_system_event, log_transaction,
)
from menucost.usecases.recipe_cost import resolve_with_warnings


def _order_reason(order_id: str) -> str:
    return f"order {order_id}"


def _order_timestamp(created_at: Optional[str]) -> str:
    """Data/hora ISO sem fuso (YYYY-MM-DDTHH:MM:SS), como comparada pelas janelas de vendas."""
    if not created_at:
        return datetime.now().isoformat(timespec="seconds")
    try:
        dt = datetime.fromisoformat(str(created_at).strip())
    except ValueError:
        raise ValidationError(f"created_at must be an ISO date/time, got {created_at!r}")
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.isoformat(timespec="seconds")


def create_order(
    store_id: str,
    items: Iterable[Dict[str, Any]],
    payment_method: str,
    created_at: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Registra um pedido.

    `items`: [{menu_id, quantity, price?}]; sem `price`, usa o preço de venda do menu.
    """
    items = list(items)
    log_system_event("create_order_start", {"store_id": store_id, "items": len(items)})
    try:
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of {PAYMENT_METHODS}, got {payment_method!r}")
        if not items:
            raise ValidationError("an order needs at least one item")
        created_at = _order_timestamp(created_at)

        order_repo = OrderRepo(db_path)
        ing_repo = IngredientRepo(db_path)
        log_repo = StockLogRepo(db_path)

        with connect(db_path) as c:
            StoreRepo(db_path).require(store_id, conn=c)
            catalog = load_cost_catalog(db_path, store_id, conn=c)

            lines: List[Dict[str, Any]] = []
            usage: Dict[str, float] = defaultdict(float)
            missing: List[Tuple[str, str]] = []
            total_amount = total_cost = 0.0
            for it in items:
                menu_id = it.get("menu_id")
                menu = catalog.get_recipe(menu_id)
                if menu is None or menu.get("type") != "menu":
                    raise NotFoundError("menu", menu_id)
                qty = float(it.get("quantity") or 0)
                if qty <= 0:
                    raise ValidationError(f"quantity must be positive, got {qty}")
                price = it.get("price")
                price = float(menu.get("selling_price") or 0.0) if price is None else float(price)

                res = resolve_with_warnings(catalog, menu_id)
                missing.extend(res.missing)
                total_amount += price * qty
                total_cost += res.material_cost * qty
                for ing_id, used in explode_usage(catalog, menu_id, qty).items():
                    usage[ing_id] += used
                lines.append({"menu_id": menu_id, "quantity": qty, "price": price})

            order = order_repo.insert(store_id, total_amount, total_cost, payment_method, created_at, conn=c)
            order_repo.insert_items(order["id"], lines, created_at, conn=c)

            movements: Dict[str, float] = {}
            for ing_id, used in usage.items():
                ing = catalog.get_ingredient(ing_id)
                delta = -safe_div(used, ing.get("conversion_factor") or 1.0)
                ing_repo.add_stock(c, ing_id, delta)
                log_repo.insert(ing_id, "order", delta, _order_reason(order["id"]), created_at, conn=c)
                movements[ing_id] = delta

            SalesRecordRepo(db_path).add_to_day(store_id, created_at[:10], total_amount, total_cost, conn=c)

        log_database_operation("orders", "INSERT", 1, order_id=order["id"], items=len(lines))
        for ing_id, delta in movements.items():
            log_stock("order", ing_id, delta, order_id=order["id"])
        log_order("create", order["id"], total_amount=total_amount, total_cost=total_cost)

        result = {
            "order_id": order["id"],
            "total_amount": total_amount,
            "total_cost": total_cost,
            "items": len(lines),
            "stock_movements": movements,
            "warning_count": len(missing),
        }
        log_transaction("create_order", {"store_id": store_id, "items": lines}, result=result)
        return result
    except Exception as e:
        log_transaction("create_order", {"store_id": store_id, "items": items}, error=str(e))
        log_system_event("create_order_error", {"error": str(e)}, level="error")
        raise


def cancel_order(store_id: str, order_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Cancela um pedido, devolvendo o estoque e estornando o registro de vendas.

    Cancelar um pedido já cancelado não altera nada (`changed=False`).
    """
    log_system_event("cancel_order_start", {"store_id": store_id, "order_id": order_id})
    try:
        order_repo = OrderRepo(db_path)
        log_repo = StockLogRepo(db_path)
        ing_repo = IngredientRepo(db_path)
        refunds: Dict[str, float] = {}

        with connect(db_path) as c:
            order = order_repo.get(store_id, order_id, conn=c)
            if order is None:
                raise NotFoundError("order", order_id)
            if order["status"] == "cancelled":
                log_order("cancel_noop", order_id)
                return {"order_id": order_id, "status": "cancelled", "changed": False, "stock_movements": {}}

            now = datetime.now().isoformat(timespec="seconds")
            for log in log_repo.by_reason(_order_reason(order_id), "order", conn=c):
                back = -float(log["quantity"])
                ing_repo.add_stock(c, log["ingredient_id"], back)
                log_repo.insert(log["ingredient_id"], "refund", back, f"cancel {order_id}", now, conn=c)
                refunds[log["ingredient_id"]] = refunds.get(log["ingredient_id"], 0.0) + back

            order_repo.set_status(order_id, "cancelled", conn=c)
            SalesRecordRepo(db_path).add_to_day(
                store_id, (order["created_at"] or now)[:10],
                -float(order["total_amount"]), -float(order["total_cost"]), conn=c,
            )

        for ing_id, qty in refunds.items():
            log_stock("refund", ing_id, qty, order_id=order_id)
        log_order("cancel", order_id, total_amount=order["total_amount"])
        result = {"order_id": order_id, "status": "cancelled", "changed": True, "stock_movements": refunds}
        log_transaction("cancel_order", {"store_id": store_id, "order_id": order_id}, result=result)
        return result
    except Exception as e:
        log_transaction("cancel_order", {"store_id": store_id, "order_id": order_id}, error=str(e))
        raise


def list_orders(
    store_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: int = 100,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """Pedidos da loja (mais recentes primeiro) com seus itens."""
    repo = OrderRepo(db_path)
    orders = repo.list(store_id, start, end, limit)
    for o in orders:
        o["items"] = repo.items(o["id"])
    log_database_operation("orders", "SELECT", len(orders), store_id=store_id)
    return orders
