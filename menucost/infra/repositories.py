# menucost/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Toda consulta recebe o `store_id` explicitamente; não existe "loja atual"
implícita. Métodos de escrita aceitam uma conexão opcional (`conn`) para
que casos de uso com várias escritas rodem numa única transação.

Classes:
- StoreRepo
- CategoryRepo
- IngredientRepo
- RecipeRepo
- StockLogRepo
- PurchaseRepo
- OrderRepo
- ExpenseRepo
- SalesRecordRepo

Função:
- load_cost_catalog: pré-carrega insumos, receitas e componentes de uma loja
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from .db import connect, new_id, now_iso, rows_to_dicts
from menucost.domain.bom import CostCatalog
from menucost.domain.errors import NotFoundError, ValidationError
from menucost.domain.models import ORDER_STATUSES, SalesSummary


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _pick(row: Dict[str, Any], cols: Sequence[str]) -> Dict[str, Any]:
    return {k: row.get(k) for k in cols}


class _Repo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def _session(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
        else:
            with connect(self.db_path) as c:
                yield c

    def _update(self, conn, table: str, row_id: str, store_id: str, fields: Dict[str, Any], allowed: Sequence[str]) -> int:
        sets = {k: v for k, v in fields.items() if k in allowed}
        if not sets:
            return 0
        sets["updated_at"] = now_iso()
        assignments = ", ".join(f"{k} = :{k}" for k in sets)
        cur = conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = :_id AND store_id = :_store",
            {**sets, "_id": row_id, "_store": store_id},
        )
        return cur.rowcount


# -------------------------
# Lojas
# -------------------------

STORE_COLS = (
    "id", "name", "business_number", "address", "contact",
    "monthly_fixed_cost", "monthly_target_sales_count",
)


class StoreRepo(_Repo):
    def insert(self, row: Any, conn=None) -> str:
        r = _as_dict(row)
        r["id"] = r.get("id") or new_id()
        payload = _pick(r, STORE_COLS)
        if payload["monthly_fixed_cost"] is None:
            payload["monthly_fixed_cost"] = 0.0
        if payload["monthly_target_sales_count"] is None:
            payload["monthly_target_sales_count"] = 1000
        payload["created_at"] = payload["updated_at"] = now_iso()
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO stores
                    (id, name, business_number, address, contact,
                     monthly_fixed_cost, monthly_target_sales_count, created_at, updated_at)
                VALUES
                    (:id, :name, :business_number, :address, :contact,
                     :monthly_fixed_cost, :monthly_target_sales_count, :created_at, :updated_at)
                """,
                payload,
            )
        return payload["id"]

    def update(self, store_id: str, fields: Dict[str, Any], conn=None) -> int:
        sets = {k: v for k, v in fields.items() if k in STORE_COLS[1:]}
        if not sets:
            return 0
        sets["updated_at"] = now_iso()
        assignments = ", ".join(f"{k} = :{k}" for k in sets)
        with self._session(conn) as c:
            cur = c.execute(f"UPDATE stores SET {assignments} WHERE id = :_id", {**sets, "_id": store_id})
            return cur.rowcount

    def get(self, store_id: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute("SELECT * FROM stores WHERE id = ?", (store_id,)).fetchone()
            return dict(row) if row else None

    def require(self, store_id: str, conn=None) -> Dict[str, Any]:
        store = self.get(store_id, conn)
        if store is None:
            raise NotFoundError("store", store_id)
        return store

    def get_all(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return rows_to_dicts(c.execute("SELECT * FROM stores ORDER BY name"))


# -------------------------
# Categorias
# -------------------------

class CategoryRepo(_Repo):
    def get_or_create(self, store_id: str, name: str, type_: str, conn=None) -> str:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT id FROM categories WHERE store_id = ? AND name = ? AND type = ?",
                (store_id, name, type_),
            ).fetchone()
            if row:
                return row[0]
            cid = new_id()
            c.execute(
                "INSERT INTO categories (id, store_id, name, type, created_at) VALUES (?, ?, ?, ?, ?)",
                (cid, store_id, name, type_, now_iso()),
            )
            return cid

    def names_by_id(self, store_id: str) -> Dict[str, str]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT id, name FROM categories WHERE store_id = ?", (store_id,))
            return {r[0]: r[1] for r in cur.fetchall()}


# -------------------------
# Insumos
# -------------------------

INGREDIENT_COLS = (
    "id", "store_id", "name", "category_id", "purchase_price", "purchase_unit",
    "usage_unit", "conversion_factor", "loss_rate", "current_stock", "safety_stock",
)


class IngredientRepo(_Repo):
    def insert(self, store_id: str, row: Any, conn=None) -> str:
        r = _as_dict(row)
        r["id"] = r.get("id") or new_id()
        r["store_id"] = store_id
        payload = _pick(r, INGREDIENT_COLS)
        for k, default in (("purchase_price", 0.0), ("conversion_factor", 1.0), ("loss_rate", 0.0),
                           ("current_stock", 0.0), ("safety_stock", 0.0)):
            if payload[k] is None:
                payload[k] = default
        payload["created_at"] = payload["updated_at"] = now_iso()
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO ingredients
                    (id, store_id, name, category_id, purchase_price, purchase_unit, usage_unit,
                     conversion_factor, loss_rate, current_stock, safety_stock, created_at, updated_at)
                VALUES
                    (:id, :store_id, :name, :category_id, :purchase_price, :purchase_unit, :usage_unit,
                     :conversion_factor, :loss_rate, :current_stock, :safety_stock, :created_at, :updated_at)
                """,
                payload,
            )
        return payload["id"]

    def update(self, store_id: str, ingredient_id: str, fields: Dict[str, Any], conn=None) -> int:
        with self._session(conn) as c:
            return self._update(c, "ingredients", ingredient_id, store_id, fields, INGREDIENT_COLS[2:])

    def delete(self, store_id: str, ingredient_id: str) -> int:
        with connect(self.db_path) as c:
            cur = c.execute("DELETE FROM ingredients WHERE id = ? AND store_id = ?", (ingredient_id, store_id))
            return cur.rowcount

    def get(self, store_id: str, ingredient_id: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT * FROM ingredients WHERE id = ? AND store_id = ?", (ingredient_id, store_id)
            ).fetchone()
            return dict(row) if row else None

    def find_by_name(self, store_id: str, name: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT * FROM ingredients WHERE store_id = ? AND lower(name) = lower(?)", (store_id, name)
            ).fetchone()
            return dict(row) if row else None

    def get_all(self, store_id: str, conn=None) -> List[Dict[str, Any]]:
        with self._session(conn) as c:
            return rows_to_dicts(
                c.execute("SELECT * FROM ingredients WHERE store_id = ? ORDER BY name", (store_id,))
            )

    def map_by_id(self, store_id: str, conn=None) -> Dict[str, Dict[str, Any]]:
        return {r["id"]: r for r in self.get_all(store_id, conn)}

    def add_stock(self, conn, ingredient_id: str, delta: float, floor_zero: bool = False) -> float:
        """Soma `delta` (unidade de compra) ao estoque e devolve o novo saldo."""
        row = conn.execute("SELECT current_stock FROM ingredients WHERE id = ?", (ingredient_id,)).fetchone()
        if row is None:
            raise NotFoundError("ingredient", ingredient_id)
        new_stock = float(row[0] or 0.0) + float(delta)
        if floor_zero and new_stock < 0:
            new_stock = 0.0
        conn.execute(
            "UPDATE ingredients SET current_stock = ?, updated_at = ? WHERE id = ?",
            (new_stock, now_iso(), ingredient_id),
        )
        return new_stock


# -------------------------
# Receitas e componentes
# -------------------------

RECIPE_COLS = (
    "id", "store_id", "name", "type", "category_id", "selling_price", "target_cost_rate",
    "description", "batch_size", "batch_unit", "portion_size", "portion_unit",
)


class RecipeRepo(_Repo):
    def insert(self, store_id: str, row: Any, conn=None) -> str:
        r = _as_dict(row)
        r["id"] = r.get("id") or new_id()
        r["store_id"] = store_id
        payload = _pick(r, RECIPE_COLS)
        if payload["batch_size"] is None:
            payload["batch_size"] = 1.0
        if payload["batch_unit"] is None:
            payload["batch_unit"] = "ea"
        payload["created_at"] = payload["updated_at"] = now_iso()
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO recipes
                    (id, store_id, name, type, category_id, selling_price, target_cost_rate,
                     description, batch_size, batch_unit, portion_size, portion_unit,
                     created_at, updated_at)
                VALUES
                    (:id, :store_id, :name, :type, :category_id, :selling_price, :target_cost_rate,
                     :description, :batch_size, :batch_unit, :portion_size, :portion_unit,
                     :created_at, :updated_at)
                """,
                payload,
            )
        return payload["id"]

    def update(self, store_id: str, recipe_id: str, fields: Dict[str, Any], conn=None) -> int:
        with self._session(conn) as c:
            return self._update(c, "recipes", recipe_id, store_id, fields, RECIPE_COLS[2:])

    def insert_components(self, recipe_id: str, components: Iterable[Any], conn=None) -> int:
        rows = []
        for pos, comp in enumerate(components):
            d = _as_dict(comp)
            rows.append({
                "id": new_id(),
                "recipe_id": recipe_id,
                "item_id": d["item_id"],
                "item_type": d["item_type"],
                "quantity": float(d["quantity"]),
                "position": pos,
                "created_at": now_iso(),
            })
        if not rows:
            return 0
        with self._session(conn) as c:
            c.executemany(
                """
                INSERT INTO recipe_components
                    (id, recipe_id, item_id, item_type, quantity, position, created_at)
                VALUES
                    (:id, :recipe_id, :item_id, :item_type, :quantity, :position, :created_at)
                """,
                rows,
            )
        return len(rows)

    def delete_components(self, recipe_id: str, conn=None) -> int:
        with self._session(conn) as c:
            return c.execute("DELETE FROM recipe_components WHERE recipe_id = ?", (recipe_id,)).rowcount

    def delete(self, store_id: str, recipe_id: str, conn=None) -> int:
        """Remove a receita; os componentes caem por ON DELETE CASCADE."""
        with self._session(conn) as c:
            cur = c.execute("DELETE FROM recipes WHERE id = ? AND store_id = ?", (recipe_id, store_id))
            return cur.rowcount

    def get(self, store_id: str, recipe_id: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT * FROM recipes WHERE id = ? AND store_id = ?", (recipe_id, store_id)
            ).fetchone()
            return dict(row) if row else None

    def find_by_name(self, store_id: str, name: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT * FROM recipes WHERE store_id = ? AND lower(name) = lower(?)", (store_id, name)
            ).fetchone()
            return dict(row) if row else None

    def get_all(self, store_id: str, recipe_type: Optional[str] = None, conn=None) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM recipes WHERE store_id = ?"
        params: List[Any] = [store_id]
        if recipe_type:
            sql += " AND type = ?"
            params.append(recipe_type)
        with self._session(conn) as c:
            return rows_to_dicts(c.execute(sql + " ORDER BY name", params))

    def components(self, recipe_id: str, conn=None) -> List[Dict[str, Any]]:
        with self._session(conn) as c:
            return rows_to_dicts(
                c.execute(
                    """SELECT recipe_id, item_id, item_type, quantity, position
                       FROM recipe_components WHERE recipe_id = ? ORDER BY position""",
                    (recipe_id,),
                )
            )

    def all_components(self, store_id: str, conn=None) -> List[Dict[str, Any]]:
        with self._session(conn) as c:
            return rows_to_dicts(
                c.execute(
                    """
                    SELECT rc.recipe_id, rc.item_id, rc.item_type, rc.quantity, rc.position
                    FROM recipe_components rc
                    JOIN recipes r ON r.id = rc.recipe_id
                    WHERE r.store_id = ?
                    ORDER BY rc.recipe_id, rc.position
                    """,
                    (store_id,),
                )
            )


def load_cost_catalog(db_path: str, store_id: str, conn=None) -> CostCatalog:
    """Pré-carrega (em lote) tudo que o resolvedor de custos precisa para uma loja."""
    ing_repo = IngredientRepo(db_path)
    rec_repo = RecipeRepo(db_path)
    return CostCatalog.from_rows(
        ing_repo.get_all(store_id, conn),
        rec_repo.get_all(store_id, conn=conn),
        rec_repo.all_components(store_id, conn),
    )


# -------------------------
# Histórico de estoque
# -------------------------

class StockLogRepo(_Repo):
    def insert(self, ingredient_id: str, adjustment_type: str, quantity: float,
               reason: Optional[str] = None, created_at: Optional[str] = None, conn=None) -> str:
        lid = new_id()
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO stock_adjustment_logs
                    (id, ingredient_id, adjustment_type, quantity, reason, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (lid, ingredient_id, adjustment_type, float(quantity), reason, created_at or now_iso()),
            )
        return lid

    def by_reason(self, reason: str, adjustment_type: str, conn=None) -> List[Dict[str, Any]]:
        with self._session(conn) as c:
            return rows_to_dicts(
                c.execute(
                    """SELECT ingredient_id, quantity FROM stock_adjustment_logs
                       WHERE reason = ? AND adjustment_type = ? ORDER BY created_at""",
                    (reason, adjustment_type),
                )
            )

    def history(
        self,
        store_id: str,
        ingredient_id: Optional[str] = None,
        since: Optional[str] = None,
        types: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        sql = """
            SELECT l.id, l.ingredient_id, i.name, l.adjustment_type, l.quantity, l.reason, l.created_at
            FROM stock_adjustment_logs l
            JOIN ingredients i ON i.id = l.ingredient_id
            WHERE i.store_id = ?
        """
        params: List[Any] = [store_id]
        if ingredient_id:
            sql += " AND l.ingredient_id = ?"
            params.append(ingredient_id)
        if since:
            sql += " AND l.created_at >= ?"
            params.append(since)
        if types:
            sql += f" AND l.adjustment_type IN ({','.join('?' for _ in types)})"
            params.extend(types)
        with connect(self.db_path) as c:
            return rows_to_dicts(c.execute(sql + " ORDER BY l.created_at DESC", params))


# -------------------------
# Compras
# -------------------------

class PurchaseRepo(_Repo):
    def insert(self, store_id: str, supplier_name: Optional[str], purchase_date: str,
               total_amount: float, conn=None) -> str:
        pid = new_id()
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO purchases (id, store_id, supplier_name, purchase_date, total_amount, status, created_at)
                VALUES (?, ?, ?, ?, ?, 'completed', ?)
                """,
                (pid, store_id, supplier_name, purchase_date, float(total_amount), now_iso()),
            )
        return pid

    def insert_items(self, purchase_id: str, items: Iterable[Dict[str, Any]], conn=None) -> int:
        rows = [
            (new_id(), purchase_id, it["ingredient_id"], float(it["quantity"]), float(it["price"]), now_iso())
            for it in items
        ]
        with self._session(conn) as c:
            c.executemany(
                """
                INSERT INTO purchase_items (id, purchase_id, ingredient_id, quantity, price, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def get_all(self, store_id: str, start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM purchases WHERE store_id = ?"
        params: List[Any] = [store_id]
        if start:
            sql += " AND purchase_date >= ?"
            params.append(start)
        if end:
            sql += " AND purchase_date <= ?"
            params.append(end)
        with connect(self.db_path) as c:
            return rows_to_dicts(c.execute(sql + " ORDER BY purchase_date DESC", params))

    def price_history(self, store_id: str) -> List[Dict[str, Any]]:
        """Preços pagos por insumo e fornecedor."""
        with connect(self.db_path) as c:
            return rows_to_dicts(
                c.execute(
                    """
                    SELECT pi.ingredient_id, i.name, COALESCE(p.supplier_name, 'Unknown') AS supplier_name, pi.price
                    FROM purchase_items pi
                    JOIN purchases p ON p.id = pi.purchase_id
                    LEFT JOIN ingredients i ON i.id = pi.ingredient_id
                    WHERE p.store_id = ?
                    """,
                    (store_id,),
                )
            )


# -------------------------
# Pedidos (PDV)
# -------------------------

class OrderRepo(_Repo):
    def insert(self, store_id: str, total_amount: float, total_cost: float, payment_method: str,
               created_at: Optional[str] = None, conn=None) -> Dict[str, Any]:
        row = {
            "id": new_id(),
            "store_id": store_id,
            "total_amount": float(total_amount),
            "total_cost": float(total_cost),
            "payment_method": payment_method,
            "status": "completed",
            "created_at": created_at or now_iso(),
        }
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO orders (id, store_id, total_amount, total_cost, payment_method, status, created_at)
                VALUES (:id, :store_id, :total_amount, :total_cost, :payment_method, :status, :created_at)
                """,
                row,
            )
        return row

    def insert_items(self, order_id: str, items: Iterable[Dict[str, Any]], created_at: str, conn=None) -> int:
        rows = [
            (new_id(), order_id, it["menu_id"], float(it["quantity"]), float(it["price"]), created_at)
            for it in items
        ]
        with self._session(conn) as c:
            c.executemany(
                "INSERT INTO order_items (id, order_id, menu_id, quantity, price, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def get(self, store_id: str, order_id: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT * FROM orders WHERE id = ? AND store_id = ?", (order_id, store_id)
            ).fetchone()
            return dict(row) if row else None

    def items(self, order_id: str, conn=None) -> List[Dict[str, Any]]:
        with self._session(conn) as c:
            return rows_to_dicts(
                c.execute(
                    """
                    SELECT oi.menu_id, oi.quantity, oi.price, r.name
                    FROM order_items oi LEFT JOIN recipes r ON r.id = oi.menu_id
                    WHERE oi.order_id = ?
                    """,
                    (order_id,),
                )
            )

    def set_status(self, order_id: str, status: str, conn=None) -> None:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of {ORDER_STATUSES}, got {status!r}")
        with self._session(conn) as c:
            c.execute("UPDATE orders SET status = ? WHERE id = ?", (status, order_id))

    def list(self, store_id: str, start: Optional[str] = None, end: Optional[str] = None,
             limit: int = 100) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM orders WHERE store_id = ?"
        params: List[Any] = [store_id]
        if start:
            sql += " AND created_at >= ?"
            params.append(f"{start}T00:00:00")
        if end:
            sql += " AND created_at <= ?"
            params.append(f"{end}T23:59:59")
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(int(limit))
        with connect(self.db_path) as c:
            return rows_to_dicts(c.execute(sql, params))

    def sales_summary(self, store_id: str, window_days: int, now: Optional[datetime] = None) -> SalesSummary:
        """Unidades vendidas e receita por menu na janela [now - N dias, now]."""
        now = now or datetime.now()
        since = (now - timedelta(days=window_days)).isoformat(timespec="seconds")
        until = now.isoformat(timespec="seconds")
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                SELECT menu_id AS item_id, SUM(quantity) AS units_sold, SUM(revenue) AS revenue
                FROM vw_menu_sales
                WHERE store_id = ? AND created_at >= ? AND created_at <= ?
                GROUP BY menu_id
                ORDER BY menu_id
                """,
                (store_id, since, until),
            )
            per_item = rows_to_dicts(cur)
        total = sum(float(r["units_sold"] or 0) for r in per_item)
        return SalesSummary(window_days=window_days, per_item=per_item, total_units_sold=total)

    def average_ticket(self, store_id: str, start: str, end: str) -> float:
        """Valor médio por pedido concluído no intervalo de datas (inclusive)."""
        with connect(self.db_path) as c:
            row = c.execute(
                """
                SELECT AVG(total_amount) FROM orders
                WHERE store_id = ? AND status <> 'cancelled'
                  AND created_at >= ? AND created_at <= ?
                """,
                (store_id, f"{start}T00:00:00", f"{end}T23:59:59"),
            ).fetchone()
            return float(row[0] or 0.0)

    def sold_units(self, store_id: str, since: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return rows_to_dicts(
                c.execute(
                    "SELECT menu_id, quantity FROM vw_menu_sales WHERE store_id = ? AND created_at >= ?",
                    (store_id, since),
                )
            )


# -------------------------
# Despesas
# -------------------------

class ExpenseRepo(_Repo):
    def category_id(self, store_id: str, name: str, is_fixed: bool = False, conn=None) -> str:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT id FROM expense_categories WHERE store_id = ? AND name = ?", (store_id, name)
            ).fetchone()
            if row:
                return row[0]
            cid = new_id()
            c.execute(
                """INSERT INTO expense_categories (id, store_id, name, is_fixed, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (cid, store_id, name, 1 if is_fixed else 0, now_iso()),
            )
            return cid

    def insert(self, store_id: str, category_id: Optional[str], amount: float, expense_date: str,
               memo: Optional[str] = None, conn=None) -> str:
        eid = new_id()
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO expense_records (id, store_id, category_id, amount, expense_date, memo, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (eid, store_id, category_id, float(amount), expense_date, memo, now_iso()),
            )
        return eid

    def between(self, store_id: str, start: str, end: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return rows_to_dicts(
                c.execute(
                    """
                    SELECT e.*, ec.name AS category_name, COALESCE(ec.is_fixed, 0) AS is_fixed
                    FROM expense_records e LEFT JOIN expense_categories ec ON ec.id = e.category_id
                    WHERE e.store_id = ? AND e.expense_date >= ? AND e.expense_date <= ?
                    ORDER BY e.expense_date
                    """,
                    (store_id, start, end),
                )
            )


# -------------------------
# Vendas diárias
# -------------------------

class SalesRecordRepo(_Repo):
    def get(self, store_id: str, sales_date: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._session(conn) as c:
            row = c.execute(
                "SELECT * FROM sales_records WHERE store_id = ? AND sales_date = ?", (store_id, sales_date)
            ).fetchone()
            return dict(row) if row else None

    def add_to_day(self, store_id: str, sales_date: str, revenue_delta: float, cogs_delta: float,
                   memo: Optional[str] = None, conn=None) -> None:
        """Acumula receita/CMV no registro do dia (cria se não existir)."""
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO sales_records
                    (id, store_id, sales_date, daily_revenue, daily_cogs, memo, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(store_id, sales_date) DO UPDATE SET
                    daily_revenue = COALESCE(daily_revenue, 0) + excluded.daily_revenue,
                    daily_cogs    = COALESCE(daily_cogs, 0) + excluded.daily_cogs,
                    updated_at    = excluded.updated_at
                """,
                (new_id(), store_id, sales_date, float(revenue_delta), float(cogs_delta), memo,
                 now_iso(), now_iso()),
            )

    def set_revenue(self, store_id: str, sales_date: str, daily_revenue: float,
                    memo: Optional[str] = None, conn=None) -> None:
        """Lançamento manual: sobrescreve a receita e preserva o CMV existente."""
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO sales_records
                    (id, store_id, sales_date, daily_revenue, daily_cogs, memo, created_at, updated_at)
                VALUES (?, ?, ?, ?, 0, ?, ?, ?)
                ON CONFLICT(store_id, sales_date) DO UPDATE SET
                    daily_revenue = excluded.daily_revenue,
                    memo          = COALESCE(excluded.memo, memo),
                    updated_at    = excluded.updated_at
                """,
                (new_id(), store_id, sales_date, float(daily_revenue), memo, now_iso(), now_iso()),
            )

    def between(self, store_id: str, start: str, end: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return rows_to_dicts(
                c.execute(
                    """SELECT * FROM sales_records
                       WHERE store_id = ? AND sales_date >= ? AND sales_date <= ?
                       ORDER BY sales_date""",
                    (store_id, start, end),
                )
            )

    def monthly_financials(self, store_id: str, start: str, end: str) -> List[Dict[str, Any]]:
        """Receita, CMV e despesas por ano-mês (YYYY-MM) a partir de vw_daily_financials."""
        with connect(self.db_path) as c:
            return rows_to_dicts(
                c.execute(
                    """
                    SELECT substr(day, 1, 7) AS month,
                           SUM(revenue) AS revenue, SUM(cogs) AS cogs, SUM(expenses) AS expenses
                    FROM vw_daily_financials
                    WHERE store_id = ? AND day >= ? AND day <= ?
                    GROUP BY substr(day, 1, 7)
                    ORDER BY month
                    """,
                    (store_id, start, end),
                )
            )

    def stock_value(self, store_id: str) -> float:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT COALESCE(SUM(stock_value), 0.0) FROM vw_stock_value WHERE store_id = ?", (store_id,)
            ).fetchone()
            return float(row[0] or 0.0)
