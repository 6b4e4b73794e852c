"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_menu_sales:        unidades vendidas e receita por item de pedido
                        (pedidos cancelados excluídos).
- vw_daily_financials:  receita, CMV e despesas por loja e dia.
- vw_stock_value:       valor do estoque atual por insumo.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            ---------------------------
            -- Vendas por item (pedidos válidos)
            ---------------------------
            DROP VIEW IF EXISTS vw_menu_sales;
            CREATE VIEW vw_menu_sales AS
            SELECT
                o.store_id                 AS store_id,
                o.id                       AS order_id,
                oi.menu_id                 AS menu_id,
                oi.quantity                AS quantity,
                oi.quantity * oi.price     AS revenue,
                o.created_at               AS created_at,
                date(o.created_at)         AS sales_date
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            WHERE COALESCE(o.status, 'completed') <> 'cancelled';

            ---------------------------
            -- Financeiro diário (receita/CMV dos registros de venda + despesas)
            ---------------------------
            DROP VIEW IF EXISTS vw_daily_financials;
            CREATE VIEW vw_daily_financials AS
            SELECT store_id, day, SUM(revenue) AS revenue, SUM(cogs) AS cogs, SUM(expenses) AS expenses
            FROM (
                SELECT store_id, sales_date AS day,
                       COALESCE(daily_revenue, 0.0) AS revenue,
                       COALESCE(daily_cogs, 0.0)    AS cogs,
                       0.0                          AS expenses
                FROM sales_records
                UNION ALL
                SELECT store_id, expense_date AS day, 0.0, 0.0, COALESCE(amount, 0.0)
                FROM expense_records
            )
            GROUP BY store_id, day;

            ---------------------------
            -- Valor do estoque atual
            ---------------------------
            DROP VIEW IF EXISTS vw_stock_value;
            CREATE VIEW vw_stock_value AS
            SELECT
                id AS ingredient_id,
                store_id,
                name,
                COALESCE(current_stock, 0.0) AS current_stock,
                COALESCE(current_stock, 0.0) * COALESCE(purchase_price, 0.0) AS stock_value
            FROM ingredients;
            """
        )

        # --------------------------------
        # Índices úteis (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_ingredients_store  ON ingredients(store_id);
            CREATE INDEX IF NOT EXISTS idx_recipes_store      ON recipes(store_id);
            CREATE INDEX IF NOT EXISTS idx_components_recipe  ON recipe_components(recipe_id);
            CREATE INDEX IF NOT EXISTS idx_orders_store_date  ON orders(store_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_order_items_order  ON order_items(order_id);
            CREATE INDEX IF NOT EXISTS idx_stock_logs_ing     ON stock_adjustment_logs(ingredient_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_expenses_store     ON expense_records(store_id, expense_date);
            CREATE INDEX IF NOT EXISTS idx_purchases_store    ON purchases(store_id, purchase_date);
            """
        )
