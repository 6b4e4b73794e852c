"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (lojas, insumos, receitas, componentes, pedidos, compras,
    despesas, vendas diárias e histórico de ajustes de estoque)
V2: colunas de porção/meta de custo em receitas e flag de despesa fixa
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Lojas (parâmetros de rateio de custo fixo)
    """
    CREATE TABLE IF NOT EXISTS stores (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        business_number TEXT,
        address TEXT,
        contact TEXT,
        monthly_fixed_cost REAL DEFAULT 0,
        monthly_target_sales_count INTEGER DEFAULT 1000,
        created_at TEXT,
        updated_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL, -- 'ingredient' | 'menu' | 'prep'
        created_at TEXT,
        UNIQUE (store_id, name, type),
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
    );
    """,
    # Insumos
    """
    CREATE TABLE IF NOT EXISTS ingredients (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        name TEXT NOT NULL,
        category_id TEXT,
        purchase_price REAL DEFAULT 0,
        purchase_unit TEXT NOT NULL,
        usage_unit TEXT NOT NULL,
        conversion_factor REAL DEFAULT 1 CHECK (conversion_factor > 0),
        loss_rate REAL DEFAULT 0,
        current_stock REAL DEFAULT 0,
        safety_stock REAL DEFAULT 0,
        created_at TEXT,
        updated_at TEXT,
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE,
        FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
    );
    """,
    # Receitas (menu vendável ou prep)
    """
    CREATE TABLE IF NOT EXISTS recipes (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL, -- 'menu' | 'prep'
        category_id TEXT,
        selling_price REAL,
        description TEXT,
        batch_size REAL DEFAULT 1,
        batch_unit TEXT DEFAULT 'ea',
        created_at TEXT,
        updated_at TEXT,
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE,
        FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
    );
    """,
    # Componentes: item_id sem FK (ingrediente ou receita); órfãos são omitidos no custo
    """
    CREATE TABLE IF NOT EXISTS recipe_components (
        id TEXT PRIMARY KEY,
        recipe_id TEXT NOT NULL,
        item_id TEXT NOT NULL,
        item_type TEXT NOT NULL, -- 'ingredient' | 'menu' | 'prep'
        quantity REAL NOT NULL,
        position INTEGER DEFAULT 0,
        created_at TEXT,
        FOREIGN KEY (recipe_id) REFERENCES recipes(id) ON DELETE CASCADE
    );
    """,
    # Histórico de ajustes de estoque (imutável)
    """
    CREATE TABLE IF NOT EXISTS stock_adjustment_logs (
        id TEXT PRIMARY KEY,
        ingredient_id TEXT NOT NULL,
        adjustment_type TEXT NOT NULL, -- purchase|spoilage|order|correction|refund
        quantity REAL NOT NULL,        -- purchase units, signed
        reason TEXT,
        created_at TEXT,
        FOREIGN KEY (ingredient_id) REFERENCES ingredients(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS purchases (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        supplier_name TEXT,
        purchase_date TEXT,
        total_amount REAL DEFAULT 0,
        status TEXT DEFAULT 'completed', -- 'completed' | 'draft'
        created_at TEXT,
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_items (
        id TEXT PRIMARY KEY,
        purchase_id TEXT NOT NULL,
        ingredient_id TEXT NOT NULL,
        quantity REAL NOT NULL,
        price REAL NOT NULL,
        created_at TEXT,
        FOREIGN KEY (purchase_id) REFERENCES purchases(id) ON DELETE CASCADE
    );
    """,
    # Pedidos do PDV
    """
    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        total_amount REAL NOT NULL,
        total_cost REAL NOT NULL,
        payment_method TEXT NOT NULL, -- 'card' | 'cash' | 'transfer'
        status TEXT DEFAULT 'completed', -- 'completed' | 'cancelled'
        created_at TEXT,
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id TEXT PRIMARY KEY,
        order_id TEXT NOT NULL,
        menu_id TEXT NOT NULL,
        quantity REAL NOT NULL,
        price REAL NOT NULL,
        created_at TEXT,
        FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS expense_categories (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        name TEXT NOT NULL,
        default_amount REAL,
        created_at TEXT,
        UNIQUE (store_id, name),
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS expense_records (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        category_id TEXT,
        amount REAL NOT NULL,
        expense_date TEXT,
        memo TEXT,
        created_at TEXT,
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE,
        FOREIGN KEY (category_id) REFERENCES expense_categories(id) ON DELETE SET NULL
    );
    """,
    # Vendas diárias consolidadas (uma linha por loja/dia)
    """
    CREATE TABLE IF NOT EXISTS sales_records (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL,
        sales_date TEXT NOT NULL,
        daily_revenue REAL DEFAULT 0,
        daily_cogs REAL DEFAULT 0,
        memo TEXT,
        created_at TEXT,
        updated_at TEXT,
        UNIQUE (store_id, sales_date),
        FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # recipes: meta de custo e porção
    _ensure_column(conn, "recipes", "target_cost_rate", "target_cost_rate REAL")
    _ensure_column(conn, "recipes", "portion_size", "portion_size REAL")
    _ensure_column(conn, "recipes", "portion_unit", "portion_unit TEXT")
    # expense_categories: distingue despesa fixa de variável
    _ensure_column(conn, "expense_categories", "is_fixed", "is_fixed INTEGER DEFAULT 0")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
