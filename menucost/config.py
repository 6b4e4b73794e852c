# menucost/config.py
"""
Configurações globais e valores padrão do sistema de custos.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("MENUCOST_DB", os.path.join(os.getcwd(), "menucost.db"))

# Diretório dos arquivos de log
LOGS_DIR = os.environ.get(
    "MENUCOST_LOG_DIR",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs"),
)


@dataclass
class DefaultConfig:
    """Default values for analytics and costing parameters."""
    analysis_window_days: int = 30          # trailing window for sales weights / matrix
    forecast_window_days: int = 30          # usage history for procurement forecast
    depletion_window_days: int = 14
    reorder_horizon_days: int = 7           # suggest purchase when fewer days remain
    cover_days: int = 14                    # days of usage a suggested purchase covers
    service_level: float = 0.95
    lead_time_days: float = 2.0
    default_cogs_rate: float = 35.0         # % of revenue when no sales records exist
    default_variable_expense_rate: float = 5.0
    default_target_sales_count: int = 1000
    operating_days: int = 25
    min_yield: float = 0.001                # divisor floor when loss_rate >= 1
    purchase_expense_category: str = "Ingredient purchases"


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
