# menucost/infra/logger.py
"""
Sistema de logging para as operações de custos.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: cálculo de custos, pedidos do PDV, movimentações de
estoque e operações no banco de dados.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from menucost.config import LOGS_DIR as _LOGS_DIR


def _flag(name: str) -> bool:
    return os.environ.get(name, "0").strip().lower() in {"1", "true", "yes", "on"}


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = _flag("MENUCOST_LOGGING")
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = _flag("MENUCOST_OUTPUT")

def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

LOGS_DIR = Path(_LOGS_DIR)

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "costing": LOGS_DIR / "costing.log",
    "orders": LOGS_DIR / "orders.log",
    "stock": LOGS_DIR / "stock.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

# Loggers específicos para cada operação
transaction_logger = setup_logger('menucost.transactions', str(LOG_FILES["transactions"]))
costing_logger = setup_logger('menucost.costing', str(LOG_FILES["costing"]))
order_logger = setup_logger('menucost.orders', str(LOG_FILES["orders"]))
stock_logger = setup_logger('menucost.stock', str(LOG_FILES["stock"]))
database_logger = setup_logger('menucost.database', str(LOG_FILES["database"]))
system_logger = setup_logger('menucost.system', str(LOG_FILES["system"]))

def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (create_order, create_purchase, ...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")

def log_costing(event: str, recipe_id: str, level: str = "info", **kwargs) -> None:
    """
    Log do cálculo de custos (árvore BOM, rateio, margem).

    Args:
        event: Evento (resolved, missing_reference, cycle, overhead_fallback)
        recipe_id: Receita raiz do cálculo
        level: Nível do log (info, warning, error)
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"event": event, "recipe_id": recipe_id, **kwargs}
    log_method = getattr(costing_logger, level.lower(), costing_logger.info)
    log_method(f"COST_{event.upper()}: {log_data}")

def log_order(action: str, order_id: str, **kwargs) -> None:
    """Log específico para pedidos do PDV (create, cancel)."""
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "order_id": order_id, **kwargs}
    order_logger.info(f"ORDER_{action.upper()}: {log_data}")

def log_stock(adjustment_type: str, ingredient_id: str, quantity: float, **kwargs) -> None:
    """
    Log específico para movimentações de estoque.

    Args:
        adjustment_type: purchase, spoilage, order, correction, refund
        ingredient_id: Insumo movimentado
        quantity: Quantidade (unidade de compra, com sinal)
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"ingredient_id": ingredient_id, "quantity": quantity, **kwargs}
    stock_logger.info(f"STOCK_{adjustment_type.upper()}: {log_data}")

def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, DELETE, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")

def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log para operações de arquivo (importação de planilhas)."""
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, costing, orders, stock, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string (None com o logging desabilitado)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Erro ao ler log {log_type}: {e}"
    return ''.join(all_lines[-lines:])
