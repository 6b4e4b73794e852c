# menucost/usecases/stores.py
"""
UC: Cadastro de lojas e parâmetros de rateio de custo fixo.
"""
from __future__ import annotations

from typing import Any, Dict, List

from menucost.config import DB_PATH, DEFAULTS
from menucost.domain.errors import NotFoundError, ValidationError
from menucost.infra.repositories import StoreRepo, _as_dict
from menucost.infra.logger import log_database_operation, log_transaction


def _validate(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    if "name" in out and not (out["name"] or "").strip():
        raise ValidationError("store name is required")
    if out.get("monthly_fixed_cost") is not None:
        if float(out["monthly_fixed_cost"]) < 0:
            raise ValidationError("monthly_fixed_cost must not be negative")
    if out.get("monthly_target_sales_count") is not None:
        if int(out["monthly_target_sales_count"]) < 0:
            raise ValidationError("monthly_target_sales_count must not be negative")
    return out


def create_store(store: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    fields = _validate(_as_dict(store))
    if not (fields.get("name") or "").strip():
        raise ValidationError("store name is required")
    if fields.get("monthly_target_sales_count") is None:
        fields["monthly_target_sales_count"] = DEFAULTS.default_target_sales_count
    try:
        store_id = StoreRepo(db_path).insert(fields)
    except Exception as e:
        log_transaction("create_store", {"name": fields.get("name")}, error=str(e))
        raise
    log_database_operation("stores", "INSERT", 1, store_id=store_id)
    log_transaction("create_store", {"name": fields["name"]}, result=store_id)
    return {"store_id": store_id, "name": fields["name"]}


def update_store(store_id: str, changes: Dict[str, Any], db_path: str = DB_PATH) -> Dict[str, Any]:
    """Altera dados da loja (inclusive custo fixo mensal e meta de vendas)."""
    fields = _validate(changes)
    repo = StoreRepo(db_path)
    if repo.update(store_id, fields) == 0 and repo.get(store_id) is None:
        raise NotFoundError("store", store_id)
    log_database_operation("stores", "UPDATE", 1, store_id=store_id, fields=list(fields))
    return repo.require(store_id)


def list_stores(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return StoreRepo(db_path).get_all()
