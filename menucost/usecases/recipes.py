# menucost/usecases/recipes.py
"""
UC: Cadastro de fichas técnicas (receitas + componentes).

A gravação de uma receita e de seus componentes acontece numa única
transação SQLite. O progresso é acompanhado por `RecipeSave`:

    pending -> components_written -> committed
    pending | components_written -> rolled_back

Leitores nunca enxergam uma receita sem componentes ou com componentes
pela metade: o commit só ocorre quando todas as escritas terminaram.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from menucost.config import DB_PATH
from menucost.adapters.loaders import load_recipe_components
from menucost.domain.bom import COMPOSITE_TYPES, find_cycle
from menucost.domain.errors import CyclicCompositionError, NotFoundError, ValidationError
from menucost.domain.models import ITEM_TYPES, RECIPE_TYPES
from menucost.infra.db import connect
from menucost.infra.repositories import (
    CategoryRepo,
    IngredientRepo,
    RecipeRepo,
    StoreRepo,
    _as_dict,
    load_cost_catalog,
)
from menucost.infra.logger import (
    log_costing, log_database_operation, log_file_operation,
    log_system_event, log_transaction,
)


class RecipeSave:
    """Estado de uma gravação de receita."""

    PENDING = "pending"
    COMPONENTS_WRITTEN = "components_written"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    _TRANSITIONS = {
        PENDING: (COMPONENTS_WRITTEN, ROLLED_BACK),
        COMPONENTS_WRITTEN: (COMMITTED, ROLLED_BACK),
        COMMITTED: (),
        ROLLED_BACK: (),
    }

    def __init__(self, recipe_id: Optional[str] = None):
        self.recipe_id = recipe_id
        self.state = self.PENDING
        self.history: List[str] = [self.PENDING]

    def advance(self, state: str) -> None:
        if state not in self._TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid recipe save transition: {self.state} -> {state}")
        self.state = state
        self.history.append(state)


# ----------------------
# validação
# ----------------------

def _positive(val: Any, field: str) -> float:
    try:
        v = float(val)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {val!r}")
    if v <= 0:
        raise ValidationError(f"{field} must be positive, got {v}")
    return v


def _validate_recipe_fields(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    out = dict(fields)
    if not partial or "name" in out:
        name = (out.get("name") or "").strip()
        if not name:
            raise ValidationError("recipe name is required")
        out["name"] = name
    if not partial or "type" in out:
        rtype = out.get("type") or "menu"
        if rtype not in RECIPE_TYPES:
            raise ValidationError(f"recipe type must be one of {RECIPE_TYPES}, got {rtype!r}")
        out["type"] = rtype
    if out.get("selling_price") is not None:
        price = float(out["selling_price"])
        if price < 0:
            raise ValidationError("selling_price must not be negative")
        out["selling_price"] = price
    if out.get("batch_size") is not None:
        out["batch_size"] = _positive(out["batch_size"], "batch_size")
    return out


def _validate_components(catalog, recipe_id: Optional[str], components: Iterable[Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for raw in components:
        comp = _as_dict(raw)
        item_id = comp.get("item_id")
        item_type = comp.get("item_type")
        if item_type not in ITEM_TYPES:
            raise ValidationError(f"item_type must be one of {ITEM_TYPES}, got {item_type!r}")
        qty = _positive(comp.get("quantity"), "quantity")
        if item_type == "ingredient":
            if catalog.get_ingredient(item_id) is None:
                raise NotFoundError("ingredient", item_id)
        else:
            if recipe_id is not None and item_id == recipe_id:
                raise CyclicCompositionError([recipe_id, recipe_id])
            sub = catalog.get_recipe(item_id)
            if sub is None:
                raise NotFoundError(item_type, item_id)
            if sub.get("type") != item_type:
                raise ValidationError(f"{item_id} is a {sub.get('type')}, not a {item_type}")
        out.append({"item_id": item_id, "item_type": item_type, "quantity": qty})
    return out


# ----------------------
# gravação transacional
# ----------------------

def _save(
    store_id: str,
    fields: Dict[str, Any],
    components: Optional[Iterable[Any]],
    recipe_id: Optional[str],
    db_path: str,
) -> RecipeSave:
    save = RecipeSave(recipe_id)
    repo = RecipeRepo(db_path)
    try:
        with connect(db_path) as c:
            StoreRepo(db_path).require(store_id, conn=c)
            if recipe_id is not None and repo.get(store_id, recipe_id, conn=c) is None:
                raise NotFoundError("recipe", recipe_id)

            comps = None
            if components is not None:
                catalog = load_cost_catalog(db_path, store_id, conn=c)
                comps = _validate_components(catalog, recipe_id, components)
                if recipe_id is not None:
                    cycle = find_cycle(catalog, recipe_id, comps)
                    if cycle:
                        raise CyclicCompositionError(cycle)

            fields = _category_id(store_id, dict(fields), db_path, conn=c)

            if recipe_id is None:
                recipe_id = repo.insert(store_id, fields, conn=c)
                save.recipe_id = recipe_id
                log_database_operation("recipes", "INSERT", 1, recipe_id=recipe_id)
            elif fields:
                repo.update(store_id, recipe_id, fields, conn=c)
                log_database_operation("recipes", "UPDATE", 1, recipe_id=recipe_id)

            if comps is not None:
                repo.delete_components(recipe_id, conn=c)
                n = repo.insert_components(recipe_id, comps, conn=c)
                log_database_operation("recipe_components", "REPLACE", n, recipe_id=recipe_id)
            save.advance(RecipeSave.COMPONENTS_WRITTEN)
        save.advance(RecipeSave.COMMITTED)
    except Exception:
        save.advance(RecipeSave.ROLLED_BACK)
        raise
    return save


def _category_id(store_id: str, fields: Dict[str, Any], db_path: str, conn=None) -> Dict[str, Any]:
    cat = fields.pop("category", None)
    if cat and not fields.get("category_id"):
        fields["category_id"] = CategoryRepo(db_path).get_or_create(
            store_id, cat, fields.get("type") or "menu", conn=conn
        )
    return fields


def create_recipe(
    store_id: str,
    recipe: Any,
    components: Iterable[Any] = (),
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Cria uma receita (menu ou prep) com seus componentes numa só transação."""
    fields = _as_dict(recipe)
    fields.pop("id", None)
    log_system_event("create_recipe_start", {"store_id": store_id, "name": fields.get("name")})
    try:
        fields = _validate_recipe_fields(fields)
        save = _save(store_id, fields, list(components), None, db_path)
        result = {"recipe_id": save.recipe_id, "state": save.state, "history": save.history}
        log_transaction("create_recipe", {"store_id": store_id, "name": fields["name"]}, result=result)
        return result
    except Exception as e:
        log_transaction("create_recipe", {"store_id": store_id, "name": fields.get("name")}, error=str(e))
        log_system_event("create_recipe_error", {"error": str(e)}, level="error")
        if isinstance(e, CyclicCompositionError):
            log_costing("cycle", fields.get("name") or "", level="error", path=e.path)
        raise


def update_recipe(
    store_id: str,
    recipe_id: str,
    changes: Optional[Dict[str, Any]] = None,
    components: Optional[Iterable[Any]] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Atualiza campos e (opcionalmente) substitui a lista de componentes.

    `components=None` preserva os componentes atuais.
    """
    changes = dict(changes or {})
    changes.pop("id", None)
    log_system_event("update_recipe_start", {"store_id": store_id, "recipe_id": recipe_id})
    try:
        fields = _validate_recipe_fields(changes, partial=True)
        comps = list(components) if components is not None else None
        save = _save(store_id, fields, comps, recipe_id, db_path)
        result = {"recipe_id": recipe_id, "state": save.state, "history": save.history}
        log_transaction("update_recipe", {"store_id": store_id, "recipe_id": recipe_id}, result=result)
        return result
    except Exception as e:
        log_transaction("update_recipe", {"store_id": store_id, "recipe_id": recipe_id}, error=str(e))
        log_system_event("update_recipe_error", {"error": str(e)}, level="error")
        if isinstance(e, CyclicCompositionError):
            log_costing("cycle", recipe_id, level="error", path=e.path)
        raise


def delete_recipe(store_id: str, recipe_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Remove a receita e seus componentes.

    Receitas que usavam esta como componente ficam com uma referência
    órfã, que o cálculo de custo omite e reporta em `missing`.
    """
    repo = RecipeRepo(db_path)
    try:
        with connect(db_path) as c:
            n = repo.delete(store_id, recipe_id, conn=c)
            if n == 0:
                raise NotFoundError("recipe", recipe_id)
            dangling = c.execute(
                "SELECT COUNT(*) FROM recipe_components WHERE item_id = ?", (recipe_id,)
            ).fetchone()[0]
        log_database_operation("recipes", "DELETE", n, recipe_id=recipe_id)
        if dangling:
            log_system_event(
                "recipe_deleted_while_referenced",
                {"recipe_id": recipe_id, "references": dangling},
                level="warning",
            )
        result = {"recipe_id": recipe_id, "deleted": True, "dangling_references": int(dangling)}
        log_transaction("delete_recipe", {"store_id": store_id, "recipe_id": recipe_id}, result=result)
        return result
    except Exception as e:
        log_transaction("delete_recipe", {"store_id": store_id, "recipe_id": recipe_id}, error=str(e))
        raise


# ----------------------
# importação em lote
# ----------------------

def import_recipes(store_id: str, path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Importa fichas técnicas de uma planilha, resolvendo componentes por nome.

    Receitas 'prep' são gravadas antes dos menus para que possam ser
    referenciadas por eles. Receitas já existentes (mesmo nome) têm os
    componentes substituídos. Componentes não encontrados são ignorados
    e listados em `unresolved`.
    """
    log_system_event("import_recipes_start", {"store_id": store_id, "file_path": path})
    log_file_operation("import", path)
    try:
        rows = load_recipe_components(path)
        log_file_operation("import", path, rows_processed=len(rows))

        groups: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for r in rows:
            g = groups.setdefault(r["recipe"], {"header": {"name": r["recipe"]}, "lines": []})
            h = g["header"]
            for src, dst in (("recipe_type", "type"), ("category", "category"), ("selling_price", "selling_price"),
                             ("batch_size", "batch_size"), ("batch_unit", "batch_unit")):
                if r.get(src) is not None and h.get(dst) is None:
                    h[dst] = r[src]
            if r.get("component"):
                g["lines"].append(r)

        ordered = sorted(groups.values(), key=lambda g: 0 if g["header"].get("type") == "prep" else 1)
        repo = RecipeRepo(db_path)
        ing_repo = IngredientRepo(db_path)

        created = updated = 0
        unresolved: List[Dict[str, str]] = []
        for g in ordered:
            header = dict(g["header"])
            header.setdefault("type", "menu")
            comps = []
            for line in g["lines"]:
                name = line["component"]
                ctype = line.get("component_type")
                ref = None
                if ctype in (None, "ingredient"):
                    ing = ing_repo.find_by_name(store_id, name)
                    if ing:
                        ref = {"item_id": ing["id"], "item_type": "ingredient"}
                if ref is None and ctype in (None,) + COMPOSITE_TYPES:
                    rec = repo.find_by_name(store_id, name)
                    if rec:
                        ref = {"item_id": rec["id"], "item_type": rec["type"]}
                if ref is None or not line.get("quantity"):
                    unresolved.append({"recipe": header["name"], "component": name})
                    continue
                comps.append({**ref, "quantity": line["quantity"]})

            existing = repo.find_by_name(store_id, header["name"])
            if existing:
                header.pop("name")
                update_recipe(store_id, existing["id"], header, comps, db_path=db_path)
                updated += 1
            else:
                create_recipe(store_id, header, comps, db_path=db_path)
                created += 1

        if unresolved:
            log_system_event("import_recipes_unresolved", {"count": len(unresolved)}, level="warning")
        result = {"file": path, "created": created, "updated": updated, "unresolved": unresolved}
        log_transaction("import_recipes", {"file": path, "rows_count": len(rows)}, result=result)
        return result
    except Exception as e:
        log_transaction("import_recipes", {"file": path}, error=str(e))
        log_system_event("import_recipes_error", {"file_path": path, "error": str(e)}, level="error")
        raise
