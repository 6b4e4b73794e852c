# menucost/adapters/loaders.py
"""
Loaders para planilhas (XLSX/CSV) de insumos e fichas técnicas.

Essas funções:
- leem planilhas usando pandas (openpyxl para .xlsx);
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelos casos de uso.

Observações:
- Números aceitam vírgula ou ponto ("25,000", "1,5").
- `loss_rate` aceita fração (0.02) ou percentual ("2%", 2).
- Linhas totalmente vazias são ignoradas.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from menucost.adapters.parsers import normalize_unit, parse_number


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key):
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


_INGREDIENT_ALIASES = {
    "name": "name",
    "ingredient": "name",
    "ingredient name": "name",
    "insumo": "name",
    "nome": "name",

    "category": "category",
    "categoria": "category",

    "price": "purchase_price",
    "purchase price": "purchase_price",
    "preco": "purchase_price",
    "preco compra": "purchase_price",

    "purchase unit": "purchase_unit",
    "unit": "purchase_unit",
    "unidade compra": "purchase_unit",
    "package": "purchase_unit",

    "usage unit": "usage_unit",
    "unidade uso": "usage_unit",

    "conversion": "conversion_factor",
    "conversion factor": "conversion_factor",
    "factor": "conversion_factor",
    "fator": "conversion_factor",
    "fator conversao": "conversion_factor",

    "loss": "loss_rate",
    "loss rate": "loss_rate",
    "waste": "loss_rate",
    "perda": "loss_rate",

    "stock": "current_stock",
    "current stock": "current_stock",
    "estoque": "current_stock",

    "safety stock": "safety_stock",
    "minimum stock": "safety_stock",
    "estoque minimo": "safety_stock",
}

_RECIPE_ALIASES = {
    "recipe": "recipe",
    "recipe name": "recipe",
    "menu": "recipe",
    "receita": "recipe",

    "type": "recipe_type",
    "recipe type": "recipe_type",
    "tipo": "recipe_type",

    "category": "category",
    "categoria": "category",

    "price": "selling_price",
    "selling price": "selling_price",
    "preco venda": "selling_price",

    "batch size": "batch_size",
    "yield": "batch_size",
    "rendimento": "batch_size",
    "batch unit": "batch_unit",

    "component": "component",
    "item": "component",
    "ingredient": "component",
    "componente": "component",

    "component type": "component_type",
    "item type": "component_type",

    "quantity": "quantity",
    "qty": "quantity",
    "qtd": "quantity",
    "quantidade": "quantity",
}


def _normalize_columns(df: pd.DataFrame, aliases: Dict[str, str]) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = aliases.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read_table(path: str) -> pd.DataFrame:
    if Path(path).suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype="string")
    else:
        df = pd.read_excel(path, dtype="string")
    return df.dropna(how="all")


def _loss_rate(val: Optional[str]) -> Optional[float]:
    if val is None:
        return None
    pct = val.endswith("%")
    num = parse_number(val.rstrip("%"))
    if num is None:
        return None
    if pct or num > 1:
        return num / 100.0
    return num


# ---------------------------
# loaders públicos
# ---------------------------

def load_ingredients(path: str) -> List[Dict[str, Any]]:
    """Lê planilha de INSUMOS.

    Campos de saída (chaves do dict por linha):
      - name, category: str | None
      - purchase_price: float | None
      - purchase_unit, usage_unit: str | None
      - conversion_factor: float | None (None → sugerido pelo caso de uso)
      - loss_rate: fração | None
      - current_stock, safety_stock: float | None
    """
    df = _normalize_columns(_read_table(path), _INGREDIENT_ALIASES)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        name = _safe_get(row, "name")
        if not name:
            continue
        out.append({
            "name": name,
            "category": _safe_get(row, "category"),
            "purchase_price": parse_number(_safe_get(row, "purchase_price")),
            "purchase_unit": _safe_get(row, "purchase_unit"),
            "usage_unit": normalize_unit(_safe_get(row, "usage_unit")),
            "conversion_factor": parse_number(_safe_get(row, "conversion_factor")),
            "loss_rate": _loss_rate(_safe_get(row, "loss_rate")),
            "current_stock": parse_number(_safe_get(row, "current_stock")),
            "safety_stock": parse_number(_safe_get(row, "safety_stock")),
        })
    return out


def load_recipe_components(path: str) -> List[Dict[str, Any]]:
    """Lê planilha de FICHAS TÉCNICAS (uma linha por componente).

    Colunas de cabeçalho da receita (recipe_type, category, selling_price,
    batch_size, batch_unit) podem vir só na primeira linha de cada receita;
    quando a coluna `recipe` vem vazia, a linha continua a receita anterior.
    """
    df = _normalize_columns(_read_table(path), _RECIPE_ALIASES)
    out: List[Dict[str, Any]] = []
    current: Optional[str] = None
    for _, row in df.iterrows():
        recipe = _safe_get(row, "recipe") or current
        component = _safe_get(row, "component")
        if not recipe:
            continue
        current = recipe
        rtype = _safe_get(row, "recipe_type")
        ctype = _safe_get(row, "component_type")
        out.append({
            "recipe": recipe,
            "recipe_type": rtype.lower() if rtype else None,
            "category": _safe_get(row, "category"),
            "selling_price": parse_number(_safe_get(row, "selling_price")),
            "batch_size": parse_number(_safe_get(row, "batch_size")),
            "batch_unit": normalize_unit(_safe_get(row, "batch_unit")),
            "component": component,
            "component_type": ctype.lower() if ctype else None,
            "quantity": parse_number(_safe_get(row, "quantity")),
        })
    return out
