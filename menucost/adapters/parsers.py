"""
Utilidades de parsing para rótulos de unidade e números de planilha.

Rótulos de unidade de compra costumam vir no formato "<quantidade><unidade>"
(por exemplo "20kg", "1.5 L", "500 g", "box"). A partir do rótulo de compra
e da unidade de uso é possível sugerir o fator de conversão (quantas
unidades de uso cabem numa unidade de compra).
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

_LABEL_RE = re.compile(r"^\s*([-+]?\d+(?:[.,]\d+)?)?\s*([^\d\s].*?)?\s*$")

# fator de conversão entre unidades métricas (de -> para)
_UNIT_FACTORS = {
    ("kg", "g"): 1000.0,
    ("g", "kg"): 0.001,
    ("l", "ml"): 1000.0,
    ("ml", "l"): 0.001,
}

_UNIT_ALIASES = {
    "kgs": "kg",
    "kilo": "kg",
    "gr": "g",
    "grs": "g",
    "lt": "l",
    "lts": "l",
    "litro": "l",
    "liter": "l",
    "un": "ea",
    "unit": "ea",
    "pc": "ea",
    "pcs": "ea",
}


def normalize_unit(unit: Optional[str]) -> Optional[str]:
    if unit is None:
        return None
    u = str(unit).strip().lower()
    if not u:
        return None
    return _UNIT_ALIASES.get(u, u)


def parse_number(val: Any) -> Optional[float]:
    """Converte "25,000", "1,5", "1.234,56" ou 12 em float (None se vazio/inválido).

    Vírgula seguida de exatamente três dígitos é tratada como separador de
    milhar; caso contrário, como separador decimal.
    """
    if val is None:
        return None
    if isinstance(val, (int, float)):
        return float(val)
    s = str(val).strip().replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        # o último separador é o decimal
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        if re.fullmatch(r"[-+]?\d{1,3}(,\d{3})+", s):
            s = s.replace(",", "")
        else:
            s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def parse_unit_label(label: Optional[str]) -> Tuple[Optional[float], Optional[str]]:
    """Interpreta um rótulo de unidade de compra.

    Exemplos:
        "20kg"   → (20.0, "kg")
        "1,5 L"  → (1.5, "l")
        "box"    → (1.0, "box")
        ""       → (None, None)
    """
    if label is None:
        return None, None
    s = str(label).strip()
    if not s:
        return None, None
    m = _LABEL_RE.match(s)
    if not m:
        return None, None
    num_s, unit = m.group(1), m.group(2)
    qty = float(num_s.replace(",", ".")) if num_s else 1.0
    return qty, normalize_unit(unit)


def suggest_conversion_factor(purchase_unit: Optional[str], usage_unit: Optional[str]) -> Optional[float]:
    """Sugere o fator de conversão (unidades de uso por unidade de compra).

    "20kg" → "g"   = 20000
    "1l"   → "ml"  = 1000
    "500g" → "kg"  = 0.5
    "box"  → "box" = 1

    Retorna None quando as unidades não são conversíveis entre si.
    """
    qty, p_unit = parse_unit_label(purchase_unit)
    u_unit = normalize_unit(usage_unit)
    if qty is None or p_unit is None or u_unit is None:
        return None
    if p_unit == u_unit:
        return qty
    factor = _UNIT_FACTORS.get((p_unit, u_unit))
    if factor is None:
        return None
    return round(qty * factor, 6)
