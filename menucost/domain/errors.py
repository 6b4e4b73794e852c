"""
Exceções do domínio de custos.

- NotFoundError: referência a ingrediente/receita/loja inexistente.
- CyclicCompositionError: receita que contém a si mesma (direta ou transitivamente).
- AllocationUnavailable: falha ao obter o peso de vendas para rateio de custo fixo.
- ValidationError: dados inválidos em operações de escrita.
"""

from __future__ import annotations

from typing import Iterable


class MenuCostError(Exception):
    """Base de todas as exceções do pacote."""


class NotFoundError(MenuCostError):
    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class CyclicCompositionError(MenuCostError):
    """A recipe references itself through its component graph."""

    def __init__(self, path: Iterable[str]):
        self.path = list(path)
        super().__init__("cyclic recipe composition: " + " -> ".join(self.path))


class AllocationUnavailable(MenuCostError):
    """Sales history could not be read for overhead allocation."""


class ValidationError(MenuCostError, ValueError):
    pass
