"""
Tipo de resultado explícito `Ok(value) | Err(kind, context)`.

Usado onde o fluxo de controle não deve depender de exceções:
avaliação de expressões, construção do grafo de steps e sinais de
abort. Exceções ficam reservadas para condições irrecuperáveis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, TypeVar, Union

T = TypeVar("T")

# Categorias estáveis de Err
GRAPH = "graph"
CONFIGURATION = "configuration"
EXPRESSION = "expression"
RUNTIME = "runtime"
LOCK = "lock"
ABORT = "abort"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: str
    context: Dict[str, Any] = field(default_factory=dict)

    def is_ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.context.get("message", self.kind))

    def unwrap(self) -> Any:
        raise ValueError(f"unwrap() called on Err({self.kind}): {self.message}")


Result = Union[Ok, Err]


