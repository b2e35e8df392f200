# src/dagflow/core/signals.py
"""
Sinais de controle trocados entre steps, iterators e engine.

- `NO_VALUE`: sentinela "nenhum valor" do protocolo de iteração; nunca
  chega à avaliação de configuração/expressões de um step
- `AbortSignal`: pedido explícito de abort devolvido por `execute`
  (ou registrado via `request_abort`), tratado pelo engine sem exceção
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class _NoValue:
    _instance: Optional["_NoValue"] = None

    def __new__(cls) -> "_NoValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_VALUE"


NO_VALUE = _NoValue()


@dataclass(frozen=True)
class AbortSignal:
    reason: str
    step: Optional[str] = None
