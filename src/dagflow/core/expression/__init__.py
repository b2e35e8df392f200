# src/dagflow/core/expression/__init__.py
"""
Avaliação de expressões `${{ ... }}` embutidas na configuração.

Componentes:
    - evaluator → `ExpressionEvaluator`, handlers de falha e fragmentos
    - functions → funções disponíveis dentro das expressões
"""

from .evaluator import (
    FRAGMENT_PATTERN,
    ExpressionEvaluator,
    Fragment,
    keep_unresolved,
    raise_on_failure,
    stringify,
)
from .functions import DEFAULT_FUNCTIONS

__all__ = [
    "DEFAULT_FUNCTIONS",
    "FRAGMENT_PATTERN",
    "ExpressionEvaluator",
    "Fragment",
    "keep_unresolved",
    "raise_on_failure",
    "stringify",
]
