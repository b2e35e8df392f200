# src/dagflow/core/variables/__init__.py
"""
Árvore de variáveis hierárquica e preguiçosa.

Componentes:
    - nodes → nós (`VarObject`, `VarValue`) e escopos visíveis
    - tree  → `VariableTree` (raiz) e `StepScope` (subárvore de um step)
"""

from .nodes import VarObject, VarValue, VariableScope, split_path
from .tree import REDACTED, StepScope, VariableTree

__all__ = [
    "REDACTED",
    "StepScope",
    "VarObject",
    "VarValue",
    "VariableScope",
    "VariableTree",
    "split_path",
]
