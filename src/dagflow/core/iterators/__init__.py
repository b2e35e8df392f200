# src/dagflow/core/iterators/__init__.py
"""
Iterators nomeados do protocolo de pull entre steps de fluxo.

Componentes:
    - base       → `FlowIterator` e o sentinela `NO_VALUE`
    - producing  → `ProducingIterator` (fonte preguiçosa, sem upstream)
    - mapping    → `MapIterator` (1 para 1)
    - branching  → `BranchIterator`, `FilterIterator`, `CaseIterator`,
                   `SwitchIterator`
    - merge      → `MergeIterator` (join e flow cap)
"""

from dagflow.core.signals import NO_VALUE

from .base import FlowIterator
from .branching import BranchIterator, CaseIterator, FilterIterator, SwitchIterator
from .mapping import MapIterator
from .merge import MergeIterator
from .producing import ProducingIterator

__all__ = [
    "NO_VALUE",
    "BranchIterator",
    "CaseIterator",
    "FilterIterator",
    "FlowIterator",
    "MapIterator",
    "MergeIterator",
    "ProducingIterator",
    "SwitchIterator",
]
