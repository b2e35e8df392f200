# src/dagflow/core/engine/__init__.py
"""
Execução de dataflows.

Componentes:
    - engine   → `Engine`, `RunResult`, `FlowCap`
    - runtime  → `RuntimeStep` (wrapper de execução de um step)
    - planner  → condensação do grafo em unidades de execução
    - locking  → locks consultivos por dataflow
"""

from .engine import PROCESS_LOCKS, Engine, FlowCap, RunResult
from .locking import DataflowLock, FileLockFactory, InMemoryLockFactory, LockFactory, LockMetadata
from .planner import ConnectorUnit, ExecutionPlan, FlowBlockUnit, plan_execution
from .runtime import RunResources, RuntimeStep, StepFailure

__all__ = [
    "PROCESS_LOCKS",
    "ConnectorUnit",
    "DataflowLock",
    "Engine",
    "ExecutionPlan",
    "FileLockFactory",
    "FlowBlockUnit",
    "FlowCap",
    "InMemoryLockFactory",
    "LockFactory",
    "LockMetadata",
    "RunResources",
    "RunResult",
    "RuntimeStep",
    "StepFailure",
    "plan_execution",
]
