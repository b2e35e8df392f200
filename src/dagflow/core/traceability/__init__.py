# src/dagflow/core/traceability/__init__.py
from .run import DataflowRun, InMemoryRunStore, JsonRunStore, RunStore

__all__ = ["DataflowRun", "InMemoryRunStore", "JsonRunStore", "RunStore"]
