# src/dagflow/core/iterators/mapping.py
from __future__ import annotations

from typing import Any, Optional

from dagflow.core.signals import NO_VALUE

from .base import FlowIterator


class MapIterator(FlowIterator):
    """Um registro de entrada, um de saída: aplica o `execute` do step."""

    def __init__(self, step: Any, upstream: FlowIterator):
        super().__init__(step)
        self.upstream = upstream

    def _next(self, caller: Optional[str]) -> Any:
        record = self.upstream.next(self.step.alias)
        if record is NO_VALUE:
            if self.upstream.is_finished():
                self._finish()
            return NO_VALUE
        return self._emit(record)
