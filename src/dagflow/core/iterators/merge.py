# src/dagflow/core/iterators/merge.py
from __future__ import annotations

from typing import Any, List, Optional, Sequence

from dagflow.core.signals import NO_VALUE

from .base import FlowIterator


class MergeIterator(FlowIterator):
    """
    Ponto de confluência: alterna (round-robin) entre os upstreams ainda
    ativos e entrega o primeiro valor disponível.

    Usado pelo step de join e pelo flow cap do engine. Termina quando
    todos os upstreams terminam.
    """

    def __init__(self, step: Any, upstreams: Sequence[FlowIterator]):
        super().__init__(step)
        self.upstreams: List[FlowIterator] = list(upstreams)
        self._cursor = 0

    def _next(self, caller: Optional[str]) -> Any:
        for _ in range(len(self.upstreams)):
            upstream = self.upstreams[self._cursor]
            self._cursor = (self._cursor + 1) % len(self.upstreams)
            if upstream.is_finished():
                continue
            record = upstream.next(self.step.alias)
            if self._finished:
                return NO_VALUE
            if record is not NO_VALUE:
                return self._emit(record)

        if all(upstream.is_finished() for upstream in self.upstreams):
            self._finish()
        return NO_VALUE
