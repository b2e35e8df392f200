# src/dagflow/core/iterators/base.py
"""
Protocolo de iteração por demanda (pull) entre steps de fluxo.

Um `FlowIterator` pertence a um step de fluxo e só avança quando um
consumidor chama `next(caller)`. Cada registro obtido do upstream passa
pelo step (`step.process(record)`) antes de ser entregue.

Operações:
    - current()      → último valor entregue (ou `NO_VALUE`)
    - next(caller)   → próximo valor para o consumidor `caller`
    - is_finished()  → upstream esgotado ou abort (permanente)
    - is_ready()     → ainda pode produzir valores
    - is_empty()     → não há valor corrente
    - abort()        → encerra sem novos pulls

Invariantes:
    - depois de finalizado, `next` devolve `NO_VALUE` sem efeitos
    - `NO_VALUE` nunca é entregue ao `process` do step
"""

from __future__ import annotations

from typing import Any, Optional

from dagflow.core.signals import NO_VALUE


class FlowIterator:
    def __init__(self, step: Any):
        self.step = step
        self.iterations = 0
        self._finished = False
        self._value: Any = NO_VALUE

    def __repr__(self) -> str:
        alias = getattr(self.step, "alias", "?")
        return f"{type(self).__name__}(step={alias!r}, finished={self._finished})"

    def current(self) -> Any:
        return self._value

    def is_finished(self) -> bool:
        return self._finished

    def is_ready(self) -> bool:
        return not self._finished

    def is_empty(self) -> bool:
        return self._value is NO_VALUE

    def next(self, caller: Optional[str] = None) -> Any:
        if self._finished:
            return NO_VALUE
        return self._next(caller)

    def abort(self) -> None:
        self._finished = True
        self._value = NO_VALUE

    def _next(self, caller: Optional[str]) -> Any:
        raise NotImplementedError

    def _emit(self, record: Any) -> Any:
        value = self.step.process(record)
        self.iterations += 1
        self._value = NO_VALUE if value is None else value
        return self._value

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._value = NO_VALUE
        self.step.on_iterator_finished()
