# src/dagflow/core/iterators/branching.py
"""
Iterators de ramificação: vários consumidores compartilham um upstream.

Algoritmo comum (`BranchIterator`):
    - a cada registro novo, `select(record)` devolve o conjunto de
      consumidores que aceitam o registro (`_awaiting`)
    - um consumidor em `_awaiting` recebe o registro e sai do conjunto
    - um consumidor fora dele recebe `NO_VALUE` sem avançar o upstream
      enquanto houver consumidores aguardando
    - o upstream só avança quando o conjunto fica vazio
    - registros que ninguém aceita são descartados e o pull continua

Especializações recebem predicados e mapas de posição explícitos:
    - FilterIterator → um predicado para todos os consumidores
    - CaseIterator   → predicado por posição; um registro pode seguir
                       por vários ramos
    - SwitchIterator → casos na ordem declarada, o primeiro que casa vence
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Sequence, Set

from dagflow.core.signals import NO_VALUE

from .base import FlowIterator

Predicate = Callable[[Any], bool]


class BranchIterator(FlowIterator):
    def __init__(self, step: Any, upstream: FlowIterator, callers: Sequence[str]):
        super().__init__(step)
        self.upstream = upstream
        self.callers = tuple(callers)
        self._awaiting: Set[str] = set()

    def select(self, record: Any) -> Set[str]:
        raise NotImplementedError

    def _next(self, caller: Optional[str]) -> Any:
        if caller not in self._awaiting:
            if self._awaiting or not self._pull():
                return NO_VALUE
            if caller not in self._awaiting:
                return NO_VALUE
        self._awaiting.discard(caller)
        return self._value

    def _pull(self) -> bool:
        while not self._finished:
            record = self.upstream.next(self.step.alias)
            if record is NO_VALUE:
                if self.upstream.is_finished():
                    self._finish()
                return False

            value = self._emit(record)
            if value is NO_VALUE or self._finished:
                continue
            awaiting = self.select(value)
            if awaiting:
                self._awaiting = set(awaiting)
                return True
        return False

    def abort(self) -> None:
        super().abort()
        self._awaiting = set()


class FilterIterator(BranchIterator):
    def __init__(self, step: Any, upstream: FlowIterator, callers: Sequence[str], predicate: Predicate):
        super().__init__(step, upstream, callers)
        self.predicate = predicate

    def select(self, record: Any) -> Set[str]:
        return set(self.callers) if self.predicate(record) else set()


class CaseIterator(BranchIterator):
    """`positions`: consumidor → posição 1-based em `cases`."""

    def __init__(
        self,
        step: Any,
        upstream: FlowIterator,
        positions: Mapping[str, int],
        cases: Sequence[Predicate],
    ):
        super().__init__(step, upstream, list(positions))
        self.positions = dict(positions)
        self.cases = list(cases)

    def select(self, record: Any) -> Set[str]:
        matches = [bool(case(record)) for case in self.cases]
        return {
            caller
            for caller, position in self.positions.items()
            if 1 <= position <= len(matches) and matches[position - 1]
        }


class SwitchIterator(CaseIterator):
    def select(self, record: Any) -> Set[str]:
        for index, case in enumerate(self.cases):
            if case(record):
                selected = {caller for caller, position in self.positions.items() if position - 1 == index}
                if selected:
                    return selected
                break
        self.step.log("Skipping record: no matching case", level="DEBUG")
        return set()
