# src/dagflow/core/iterators/producing.py
from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional

from dagflow.core.signals import NO_VALUE

from .base import FlowIterator


class ProducingIterator(FlowIterator):
    """
    Início de um fluxo: consome uma fonte preguiçosa um item por pull.

    A fonte só é aberta (`iter`) no primeiro `next`; depois de N chamadas
    exatamente N itens foram retirados dela.
    """

    def __init__(self, step: Any, source: Iterable[Any]):
        super().__init__(step)
        self._source = source
        self._iterator: Optional[Iterator[Any]] = None
        self.produced = 0

    def _next(self, caller: Optional[str]) -> Any:
        if self._iterator is None:
            self._iterator = iter(self._source)
        try:
            record = next(self._iterator)
        except StopIteration:
            self._finish()
            return NO_VALUE
        self.produced += 1
        return self._emit(record)

    def abort(self) -> None:
        super().abort()
        close = getattr(self._iterator, "close", None)
        if callable(close):
            try:
                close()
            except ValueError:
                # abort pedido de dentro da própria fonte
                pass
