# src/dagflow/steps/flows/filter.py
"""
Step canônico: flow_transformer_filter.

Só deixa passar os registros para os quais `filter` é verdadeiro:

    config:
      filter: record.age >= 18

Registros rejeitados são descartados e o pull continua no upstream.
Uma referência indefinida na expressão conta como falso.
"""

from __future__ import annotations

from typing import Any

from dagflow.core.iterators import FilterIterator, FlowIterator
from dagflow.core.pipeline.step import FlowStep


class FlowTransformerFilter(FlowStep):
    key = "flow_transformer_filter"
    required_fields = ("filter",)
    condition_fields = ("filter",)

    def accepts(self, record: Any) -> bool:
        return self.condition(self.definition.config.get("filter"), record)

    def get_iterator(self) -> FlowIterator:
        return FilterIterator(
            self._require_runtime(),
            self.upstream_iterators[0],
            self.downstream_callers,
            self.accepts,
        )
