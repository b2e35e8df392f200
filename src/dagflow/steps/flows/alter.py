# src/dagflow/steps/flows/alter.py
"""
Step canônico: flow_transformer_alter.

Altera campos de cada registro a partir de expressões:

    config:
      expressions:
        full_name: ${{ record.first + " " + record.last }}
        address.city: ${{ upper(record.city) }}

As expressões são resolvidas com o registro corrente (`record`) antes
do `execute`. Caminhos com ponto criam/alteram sub-dicionários. O
registro de entrada nunca é modificado: a saída é uma cópia.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

from dagflow.core.pipeline.step import FlowStep, ValidationResult
from dagflow.core.variables import split_path


def set_field(record: Dict[str, Any], path: str, value: Any) -> None:
    levels = split_path(path)
    target = record
    for level in levels[:-1]:
        child = target.get(level)
        if not isinstance(child, dict):
            child = {}
            target[level] = child
        target = child
    target[levels[-1]] = value


class FlowTransformerAlter(FlowStep):
    key = "flow_transformer_alter"

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        expressions = config.get("expressions")
        if not isinstance(expressions, Mapping) or not expressions:
            return {"config_expressions": "The field 'expressions' must be a non-empty mapping of fields to expressions"}
        return True

    def execute(self, input: Any = None) -> Any:
        record = copy.deepcopy(dict(input)) if isinstance(input, Mapping) else {"value": input}
        for field, value in dict(self.config.get("expressions") or {}).items():
            set_field(record, str(field), value)
        return record
