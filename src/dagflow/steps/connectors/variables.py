# src/dagflow/steps/connectors/variables.py
"""
Steps canônicos: set_variable e set_multiple_variables.

Responsabilidades:
- gravar um valor em qualquer caminho da árvore de variáveis, exceto na
  subárvore de outro step
- registrar a alteração no log da run
- fora de dry-run, persistir alterações em `dataflow.vars.*` no
  definition store (quando a run possui um)

Config esperada (exemplo):
    set_variable:
      field: dataflow.vars.cursor
      value: ${{ steps.read.outputs.last_id }}

    set_multiple_variables:
      field: dataflow.vars.limits
      values:
        min: 1
        max: ${{ global.vars.max }}

Invariantes:
- valor igual ao atual não gera escrita nem log
- `has_side_effect()` é sempre verdadeiro
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from dagflow.core.pipeline.capabilities import AlwaysSideEffect
from dagflow.core.pipeline.step import BaseStep, ConnectorStep, ValidationResult
from dagflow.core.variables import split_path


def set_root_variable(step: BaseStep, field: str, value: Any) -> bool:
    tree = step.root_variables
    if tree.get(field) == value:
        return False

    tree.assign(field, value, owner=step.alias)
    shown = json.dumps(value, default=str) if isinstance(value, (Mapping, list)) else value
    step.log(f"Set '{field}' as '{shown}'")

    if step.is_dry_run():
        return True

    levels = split_path(field)
    if len(levels) > 2 and levels[0] == "dataflow" and levels[1] == "vars":
        store = step.definition_store
        if store is not None:
            store.set_dataflow_var(step.dataflow_id, levels[2], tree.get_raw(f"dataflow.vars.{levels[2]}"))
    return True


class SetVariable(ConnectorStep):
    key = "set_variable"
    required_fields = ("field",)
    side_effect = AlwaysSideEffect()

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        result = super().validate_config(config)
        errors = {} if result is True else dict(result)
        if "value" not in config:
            errors["config_value"] = "The field 'value' is required"
        return errors or True

    def execute(self, input: Any = None) -> Any:
        set_root_variable(self, str(self.config["field"]), self.config.get("value"))
        return True


class SetMultipleVariables(ConnectorStep):
    key = "set_multiple_variables"
    required_fields = ("field", "values")
    side_effect = AlwaysSideEffect()

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        result = super().validate_config(config)
        errors = {} if result is True else dict(result)
        values = config.get("values")
        if values not in (None, "") and not isinstance(values, Mapping):
            errors["config_values"] = "The field 'values' must be a mapping of names to values"
        return errors or True

    def execute(self, input: Any = None) -> Any:
        set_root_variable(self, str(self.config["field"]), dict(self.config["values"]))
        return True
