# src/dagflow/steps/flows/logic.py
"""
Steps de controle de fluxo: switch, case e join.

switch / case:
    - `cases` é um mapeamento rótulo → expressão (ou o mesmo mapeamento
      em YAML, como texto); a ordem declarada define as posições 1..N
    - cada dependente declara a posição do caso: `depends_on: [route:2]`
    - switch: o primeiro caso verdadeiro vence; registro sem caso é
      descartado (log DEBUG)
    - case: o registro segue por todos os casos verdadeiros

join:
    - reúne 2..20 fluxos de entrada em um único fluxo de saída,
      alternando entre os upstreams ativos
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping

import yaml  # PyYAML

from dagflow.core.iterators import CaseIterator, FlowIterator, MergeIterator, SwitchIterator
from dagflow.core.pipeline.step import FlowStep, ValidationResult
from dagflow.core.pipeline.types import LinkRange

MAX_OUTPUTS = 20


def parse_cases(value: Any) -> Dict[str, Any]:
    if isinstance(value, str):
        value = yaml.safe_load(value) if value.strip() else {}
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError("The field 'cases' must be a mapping of labels to expressions")
    return {str(label): expression for label, expression in value.items()}


class _CaseStep(FlowStep):
    input_flows = LinkRange(1, 1)
    output_flows = LinkRange(2, MAX_OUTPUTS)
    branching = True
    condition_fields = ("cases",)

    def cases(self) -> Dict[str, Any]:
        return parse_cases(self.definition.config.get("cases"))

    def get_output_labels(self) -> Dict[int, str]:
        try:
            labels = list(self.cases())
        except (ValueError, yaml.YAMLError):
            return {}
        return {position: label for position, label in enumerate(labels, start=1)}

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        try:
            cases = parse_cases(config.get("cases"))
        except (ValueError, yaml.YAMLError) as exc:
            return {"config_cases": str(exc)}
        if not cases:
            return {"config_cases": "At least one case is required"}
        empty = [label for label, expression in cases.items() if expression in (None, "")]
        if empty:
            return {"config_cases": f"Cases without an expression: {', '.join(empty)}"}
        return True

    def _predicates(self) -> List[Callable[[Any], bool]]:
        def predicate(expression: Any) -> Callable[[Any], bool]:
            return lambda record: self.condition(expression, record)

        return [predicate(expression) for expression in self.cases().values()]


class FlowLogicSwitch(_CaseStep):
    key = "flow_logic_switch"

    def get_iterator(self) -> FlowIterator:
        return SwitchIterator(
            self._require_runtime(),
            self.upstream_iterators[0],
            self.downstream_positions,
            self._predicates(),
        )


class FlowLogicCase(_CaseStep):
    key = "flow_logic_case"

    def get_iterator(self) -> FlowIterator:
        return CaseIterator(
            self._require_runtime(),
            self.upstream_iterators[0],
            self.downstream_positions,
            self._predicates(),
        )


class FlowLogicJoin(FlowStep):
    key = "flow_logic_join"
    input_flows = LinkRange(2, MAX_OUTPUTS)
    output_flows = LinkRange(1, 1)

    def get_iterator(self) -> FlowIterator:
        return MergeIterator(self._require_runtime(), self.upstream_iterators)
