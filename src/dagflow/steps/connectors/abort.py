# src/dagflow/steps/connectors/abort.py
"""
Step canônico: abort.

Responsabilidades:
- encerrar a run de forma controlada, devolvendo um `AbortSignal`
- opcionalmente condicionar o abort a uma expressão (`condition`)

Regras:
- sem `condition` o abort é incondicional
- `condition` falsa (ou referência indefinida) deixa a entrada passar
- `condition` verdadeira registra a expressão bruta no log e aborta

Config esperada (exemplo):
    config:
      condition: "steps.count.outputs.rows == 0"

Limites explícitos:
- NÃO levanta exceção: o abort é um sinal, tratado pelo engine
"""

from __future__ import annotations

from typing import Any

from dagflow.core.pipeline.step import BaseStep, ConnectorStep
from dagflow.core.signals import NO_VALUE, AbortSignal


def abort_when(step: BaseStep, input: Any = None) -> Any:
    raw = step.definition.config.get("condition")
    if raw in (None, ""):
        return AbortSignal(reason=f"Step '{step.alias}' requested an abort", step=step.alias)

    record = input if step.role.is_flow else NO_VALUE
    if not step.condition(raw, record):
        return input if step.role.is_flow else True

    message = f"Aborting dataflow due to the expression returning 'true': {raw}"
    step.log(message)
    return AbortSignal(reason=message, step=step.alias)


class Abort(ConnectorStep):
    key = "abort"
    condition_fields = ("condition",)

    def execute(self, input: Any = None) -> Any:
        return abort_when(self, input)
