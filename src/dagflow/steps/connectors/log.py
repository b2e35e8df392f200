# src/dagflow/steps/connectors/log.py
"""
Step canônico: log.

Escreve uma mensagem (com expressões já resolvidas) no log da run, no
nível configurado. Mensagem vazia não gera evento. Em steps de fluxo o
registro corrente acompanha o evento como campo extra.
"""

from __future__ import annotations

from typing import Any, Mapping

from dagflow.core.pipeline.context import LOG_LEVELS
from dagflow.core.pipeline.step import BaseStep, ConnectorStep, ValidationResult


def validate_log_config(config: Mapping[str, Any]) -> ValidationResult:
    errors = {
        f"config_{field}": f"The field '{field}' is required"
        for field in ("level", "message")
        if config.get(field) in (None, "")
    }
    level = config.get("level")
    if level not in (None, "") and str(level).upper() not in LOG_LEVELS:
        errors["config_level"] = f"Unknown log level '{level}' (expected one of: {', '.join(LOG_LEVELS)})"
    return errors or True


def log_message(step: BaseStep, input: Any = None) -> Any:
    message = step.config.get("message")
    if message not in (None, ""):
        extra = {"record": input} if step.role.is_flow and input is not None else {}
        step.log(str(message), level=str(step.config.get("level") or "INFO").upper(), **extra)
    return input if step.role.is_flow else True


class Log(ConnectorStep):
    key = "log"

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        return validate_log_config(config)

    def execute(self, input: Any = None) -> Any:
        return log_message(self, input)
