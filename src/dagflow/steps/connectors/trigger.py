# src/dagflow/steps/connectors/trigger.py
"""Trigger manual: origem de uma run disparada pelo usuário ou por testes."""

from __future__ import annotations

from typing import Any

from dagflow.core.pipeline.step import TriggerStep


class TriggerManual(TriggerStep):
    key = "trigger_manual"

    def execute(self, input: Any = None) -> Any:
        self.log("Triggered manually", level="DEBUG")
        return True
