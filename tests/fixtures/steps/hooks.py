"""
Hook Recorder — connector que conta as chamadas de cada hook de ciclo
de vida em um dicionário compartilhado com o teste.
"""

from __future__ import annotations

from typing import Any, Dict

from dagflow.core.pipeline.definition import StepDefinition
from dagflow.core.pipeline.step import ConnectorStep


class HookRecorderStep(ConnectorStep):
    key = "hook_recorder"

    def __init__(self, definition: StepDefinition, calls: Dict[str, int]):
        super().__init__(definition)
        self.calls = calls

    def _record(self, name: str) -> None:
        key = f"{self.alias}.{name}"
        self.calls[key] = self.calls.get(key, 0) + 1

    def execute(self, input: Any = None) -> Any:
        self._record("execute")
        return True

    def on_initialise(self) -> None:
        self._record("on_initialise")

    def on_abort(self) -> None:
        self._record("on_abort")

    def on_finalise(self) -> None:
        self._record("on_finalise")

    def on_save(self) -> None:
        self._record("on_save")

    def on_delete(self) -> None:
        self._record("on_delete")
