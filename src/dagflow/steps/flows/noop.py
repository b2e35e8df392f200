# src/dagflow/steps/flows/noop.py
from __future__ import annotations

from typing import Any

from dagflow.core.pipeline.step import FlowStep, ValidationResult
from dagflow.core.pipeline.types import LinkRange

from ..connectors.abort import abort_when
from ..connectors.log import log_message, validate_log_config


class FlowNoop(FlowStep):
    """Repassa cada registro sem alteração."""

    key = "flow_noop"


class FlowLog(FlowStep):
    key = "flow_log"

    def validate_config(self, config) -> ValidationResult:
        return validate_log_config(config)

    def execute(self, input: Any = None) -> Any:
        return log_message(self, input)


class FlowAbort(FlowStep):
    """Aborta a run no primeiro registro que satisfaz `condition`."""

    key = "flow_abort"
    condition_fields = ("condition",)
    output_connectors = LinkRange(0, 1)

    def execute(self, input: Any = None) -> Any:
        return abort_when(self, input)
