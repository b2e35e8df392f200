# src/dagflow/steps/__init__.py
"""
Tipos de step embutidos e o registry padrão.

Famílias:
    - connectors → trigger_manual, abort, noop, log, set_variable,
                   set_multiple_variables, copy_file
    - readers    → reader_array, reader_csv, reader_json
    - flows      → flow_noop, flow_log, flow_abort,
                   flow_transformer_alter, flow_transformer_filter,
                   flow_transformer_regex, flow_logic_switch,
                   flow_logic_case, flow_logic_join
    - writers    → writer_stream

`default_registry()` devolve um registry novo a cada chamada, que pode
ser estendido sem afetar outros engines.
"""

from __future__ import annotations

from typing import Tuple, Type

from dagflow.core.pipeline.registry import StepTypeRegistry
from dagflow.core.pipeline.step import BaseStep

from .connectors import Abort, CopyFile, Log, Noop, SetMultipleVariables, SetVariable, TriggerManual
from .flows import (
    FlowAbort,
    FlowLog,
    FlowLogicCase,
    FlowLogicJoin,
    FlowLogicSwitch,
    FlowNoop,
    FlowTransformerAlter,
    FlowTransformerFilter,
    FlowTransformerRegex,
)
from .readers import ReaderArray, ReaderCsv, ReaderJson
from .writers import WriterStream

BUILTIN_STEPS: Tuple[Type[BaseStep], ...] = (
    TriggerManual,
    Abort,
    Noop,
    Log,
    SetVariable,
    SetMultipleVariables,
    CopyFile,
    ReaderArray,
    ReaderCsv,
    ReaderJson,
    FlowNoop,
    FlowLog,
    FlowAbort,
    FlowTransformerAlter,
    FlowTransformerFilter,
    FlowTransformerRegex,
    FlowLogicSwitch,
    FlowLogicCase,
    FlowLogicJoin,
    WriterStream,
)


def default_registry() -> StepTypeRegistry:
    registry = StepTypeRegistry()
    for step_class in BUILTIN_STEPS:
        registry.register(step_class.key, step_class)
    return registry


__all__ = ["BUILTIN_STEPS", "default_registry"]
