# src/dagflow/steps/flows/__init__.py
"""Steps de fluxo: transformação e roteamento registro a registro."""

from .alter import FlowTransformerAlter, set_field
from .filter import FlowTransformerFilter
from .logic import FlowLogicCase, FlowLogicJoin, FlowLogicSwitch, parse_cases
from .noop import FlowAbort, FlowLog, FlowNoop
from .regex import FlowTransformerRegex, compile_pattern

__all__ = [
    "FlowAbort",
    "FlowLog",
    "FlowLogicCase",
    "FlowLogicJoin",
    "FlowLogicSwitch",
    "FlowNoop",
    "FlowTransformerAlter",
    "FlowTransformerFilter",
    "FlowTransformerRegex",
    "compile_pattern",
    "parse_cases",
    "set_field",
]
