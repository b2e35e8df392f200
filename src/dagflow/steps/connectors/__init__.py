# src/dagflow/steps/connectors/__init__.py
"""Steps de controle: trigger e connectors executados uma vez por run."""

from .abort import Abort, abort_when
from .copy_file import CopyFile
from .log import Log, log_message, validate_log_config
from .noop import Noop
from .trigger import TriggerManual
from .variables import SetMultipleVariables, SetVariable, set_root_variable

__all__ = [
    "Abort",
    "CopyFile",
    "Log",
    "Noop",
    "SetMultipleVariables",
    "SetVariable",
    "TriggerManual",
    "abort_when",
    "log_message",
    "set_root_variable",
    "validate_log_config",
]
