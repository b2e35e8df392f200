# src/dagflow/core/pipeline/capabilities.py
"""
Capacidades compartilhadas entre tipos de step, combináveis por composição.

Em vez de herança múltipla, um tipo de step declara objetos de
capacidade como atributos de classe:

    class CopyFile(ConnectorStep):
        side_effect = DestinationOutsideScratch("to")
        run_checks = (PermittedPaths("from", "to"),)

- `SideEffectPolicy`: decide `has_side_effect()` a partir da configuração
  resolvida do step
- `RunCheck`: validação executada apenas no início da run
  (`validate_for_run`)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Protocol

from dagflow.core.paths import path_get_absolute, path_get_scheme, path_is_inside, path_is_relative, path_validate

if TYPE_CHECKING:  # pragma: no cover
    from .step import BaseStep


class SideEffectPolicy(Protocol):
    def applies(self, step: "BaseStep") -> bool: ...


class RunCheck(Protocol):
    def check(self, step: "BaseStep") -> Dict[str, str]: ...


@dataclass(frozen=True)
class NoSideEffect:
    def applies(self, step: "BaseStep") -> bool:
        return False


@dataclass(frozen=True)
class AlwaysSideEffect:
    def applies(self, step: "BaseStep") -> bool:
        return True


@dataclass(frozen=True)
class DestinationOutsideScratch:
    """
    Efeito colateral apenas quando o destino escapa do scratch directory.

    Caminhos relativos são resolvidos dentro do scratch da run; caminhos
    absolutos dentro do scratch também não contam como efeito colateral.
    Destinos com outro esquema (sftp://, s3://) sempre contam.
    """

    field: str

    def applies(self, step: "BaseStep") -> bool:
        destination = step.config.get(self.field)
        if destination in (None, ""):
            return False
        if not isinstance(destination, str):
            return True
        if path_is_relative(destination):
            return False
        scratch = step.scratch_dir
        if scratch is not None and path_get_scheme(destination) == "file":
            return not path_is_inside(destination, scratch)
        return True


class PermittedPaths:
    """Campos de caminho devem estar no scratch ou em `engine.permitted_dirs`."""

    def __init__(self, *fields: str):
        self.fields = fields

    def check(self, step: "BaseStep") -> Dict[str, str]:
        errors: Dict[str, str] = {}
        directories = list(step.permitted_dirs)
        if step.scratch_dir is not None:
            directories.append(str(step.scratch_dir))
        for field in self.fields:
            value = step.config.get(field)
            if value in (None, ""):
                continue
            message = path_validate(str(value), directories)
            if message is not None:
                errors[f"config_{field}"] = message
        return errors


def absolute_path(step: "BaseStep", field: str) -> str:
    return path_get_absolute(str(step.config.get(field) or ""), step.scratch_dir)
