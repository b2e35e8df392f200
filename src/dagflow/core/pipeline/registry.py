# src/dagflow/core/pipeline/registry.py
"""
Registro de tipos de step: chave estável → factory.

A factory recebe a `StepDefinition` e devolve um valor que implementa o
contrato `StepType`. Classes que herdam de `BaseStep` já são factories
válidas; closures também (útil para injetar dependências em testes):

    registry.register("collect", lambda definition: Collect(definition, sink=rows))

Invariantes:
    - cada chave é registrada uma única vez
    - a ordem de registro é preservada em `keys()`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from dagflow.core.exceptions import UnknownStepTypeError

from .definition import StepDefinition

StepFactory = Callable[[StepDefinition], Any]


class DuplicateStepTypeError(ValueError):
    """Já existe uma factory registrada para a chave."""


@dataclass
class StepTypeRegistry:
    _factories: Dict[str, StepFactory] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def register(self, key: str, factory: Optional[StepFactory] = None) -> StepFactory:
        if not isinstance(key, str) or not key.strip():
            raise ValueError("step type key must be a non-empty string")
        if factory is None:
            # uso como decorator: @registry.register("key")
            def decorator(fn: StepFactory) -> StepFactory:
                self.register(key, fn)
                return fn
            return decorator  # type: ignore[return-value]

        if key in self._factories:
            raise DuplicateStepTypeError(f"Duplicate step type: {key}")

        self._factories[key] = factory
        self._order.append(key)
        return factory

    def __contains__(self, key: str) -> bool:
        return key in self._factories

    def keys(self) -> List[str]:
        return list(self._order)

    def create(self, definition: StepDefinition) -> Any:
        factory = self._factories.get(definition.type)
        if factory is None:
            raise UnknownStepTypeError(
                message=f"Unknown step type '{definition.type}'",
                details={"step": definition.alias, "type": definition.type},
            )
        return factory(definition)

    def copy(self) -> "StepTypeRegistry":
        clone = StepTypeRegistry()
        for key in self._order:
            clone.register(key, self._factories[key])
        return clone
