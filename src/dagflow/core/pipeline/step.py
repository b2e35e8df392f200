# src/dagflow/core/pipeline/step.py
"""
Contrato canônico de tipos de step.

Este módulo define o protocolo `StepType` consumido pelo engine e a
implementação base `BaseStep`, com defaults sensatos para todo o
contrato:

    - 4 faixas de ligação (min, max): input/output × flow/connector,
      todas (0, 0) por padrão
    - `execute(input) -> output`
    - `has_side_effect()` (delegado à capacidade `side_effect`)
    - `validate_config(config) -> True | {campo: mensagem}` (definição)
    - `validate_for_run() -> True | {campo: mensagem}` (início da run)
    - `get_iterator()` para steps de fluxo com pull não padrão
    - hooks `on_initialise`, `on_save`, `on_delete`, `on_abort`,
      `on_finalise` (no-ops por padrão)
    - `define_outputs()` → nome → descrição das saídas que o step grava
      em `steps.<alias>.<nome>`

Um tipo de step nunca conhece o dataflow nem outros steps diretamente:
tudo passa pelo runtime ao qual ele é vinculado (`bind`), que guarda
apenas o id do dataflow e resolve o resto via engine.

As classes `TriggerStep`, `ConnectorStep`, `ReaderStep`, `FlowStep` e
`WriterStep` fixam papel e faixas de ligação típicas de cada família.
"""

from __future__ import annotations

from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from dagflow.core.signals import AbortSignal

from .capabilities import NoSideEffect, RunCheck, SideEffectPolicy
from .definition import StepDefinition
from .types import LinkRange, NO_LINKS, StepRole

if TYPE_CHECKING:  # pragma: no cover
    from dagflow.core.engine.runtime import RuntimeStep
    from dagflow.core.iterators.base import FlowIterator
    from dagflow.core.variables import StepScope, VariableTree

ValidationResult = Union[bool, Dict[str, str]]


@runtime_checkable
class StepType(Protocol):
    """
    Contrato mínimo de um tipo de step (duck typing).

    Invariantes:
        - `role` e as faixas de ligação são estáveis por tipo
        - `execute` não controla ordem de execução
    """

    role: StepRole
    input_flows: LinkRange
    output_flows: LinkRange
    input_connectors: LinkRange
    output_connectors: LinkRange

    def execute(self, input: Any = None) -> Any: ...

    def has_side_effect(self) -> bool: ...

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult: ...

    def validate_for_run(self) -> ValidationResult: ...

    def define_outputs(self) -> Dict[str, str]: ...


class BaseStep:
    key: ClassVar[str] = ""
    role: ClassVar[StepRole] = StepRole.CONNECTOR

    input_flows: ClassVar[LinkRange] = NO_LINKS
    output_flows: ClassVar[LinkRange] = NO_LINKS
    input_connectors: ClassVar[LinkRange] = NO_LINKS
    output_connectors: ClassVar[LinkRange] = NO_LINKS

    side_effect: ClassVar[SideEffectPolicy] = NoSideEffect()
    run_checks: ClassVar[Tuple[RunCheck, ...]] = ()

    required_fields: ClassVar[Tuple[str, ...]] = ()
    # avaliados registro a registro por `condition`, fora de `resolve_config`
    condition_fields: ClassVar[Tuple[str, ...]] = ()
    secrets: ClassVar[Tuple[str, ...]] = ()
    outputs: ClassVar[Dict[str, str]] = {}

    # steps de ramificação: as arestas de saída carregam a posição do caso
    branching: ClassVar[bool] = False
    concurrency_supported: ClassVar[bool] = True

    def __init__(self, definition: StepDefinition):
        self.definition = definition
        self.runtime: Optional["RuntimeStep"] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(alias={self.alias!r})"

    # ------------------------------------------------------------------
    # Vínculo com o runtime
    # ------------------------------------------------------------------
    def bind(self, runtime: "RuntimeStep") -> None:
        self.runtime = runtime

    @property
    def alias(self) -> str:
        return self.definition.alias

    @property
    def config(self) -> Mapping[str, Any]:
        """Configuração resolvida durante a run; bruta fora dela."""
        if self.runtime is not None and self.runtime.config is not None:
            return self.runtime.config
        return self.definition.config

    @property
    def variables(self) -> "StepScope":
        return self._require_runtime().variables

    @property
    def root_variables(self) -> "VariableTree":
        return self._require_runtime().tree

    @property
    def definition_store(self) -> Optional[Any]:
        return self._require_runtime().resources.definition_store

    @property
    def dataflow_id(self) -> str:
        return self._require_runtime().dataflow_id

    @property
    def scratch_dir(self) -> Optional[Path]:
        if self.runtime is None:
            return None
        return self.runtime.context.scratch_dir

    @property
    def permitted_dirs(self) -> Tuple[str, ...]:
        if self.runtime is None:
            return ()
        return self.runtime.settings.permitted_dirs

    def _require_runtime(self) -> "RuntimeStep":
        if self.runtime is None:
            raise RuntimeError(f"Step '{self.alias}' is not bound to a run")
        return self.runtime

    @property
    def upstream_iterators(self) -> List["FlowIterator"]:
        return list(self._require_runtime().upstreams)

    @property
    def downstream_callers(self) -> List[str]:
        return list(self._require_runtime().callers)

    @property
    def downstream_positions(self) -> Dict[str, int]:
        """Alias do dependente → posição 1-based do caso."""
        return dict(self._require_runtime().positions)

    def is_dry_run(self) -> bool:
        return self.runtime is not None and self.runtime.context.dry_run

    def has_side_effect(self) -> bool:
        return self.side_effect.applies(self)

    def log(self, message: str, level: str = "INFO", **extra: Any) -> None:
        self._require_runtime().log(message, level=level, **extra)

    def set_output(self, name: str, value: Any) -> None:
        self._require_runtime().set_output(name, value)

    def request_abort(self, reason: str) -> AbortSignal:
        return self._require_runtime().request_abort(reason)

    # ------------------------------------------------------------------
    # Contrato
    # ------------------------------------------------------------------
    def execute(self, input: Any = None) -> Any:
        return input if self.role.is_flow else True

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        errors = {
            f"config_{field}": f"The field '{field}' is required"
            for field in self.required_fields
            if config.get(field) in (None, "")
        }
        return errors or True

    def validate_for_run(self) -> ValidationResult:
        errors: Dict[str, str] = {}
        for check in self.run_checks:
            errors.update(check.check(self))
        return errors or True

    def get_iterator(self) -> Optional["FlowIterator"]:
        return None

    def condition(self, expression: Any, record: Any) -> bool:
        return self._require_runtime().condition(expression, record)

    def define_outputs(self) -> Dict[str, str]:
        return dict(self.outputs)

    def secret_fields(self) -> Tuple[str, ...]:
        return tuple(self.secrets)

    def get_output_labels(self) -> Dict[int, str]:
        return {}

    def case_count(self) -> int:
        return len(self.get_output_labels())

    # ------------------------------------------------------------------
    # Hooks (no-op)
    # ------------------------------------------------------------------
    def on_initialise(self) -> None:
        pass

    def on_save(self) -> None:
        pass

    def on_delete(self) -> None:
        pass

    def on_abort(self) -> None:
        pass

    def on_finalise(self) -> None:
        pass


class TriggerStep(BaseStep):
    role = StepRole.TRIGGER
    output_connectors = LinkRange(0, 20)


class ConnectorStep(BaseStep):
    role = StepRole.CONNECTOR
    input_connectors = LinkRange(0, 1)
    output_connectors = LinkRange(0, 20)


class ReaderStep(BaseStep):
    """Produz registros a partir de uma fonte preguiçosa (`read`)."""

    role = StepRole.READER
    input_connectors = LinkRange(0, 1)
    output_flows = LinkRange(1, 1)

    def read(self) -> Iterable[Any]:
        raise NotImplementedError

    def get_iterator(self) -> Optional["FlowIterator"]:
        from dagflow.core.iterators import ProducingIterator

        runtime = self._require_runtime()
        return ProducingIterator(runtime, runtime.guard(self.read()))


class FlowStep(BaseStep):
    role = StepRole.FLOW
    input_flows = LinkRange(1, 1)
    output_flows = LinkRange(0, 1)


class WriterStep(BaseStep):
    role = StepRole.WRITER
    input_flows = LinkRange(1, 1)
    output_flows = LinkRange(0, 1)
    output_connectors = LinkRange(0, 1)
