# src/dagflow/core/engine/runtime.py
"""
Wrapper de execução de um step dentro de uma run.

O `RuntimeStep` combina a definição declarativa com a instância do tipo
de step e, para steps de fluxo, com o iterator montado pelo engine. Ele
é o único caminho entre o tipo de step e o restante da run:

    - status e timestamps de cada transição (gravados em
      `steps.<alias>.states.<status>`)
    - configuração resolvida a cada execução (expressões avaliadas
      contra a árvore de variáveis e o registro corrente)
    - saídas declaradas (`set_output`) e saídas configuradas pelo
      usuário (`config.outputs` → `steps.<alias>.outputs.<chave>`)
    - hooks de ciclo de vida chamados no máximo uma vez cada
    - pedidos de abort

Decisões arquiteturais:
    - O runtime guarda apenas o id do dataflow; árvore, contexto e
      configuração do engine são obtidos via `lookup(dataflow_id)`
    - Falhas de expressão na configuração são estritas (levantam); os
      campos de condição do tipo (`condition_fields`) ficam brutos e são
      avaliados por `condition`, onde referência indefinida é falso

Invariantes:
    - Depois de ABORTED ou CANCELLED só é permitido FINALISED
    - Depois de FINALISED nenhuma transição é permitida
    - Um abort repetido é ignorado
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Set

from dagflow.core.config import EngineSettings
from dagflow.core.errors import EXPRESSION_UNRESOLVED, DagflowErrorPayload
from dagflow.core.exceptions import EngineStatusError, VariableScopeError
from dagflow.core.expression import ExpressionEvaluator, raise_on_failure
from dagflow.core.iterators import FlowIterator
from dagflow.core.pipeline.context import RunContext
from dagflow.core.pipeline.definition import DataflowDefinition, StepDefinition
from dagflow.core.pipeline.types import Status, StepOutcome, StepRole
from dagflow.core.result import Err
from dagflow.core.signals import NO_VALUE, AbortSignal
from dagflow.core.variables import StepScope, VariableTree

OUTPUTS_FIELD = "outputs"


@dataclass
class RunResources:
    """O que um step pode consultar da run a partir do id do dataflow."""

    dataflow: DataflowDefinition
    tree: VariableTree
    context: RunContext
    settings: EngineSettings
    request_abort: Callable[[str, Optional[str]], AbortSignal]
    definition_store: Optional[Any] = None


Lookup = Callable[[str], RunResources]


class StepFailure(Exception):
    """Falha de um step durante a run, com o alias de origem."""

    def __init__(self, alias: str, cause: BaseException):
        super().__init__(f"{alias}: {cause}")
        self.alias = alias
        self.cause = cause


def _false_when_unresolved(error: Err) -> Any:
    if error.context.get("code") == EXPRESSION_UNRESOLVED:
        return False
    return raise_on_failure(error)


class RuntimeStep:
    def __init__(self, definition: StepDefinition, step_type: Any, dataflow_id: str, lookup: Lookup):
        self.definition = definition
        self.step_type = step_type
        self.dataflow_id = dataflow_id
        self._lookup = lookup

        self.status = Status.NEW
        self.timestamps: Dict[str, float] = {}
        self.iterator: Optional[FlowIterator] = None
        self.last_value: Any = NO_VALUE
        self.iterations = 0
        self.error: Optional[DagflowErrorPayload] = None
        self.config: Optional[Dict[str, Any]] = None
        self._hooks: Set[str] = set()

        # ligação de fluxo, preenchida pelo engine antes de get_iterator()
        self.upstreams: List[FlowIterator] = []
        self.callers: List[str] = []
        self.positions: Dict[str, int] = {}

        step_type.bind(self)

    def __repr__(self) -> str:
        return f"RuntimeStep(alias={self.alias!r}, status={self.status.value})"

    # ------------------------------------------------------------------
    # Identidade e recursos da run
    # ------------------------------------------------------------------
    @property
    def alias(self) -> str:
        return self.definition.alias

    @property
    def type(self) -> str:
        return self.definition.type

    @property
    def role(self) -> StepRole:
        return self.step_type.role

    @property
    def resources(self) -> RunResources:
        return self._lookup(self.dataflow_id)

    @property
    def context(self) -> RunContext:
        return self.resources.context

    @property
    def settings(self) -> EngineSettings:
        return self.resources.settings

    @property
    def tree(self) -> VariableTree:
        return self.resources.tree

    @property
    def evaluator(self) -> ExpressionEvaluator:
        return self.tree.evaluator

    @property
    def variables(self) -> StepScope:
        return self.tree.step(self.alias)

    @property
    def initialised(self) -> bool:
        return "on_initialise" in self._hooks

    def log(self, message: str, level: str = "INFO", **extra: Any) -> None:
        self.context.log(step_id=self.alias, level=level, message=message, **extra)

    # ------------------------------------------------------------------
    # Máquina de estados
    # ------------------------------------------------------------------
    def set_status(self, status: Status) -> None:
        if status is self.status and not status.is_terminal:
            return
        if self.status.is_terminal:
            if status is Status.ABORTED:
                return
            if self.status is Status.FINALISED or status is not Status.FINALISED:
                raise EngineStatusError(
                    message=f"Step '{self.alias}' cannot change from {self.status.value} to {status.value}",
                    details={"step": self.alias, "from": self.status.value, "to": status.value},
                )

        self.status = status
        stamp = time.time()
        self.timestamps[status.value] = stamp
        self.variables.set(f"states.{status.value}", stamp)

    def _hook(self, name: str) -> bool:
        if name in self._hooks:
            return False
        self._hooks.add(name)
        getattr(self.step_type, name)()
        return True

    def initialise(self) -> None:
        self._hook("on_initialise")
        self.set_status(Status.INITIALISED)

    def abort(self) -> None:
        if self.iterator is not None:
            self.iterator.abort()
        if not self.status.is_terminal and self.status is not Status.FINISHED:
            self.set_status(Status.ABORTED)
        if self.initialised:
            self._hook("on_abort")

    def cancel(self) -> None:
        if self.iterator is not None:
            self.iterator.abort()
        if not self.status.is_terminal:
            self.set_status(Status.CANCELLED)

    def finalise(self) -> None:
        if self.initialised:
            self._hook("on_finalise")
        if self.status is not Status.FINALISED:
            self.set_status(Status.FINALISED)

    def on_iterator_finished(self) -> None:
        if not self.status.is_terminal:
            self.set_status(Status.FINISHED)

    # ------------------------------------------------------------------
    # Configuração e expressões
    # ------------------------------------------------------------------
    def _extra(self, record: Any) -> Dict[str, Any]:
        if record is NO_VALUE or record is None:
            return {}
        return {"record": record}

    def resolve_config(self, record: Any = NO_VALUE) -> Dict[str, Any]:
        skipped = {OUTPUTS_FIELD, *getattr(self.step_type, "condition_fields", ())}
        raw = {key: value for key, value in self.definition.config.items() if key not in skipped}
        resolved = self.variables.evaluate(raw, extra=self._extra(record))
        for key in skipped - {OUTPUTS_FIELD}:
            if key in self.definition.config:
                resolved[key] = self.definition.config[key]
        return resolved

    def evaluate(self, template: Any, record: Any = NO_VALUE) -> Any:
        return self.variables.evaluate(template, extra=self._extra(record))

    def condition(self, expression: Any, record: Any = NO_VALUE) -> bool:
        """
        Avalia uma expressão booleana sem delimitadores (`record.a > 1`).

        Valores já resolvidos (bool, número) são usados como estão; uma
        referência indefinida conta como falso.
        """
        if not isinstance(expression, str):
            return bool(expression)
        text = expression.strip()
        if not self.evaluator.has_expression(text):
            text = f"${{{{ {text} }}}}"
        try:
            value = self.variables.evaluate(text, on_failure=_false_when_unresolved, extra=self._extra(record))
        except Exception as exc:
            raise StepFailure(self.alias, exc) from exc
        if isinstance(value, str):
            return value.strip().lower() not in ("", "false", "0", "null")
        return bool(value)

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    def run_once(self, input: Any = None) -> Any:
        """Execução de trigger/connector: uma vez por run."""
        self.set_status(Status.PROCESSING)
        try:
            self.config = self.resolve_config()
            output = self.step_type.execute(input)
            self.iterations += 1
            if isinstance(output, AbortSignal):
                return output
            self.last_value = output
            self.prepare_outputs()
        except StepFailure:
            raise
        except Exception as exc:
            raise StepFailure(self.alias, exc) from exc
        return output

    def process(self, record: Any) -> Any:
        """Execução por registro de um step de fluxo (chamada pelo iterator)."""
        if self.status in (Status.INITIALISED, Status.WAITING):
            self.set_status(Status.FLOWING)
        try:
            self.config = self.resolve_config(record)
            output = self.step_type.execute(record)
            self.iterations += 1
            if isinstance(output, AbortSignal):
                self.request_abort(output.reason)
                return NO_VALUE
            if output is None or output is NO_VALUE:
                return NO_VALUE
            self.last_value = output
            self.prepare_outputs(record)
        except StepFailure:
            raise
        except Exception as exc:
            raise StepFailure(self.alias, exc) from exc
        return output

    def guard(self, source: Iterable[Any]) -> Iterator[Any]:
        """Envolve uma fonte preguiçosa para atribuir falhas de leitura ao step."""
        try:
            yield from source
        except StepFailure:
            raise
        except Exception as exc:
            raise StepFailure(self.alias, exc) from exc

    def prepare_outputs(self, record: Any = NO_VALUE) -> None:
        outputs = self.definition.config.get(OUTPUTS_FIELD)
        if not isinstance(outputs, Mapping) or not outputs:
            return
        resolved = self.evaluate(dict(outputs), record)
        for key, value in resolved.items():
            self.variables.set(f"{OUTPUTS_FIELD}.{key}", value)

    def set_output(self, name: str, value: Any) -> None:
        declared = self.step_type.define_outputs()
        if name not in declared:
            raise VariableScopeError(
                message=f"Step '{self.alias}' does not declare the output '{name}'",
                details={"step": self.alias, "output": name, "declared": sorted(declared)},
                hint="Declare the output in define_outputs().",
            )
        self.variables.set(name, value)

    def request_abort(self, reason: str) -> AbortSignal:
        return self.resources.request_abort(reason, self.alias)

    def outcome(self) -> StepOutcome:
        return StepOutcome(
            alias=self.alias,
            type=self.type,
            role=self.role,
            status=self.status,
            iterations=self.iterations,
            error=None if self.error is None else self.error.to_dict(),
            timestamps=dict(self.timestamps),
        )
