# src/dagflow/core/engine/engine.py
"""
Engine de execução de dataflows.

Ciclo de vida de uma run:

    Engine(...)   → constrói e valida o grafo (levanta GraphValidationError)
    initialise()  → dataflow desabilitado, lock consultivo,
                    validate_for_run, on_initialise, registro de run
    process()     → executa o plano: connectors uma vez, blocos de fluxo
                    puxados pelo flow cap até o fim
    finalise()    → on_finalise de cada step inicializado (uma vez),
                    registro final da run, liberação do lock

`execute()` encadeia as três etapas e devolve um `RunResult`.

Estados do engine: NEW → INITIALISED → PROCESSING → FINISHED → FINALISED,
ou ABORTED (terminal). Um lock ocupado deixa a run em NEW com
`is_blocked()` verdadeiro.

Falhas:
    - exceções de steps viram `DagflowErrorPayload` (alias, classe,
      mensagem) e são registradas no log da run
    - com `engine.fail_fast` (padrão) a run é abortada; sem ele a unidade
      que falhou e suas dependentes são canceladas
    - o abort é um sinal explícito (`AbortSignal`), nunca uma exceção

Decisões arquiteturais:
    - O engine é o dono exclusivo dos `RuntimeStep` (arena indexada por
      alias); steps obtêm dados da run via `lookup(dataflow_id)`
    - O contexto da run (`RunContext`) é explícito: identidade, scratch
      directory e dry-run não vêm de estado global
"""

from __future__ import annotations

import tempfile
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from dagflow.core.config import DEFAULT_CONFIG, EngineSettings, compute_hash, deep_merge
from dagflow.core.errors import (
    DagflowErrorPayload,
    config_invalid,
    engine_aborted,
    engine_execution_error,
)
from dagflow.core.exceptions import (
    DagflowException,
    EngineStatusError,
    GraphValidationError,
    StepConfigurationError,
)
from dagflow.core.graph import StepGraph, StepGraphBuilder, case_position_map
from dagflow.core.iterators import FlowIterator, MapIterator, MergeIterator
from dagflow.core.pipeline.context import ENGINE_LOG_ID, RunContext
from dagflow.core.pipeline.definition import DataflowDefinition
from dagflow.core.pipeline.registry import StepTypeRegistry
from dagflow.core.pipeline.types import LinkKind, Status, StepOutcome, StepRole
from dagflow.core.signals import NO_VALUE, AbortSignal
from dagflow.core.traceability import DataflowRun, InMemoryRunStore
from dagflow.core.variables import VariableTree

from .locking import DataflowLock, FileLockFactory, InMemoryLockFactory, LockMetadata
from .planner import ConnectorUnit, ExecutionPlan, FlowBlockUnit, plan_execution
from .runtime import RunResources, RuntimeStep, StepFailure

# Locks compartilhados por todos os engines do processo
PROCESS_LOCKS = InMemoryLockFactory()


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de uma run."""

    status: Status
    blocked: bool = False
    steps: Dict[str, StepOutcome] = field(default_factory=dict)
    error: Optional[DagflowErrorPayload] = None
    lock: Optional[LockMetadata] = None
    run: Optional[DataflowRun] = None

    @property
    def ok(self) -> bool:
        return not self.blocked and self.status is Status.FINALISED


class FlowCap:
    """Consumidor final de um bloco de fluxo, dono do pull."""

    def __init__(self, alias: str, context: RunContext):
        self.alias = alias
        self.context = context
        self.records = 0
        self.finished = False

    def process(self, record: Any) -> Any:
        self.records += 1
        return record

    def on_iterator_finished(self) -> None:
        self.finished = True

    def log(self, message: str, level: str = "INFO", **extra: Any) -> None:
        self.context.log(step_id=self.alias, level=level, message=message, **extra)


class Engine:
    def __init__(
        self,
        dataflow: Union[DataflowDefinition, Mapping[str, Any]],
        registry: Optional[StepTypeRegistry] = None,
        config: Optional[Dict[str, Any]] = None,
        *,
        dry_run: bool = False,
        identity: Optional[str] = None,
        lock_factory: Any = None,
        run_store: Any = None,
        definition_store: Any = None,
        automated: bool = True,
    ):
        if not isinstance(dataflow, DataflowDefinition):
            dataflow = DataflowDefinition.from_dict(dataflow)
        if registry is None:
            from dagflow.steps import default_registry

            registry = default_registry()

        self.dataflow = dataflow
        self.registry = registry
        self.config = deep_merge(DEFAULT_CONFIG, config or {})
        self.settings = EngineSettings.from_config(self.config)
        self.dry_run = dry_run
        self.identity = identity
        self.automated = automated
        self.definition_store = definition_store
        self.run_store = run_store if run_store is not None else InMemoryRunStore()
        if lock_factory is None:
            lock_factory = FileLockFactory(self.settings.lock_dir) if self.settings.lock_dir else PROCESS_LOCKS
        self.lock_factory = lock_factory

        self.status = Status.NEW
        self.timestamps: Dict[str, float] = {}
        self.error: Optional[DagflowErrorPayload] = None
        self.abort_signal: Optional[AbortSignal] = None
        self._lock: Optional[DataflowLock] = None
        self._blocked: Optional[LockMetadata] = None
        self._finalised = False
        self._caps: List[MergeIterator] = []

        built = StepGraphBuilder(registry).build(dataflow)
        if not built.is_ok():
            raise GraphValidationError(message=built.message, errors=list(built.context.get("errors", [])))
        self.graph: StepGraph = built.value
        self.plan: ExecutionPlan = plan_execution(self.graph)

        run_id = uuid.uuid4().hex
        self.context = RunContext(
            run_id=run_id,
            created_at=datetime.now(timezone.utc),
            config=self.config,
            identity=identity,
            scratch_dir=Path(self.settings.scratch_root or tempfile.gettempdir()) / "dagflow" / run_id,
            dry_run=dry_run,
            min_level=self.settings.log_level,
        )
        self.tree = VariableTree()
        self.run = DataflowRun(
            dataflow_id=dataflow.id,
            run_id=run_id,
            identity=identity,
            dry_run=dry_run,
            definition_hash=compute_hash(dataflow.to_dict()),
        )
        self._resources = RunResources(
            dataflow=dataflow,
            tree=self.tree,
            context=self.context,
            settings=self.settings,
            request_abort=self._request_abort,
            definition_store=definition_store,
        )

        # arena: alias → runtime, na ordem topológica
        self.steps: Dict[str, RuntimeStep] = {
            alias: RuntimeStep(
                self.graph.node(alias).definition,
                self.graph.node(alias).step_type,
                dataflow.id,
                self.lookup,
            )
            for alias in self.graph.order
        }
        self._populate_tree()

    @classmethod
    def from_store(cls, store: Any, dataflow_id: str, **kwargs: Any) -> "Engine":
        kwargs.setdefault("definition_store", store)
        return cls(store.get_dataflow(dataflow_id), **kwargs)

    # ------------------------------------------------------------------
    # Arena / lookup
    # ------------------------------------------------------------------
    def lookup(self, dataflow_id: str) -> RunResources:
        if dataflow_id != self.dataflow.id:
            raise KeyError(dataflow_id)
        return self._resources

    def step(self, alias: str) -> RuntimeStep:
        return self.steps[alias]

    def _populate_tree(self) -> None:
        dataflow = self.dataflow
        self.tree.set("global.vars", dict(self.settings.global_vars))
        self.tree.set("dataflow", {
            "id": dataflow.id,
            "name": dataflow.name,
            "config": {
                "enabled": dataflow.enabled,
                "concurrency_enabled": dataflow.concurrency_enabled,
            },
            "vars": dict(dataflow.vars),
            "states": {},
        })
        self.tree.set("run", {"id": self.context.run_id, "name": "", "dry_run": self.dry_run})
        for alias, runtime in self.steps.items():
            definition = runtime.definition
            self.tree.add_step(
                alias,
                {
                    "id": definition.id,
                    "alias": alias,
                    "name": definition.name,
                    "type": definition.type,
                    "description": definition.description,
                    "depends_on": [str(dep) for dep in definition.depends_on],
                    "config": dict(definition.config),
                    "vars": dict(definition.vars),
                    "states": {},
                },
                runtime.step_type.secret_fields(),
            )

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------
    def set_status(self, status: Status) -> None:
        if self.status.is_terminal and status is not Status.FINALISED:
            if status is Status.ABORTED:
                return
            raise EngineStatusError(
                message=f"The engine cannot change from {self.status.value} to {status.value}",
                details={"from": self.status.value, "to": status.value},
            )
        self.status = status
        stamp = time.time()
        self.timestamps[status.value] = stamp
        self.tree.set(f"dataflow.states.{status.value}", stamp)

    def is_blocked(self) -> bool:
        return self._blocked is not None

    @property
    def lock_metadata(self) -> Optional[LockMetadata]:
        return self._blocked

    def is_aborted(self) -> bool:
        return self.status is Status.ABORTED

    def _log(self, message: str, level: str = "INFO", **extra: Any) -> None:
        self.context.log(step_id=ENGINE_LOG_ID, level=level, message=message, **extra)

    def _statuses(self) -> Dict[str, str]:
        return {alias: runtime.status.value for alias, runtime in self.steps.items()}

    def _needs_lock(self) -> bool:
        if not self.dataflow.concurrency_enabled:
            return True
        return not all(runtime.step_type.concurrency_supported for runtime in self.steps.values())

    def _release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None

    # ------------------------------------------------------------------
    # Initialise
    # ------------------------------------------------------------------
    def initialise(self) -> bool:
        if self.status is not Status.NEW or self.is_blocked():
            raise EngineStatusError(
                message=f"The engine cannot be initialised from {self.status.value}",
                details={"status": self.status.value},
            )

        if not self.dataflow.enabled and self.automated and not self.dry_run:
            self.abort(f"The dataflow '{self.dataflow.name}' is disabled")
            return False

        if self._needs_lock():
            lock = self.lock_factory.acquire(self.dataflow.id, self.identity)
            if lock is None:
                metadata = self.lock_factory.metadata(self.dataflow.id) or LockMetadata(
                    dataflow_id=self.dataflow.id, owner=None, process_id=0, timestamp=""
                )
                self._blocked = metadata
                self._log(
                    f"Execution blocked by a lock held by {metadata.owner or 'unknown'} "
                    f"(pid {metadata.process_id}) since {metadata.timestamp}",
                    level="WARNING",
                    lock=metadata.to_dict(),
                )
                return False
            self._lock = lock

        errors: List[DagflowErrorPayload] = []
        for alias, runtime in self.steps.items():
            runtime.config = runtime.variables.get("config") or {}
            try:
                validation = runtime.step_type.validate_for_run()
            finally:
                runtime.config = None
            if validation is not True:
                for field_name, message in dict(validation).items():
                    errors.append(config_invalid(step=alias, field=field_name, message=message))
        if errors:
            self._release_lock()
            for error in errors:
                self.context.log(step_id=error.step or ENGINE_LOG_ID, level="ERROR", message=str(error))
            raise StepConfigurationError(
                message=f"The dataflow '{self.dataflow.name}' cannot run ({len(errors)} error(s))",
                errors=errors,
            )

        if self.context.scratch_dir is not None:
            self.context.scratch_dir.mkdir(parents=True, exist_ok=True)

        self.run.name = self.run_store.next_name(self.dataflow.id)
        self.tree.set("run.name", self.run.name)

        for alias, runtime in self.steps.items():
            try:
                runtime.initialise()
            except Exception as exc:
                self._fail(alias, exc)
                self.abort(f"Step '{alias}' failed to initialise", step=alias)
                return False

        self.set_status(Status.INITIALISED)
        self._log(
            f"Initialised run {self.run.name} of '{self.dataflow.name}'"
            + (" (dry run)" if self.dry_run else ""),
        )
        self.run.initialise(self.tree.get_redacted(), status=Status.INITIALISED.value)
        return True

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------
    def process(self) -> None:
        if self.status is not Status.INITIALISED:
            return
        self.set_status(Status.PROCESSING)
        for runtime in self.steps.values():
            if runtime.status is Status.INITIALISED:
                runtime.set_status(Status.WAITING)

        skipped: Set[str] = set()
        for unit in self.plan.units:
            if self.is_aborted():
                break
            if unit.id in skipped:
                self._cancel(unit.aliases)
                continue

            try:
                proceed = self._run_unit(unit)
            except StepFailure as failure:
                self._fail(failure.alias, failure.cause)
                if self.settings.fail_fast:
                    self.abort(f"Step '{failure.alias}' failed: {failure.cause}", step=failure.alias)
                    break
                self._cancel(unit.aliases)
                proceed = False

            if not proceed:
                skipped |= self.plan.descendants(unit.id)
            self.run.snapshot(self.tree.get_redacted(), self._statuses())

        if not self.is_aborted():
            self.set_status(Status.FINISHED)

    def _run_unit(self, unit: Union[ConnectorUnit, FlowBlockUnit]) -> bool:
        if isinstance(unit, ConnectorUnit):
            return self._run_connector(unit)
        return self._run_flow_block(unit)

    def _connector_input(self, alias: str) -> Any:
        for edge in self.graph.node(alias).inbound:
            value = self.steps[edge.source].last_value
            return None if value is NO_VALUE else value
        return None

    def _run_connector(self, unit: ConnectorUnit) -> bool:
        runtime = self.steps[unit.alias]
        output = runtime.run_once(self._connector_input(unit.alias))
        if isinstance(output, AbortSignal):
            self.abort(output.reason, step=output.step or unit.alias)
            return False
        if output is False:
            runtime.set_status(Status.CANCELLED)
            runtime.log("Returned false, cancelling the dependent steps")
            return False
        runtime.set_status(Status.FINISHED)
        return True

    def _make_iterator(self, runtime: RuntimeStep, iterators: Dict[str, FlowIterator], cap: FlowCap) -> FlowIterator:
        alias = runtime.alias
        runtime.upstreams = [iterators[edge.source] for edge in self.graph.inbound(alias, LinkKind.FLOW)]
        runtime.callers = [edge.target for edge in self.graph.outbound(alias, LinkKind.FLOW)] or [cap.alias]
        runtime.positions = case_position_map(self.graph, alias) if runtime.step_type.branching else {}

        if runtime.role is StepRole.READER:
            runtime.config = runtime.resolve_config()

        iterator = runtime.step_type.get_iterator()
        if iterator is None:
            if len(runtime.upstreams) == 1:
                iterator = MapIterator(runtime, runtime.upstreams[0])
            else:
                iterator = MergeIterator(runtime, runtime.upstreams)
        runtime.iterator = iterator
        return iterator

    def _run_flow_block(self, unit: FlowBlockUnit) -> bool:
        cap = FlowCap(f"flowcap-{unit.aliases[0]}", self.context)
        iterators: Dict[str, FlowIterator] = {}
        try:
            for alias in unit.aliases:
                iterators[alias] = self._make_iterator(self.steps[alias], iterators, cap)
        except StepFailure:
            raise
        except Exception as exc:
            raise StepFailure(alias, exc) from exc

        merge = MergeIterator(cap, [iterators[alias] for alias in unit.terminals])
        self._caps.append(merge)

        while not merge.is_finished():
            merge.next(cap.alias)
            if self.is_aborted():
                return False

        for alias in unit.aliases:
            runtime = self.steps[alias]
            if not runtime.status.is_terminal and runtime.status is not Status.FINISHED:
                runtime.set_status(Status.FINISHED)
        self._log(f"Flow {unit.id} finished after {cap.records} record(s)", level="DEBUG")
        return True

    def _cancel(self, aliases: List[str]) -> None:
        for alias in aliases:
            self.steps[alias].cancel()

    def _fail(self, alias: str, exc: BaseException) -> DagflowErrorPayload:
        payload = engine_execution_error(step=alias, exc_type=exc.__class__.__name__, exc_message=str(exc))
        if isinstance(exc, DagflowException) and exc.details:
            payload.details.update(exc.details)
        self.steps[alias].error = payload
        self.error = payload
        self.context.log(
            step_id=alias,
            level="ERROR",
            message=f"{exc.__class__.__name__}: {exc}",
            exc_type=exc.__class__.__name__,
        )
        self.run.add_error(payload.to_dict())
        return payload

    # ------------------------------------------------------------------
    # Abort
    # ------------------------------------------------------------------
    def _request_abort(self, reason: str, step: Optional[str] = None) -> AbortSignal:
        return self.abort(reason, step=step)

    def abort(self, reason: str = "Aborted", step: Optional[str] = None) -> AbortSignal:
        """Aborta a run; chamadas repetidas devolvem o primeiro sinal."""
        if self.abort_signal is not None:
            return self.abort_signal
        signal = AbortSignal(reason=reason, step=step)
        if self._finalised:
            return signal

        self.abort_signal = signal
        self.context.log(step_id=step or ENGINE_LOG_ID, level="WARNING", message=f"Aborting the dataflow: {reason}")
        self.set_status(Status.ABORTED)
        if self.error is None:
            self.error = engine_aborted(reason=reason, step=step)

        for merge in self._caps:
            merge.abort()
        for alias, runtime in self.steps.items():
            try:
                runtime.abort()
            except Exception as exc:
                self.context.log(step_id=alias, level="ERROR", message=f"on_abort failed: {exc}")
        return signal

    # ------------------------------------------------------------------
    # Finalise
    # ------------------------------------------------------------------
    def finalise(self) -> None:
        if self._finalised:
            return
        self._finalised = True

        for alias, runtime in self.steps.items():
            try:
                runtime.finalise()
            except Exception as exc:
                self.context.log(step_id=alias, level="ERROR", message=f"on_finalise failed: {exc}")

        # bloqueada ou recusada em validate_for_run: não há run a registrar
        if self.is_blocked() or self.status is Status.NEW:
            self._release_lock()
            return

        if self.status is Status.ABORTED:
            run_status = Status.ABORTED.value
        else:
            self.set_status(Status.FINALISED)
            run_status = Status.FINISHED.value

        self._log(f"Run {self.run.name or self.run.run_id} ended with status {run_status}")
        self.run.finalise(self.tree.get_redacted(), self._statuses(), status=run_status, log=self.context.render_log())
        if not self.dry_run:
            self.run_store.save(self.run)
        self._release_lock()

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------
    def execute(self) -> RunResult:
        try:
            if self.initialise():
                self.process()
        finally:
            self.finalise()
        return self.result()

    def result(self) -> RunResult:
        return RunResult(
            status=self.status,
            blocked=self.is_blocked(),
            steps={alias: runtime.outcome() for alias, runtime in self.steps.items()},
            error=self.error,
            lock=self._blocked,
            run=self.run,
        )
