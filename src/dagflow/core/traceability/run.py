# src/dagflow/core/traceability/run.py
"""
Registro de run: rastreabilidade de uma execução de dataflow.

O `DataflowRun` consolida, de forma serializável e auditável:
    - identificação (dataflow_id, run id, nome sequencial por dataflow)
    - identidade de quem executou e flag de dry-run
    - status final e timestamps de início/fim
    - snapshots redigidos da árvore de variáveis (start/current/end)
    - resumo do status de cada step
    - hash da definição executada
    - log legível da run

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico
    - Snapshots são cópias profundas: mutações posteriores na árvore não
      alteram o que foi registrado

Invariantes:
    - depois de `finalise`, qualquer mutação levanta `RunFinalisedError`
    - `to_dict` / `from_dict` fazem round-trip

Limites explícitos:
    - Não executa pipeline
    - Não decide políticas de execução
"""

from __future__ import annotations

import copy
import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from dagflow.core.exceptions import RunFinalisedError


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return None if dt is None else _ensure_tzaware_utc(dt).isoformat()


def _parse(value: Optional[str]) -> Optional[datetime]:
    return None if not value else datetime.fromisoformat(value)


def _ms_between(start: datetime, end: datetime) -> int:
    """Duração em milissegundos, nunca negativa."""
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class DataflowRun:
    """
    Registro canônico de uma run.

    Campos de snapshot:
        - start_state   → árvore redigida após `initialise`
        - current_state → árvore redigida após a última unidade executada
        - end_state     → árvore redigida em `finalise`
    """

    dataflow_id: str
    run_id: str
    name: str = ""
    identity: Optional[str] = None
    dry_run: bool = False
    definition_hash: Optional[str] = None
    status: str = "new"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    start_state: Dict[str, Any] = field(default_factory=dict)
    current_state: Dict[str, Any] = field(default_factory=dict)
    end_state: Dict[str, Any] = field(default_factory=dict)
    steps: Dict[str, str] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    log: str = ""
    finalised: bool = False

    def _guard(self) -> None:
        if self.finalised:
            raise RunFinalisedError(
                message=f"Run '{self.run_id}' is finalised and can no longer change",
                details={"run_id": self.run_id, "dataflow_id": self.dataflow_id},
            )

    def initialise(self, state: Dict[str, Any], *, status: str = "initialised") -> None:
        self._guard()
        self.started_at = datetime.now(timezone.utc)
        self.status = status
        self.start_state = copy.deepcopy(state)
        self.current_state = copy.deepcopy(state)

    def snapshot(self, state: Dict[str, Any], steps: Dict[str, str], *, status: Optional[str] = None) -> None:
        self._guard()
        self.current_state = copy.deepcopy(state)
        self.steps = dict(steps)
        if status is not None:
            self.status = status

    def add_error(self, error: Dict[str, Any]) -> None:
        self._guard()
        self.errors.append(dict(error))

    def finalise(self, state: Dict[str, Any], steps: Dict[str, str], *, status: str, log: str = "") -> None:
        self._guard()
        self.finished_at = datetime.now(timezone.utc)
        if self.started_at is None:
            self.started_at = self.finished_at
        self.status = status
        self.end_state = copy.deepcopy(state)
        self.current_state = copy.deepcopy(state)
        self.steps = dict(steps)
        self.log = log
        self.finalised = True

    @property
    def duration_ms(self) -> Optional[int]:
        if self.started_at is None or self.finished_at is None:
            return None
        return _ms_between(self.started_at, self.finished_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataflow_id": self.dataflow_id,
            "run_id": self.run_id,
            "name": self.name,
            "identity": self.identity,
            "dry_run": self.dry_run,
            "definition_hash": self.definition_hash,
            "status": self.status,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
            "duration_ms": self.duration_ms,
            "start_state": copy.deepcopy(self.start_state),
            "current_state": copy.deepcopy(self.current_state),
            "end_state": copy.deepcopy(self.end_state),
            "steps": dict(self.steps),
            "errors": [dict(error) for error in self.errors],
            "log": self.log,
            "finalised": self.finalised,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataflowRun":
        return cls(
            dataflow_id=str(data["dataflow_id"]),
            run_id=str(data["run_id"]),
            name=str(data.get("name") or ""),
            identity=data.get("identity"),
            dry_run=bool(data.get("dry_run", False)),
            definition_hash=data.get("definition_hash"),
            status=str(data.get("status") or "new"),
            started_at=_parse(data.get("started_at")),
            finished_at=_parse(data.get("finished_at")),
            start_state=dict(data.get("start_state") or {}),
            current_state=dict(data.get("current_state") or {}),
            end_state=dict(data.get("end_state") or {}),
            steps=dict(data.get("steps") or {}),
            errors=list(data.get("errors") or []),
            log=str(data.get("log") or ""),
            finalised=bool(data.get("finalised", False)),
        )


# ---------------------------------------------------------------------------
# Run stores
# ---------------------------------------------------------------------------

class RunStore(Protocol):
    def next_name(self, dataflow_id: str) -> str: ...

    def save(self, run: DataflowRun) -> None: ...

    def get(self, dataflow_id: str, run_id: str) -> Optional[DataflowRun]: ...

    def list(self, dataflow_id: str) -> List[DataflowRun]: ...


class InMemoryRunStore:
    def __init__(self) -> None:
        self._runs: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def next_name(self, dataflow_id: str) -> str:
        with self._lock:
            self._counters[dataflow_id] = self._counters.get(dataflow_id, 0) + 1
            return f"#{self._counters[dataflow_id]}"

    def save(self, run: DataflowRun) -> None:
        with self._lock:
            self._runs.setdefault(run.dataflow_id, {})[run.run_id] = run.to_dict()

    def get(self, dataflow_id: str, run_id: str) -> Optional[DataflowRun]:
        data = self._runs.get(dataflow_id, {}).get(run_id)
        return None if data is None else DataflowRun.from_dict(data)

    def list(self, dataflow_id: str) -> List[DataflowRun]:
        return [DataflowRun.from_dict(data) for data in self._runs.get(dataflow_id, {}).values()]


class JsonRunStore:
    """
    Persistência em disco: `<directory>/<dataflow_id>/<run_id>.json`.

    O contador de nomes fica em `<directory>/<dataflow_id>/counter.json`.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _dataflow_dir(self, dataflow_id: str) -> Path:
        path = self.directory / dataflow_id
        path.mkdir(parents=True, exist_ok=True)
        return path

    def next_name(self, dataflow_id: str) -> str:
        with self._lock:
            counter_path = self._dataflow_dir(dataflow_id) / "counter.json"
            current = 0
            if counter_path.exists():
                current = int(json.loads(counter_path.read_text(encoding="utf-8")).get("last", 0))
            current += 1
            counter_path.write_text(json.dumps({"last": current}), encoding="utf-8")
            return f"#{current}"

    def save(self, run: DataflowRun) -> None:
        path = self._dataflow_dir(run.dataflow_id) / f"{run.run_id}.json"
        path.write_text(
            json.dumps(run.to_dict(), ensure_ascii=False, indent=2, sort_keys=True, default=str),
            encoding="utf-8",
        )

    def get(self, dataflow_id: str, run_id: str) -> Optional[DataflowRun]:
        path = self.directory / dataflow_id / f"{run_id}.json"
        if not path.exists():
            return None
        return DataflowRun.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def list(self, dataflow_id: str) -> List[DataflowRun]:
        folder = self.directory / dataflow_id
        if not folder.exists():
            return []
        return [
            DataflowRun.from_dict(json.loads(path.read_text(encoding="utf-8")))
            for path in sorted(folder.glob("*.json"))
            if path.name != "counter.json"
        ]
