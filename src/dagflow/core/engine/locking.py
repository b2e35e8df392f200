# src/dagflow/core/engine/locking.py
"""
Locks consultivos por dataflow.

Um dataflow que não é seguro para concorrência admite no máximo uma run
em andamento. O lock é identificado pelo id do dataflow e carrega
metadados do dono (identidade, pid, instante de aquisição), usados para
reportar "blocked" sem levantar exceção.

Implementações:
    - InMemoryLockFactory → compartilhado dentro do processo
    - FileLockFactory     → arquivo criado com O_CREAT | O_EXCL contendo
                            os metadados em JSON (vale entre processos)
"""

from __future__ import annotations

import json
import os
import re
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Union


@dataclass(frozen=True)
class LockMetadata:
    dataflow_id: str
    owner: Optional[str]
    process_id: int
    timestamp: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def current(cls, dataflow_id: str, owner: Optional[str]) -> "LockMetadata":
        return cls(
            dataflow_id=dataflow_id,
            owner=owner,
            process_id=os.getpid(),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


class DataflowLock:
    def __init__(self, metadata: LockMetadata, release: Callable[[], None]):
        self.metadata = metadata
        self._release = release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._release()


class LockFactory(Protocol):
    def acquire(self, key: str, owner: Optional[str] = None) -> Optional[DataflowLock]: ...

    def metadata(self, key: str) -> Optional[LockMetadata]: ...


class InMemoryLockFactory:
    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._held: Dict[str, LockMetadata] = {}

    def acquire(self, key: str, owner: Optional[str] = None) -> Optional[DataflowLock]:
        with self._mutex:
            if key in self._held:
                return None
            metadata = LockMetadata.current(key, owner)
            self._held[key] = metadata
        return DataflowLock(metadata, lambda: self._drop(key))

    def _drop(self, key: str) -> None:
        with self._mutex:
            self._held.pop(key, None)

    def metadata(self, key: str) -> Optional[LockMetadata]:
        with self._mutex:
            return self._held.get(key)


class FileLockFactory:
    def __init__(self, lock_dir: Union[str, Path]):
        self.lock_dir = Path(lock_dir)

    def path_for(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.lock_dir / f"dataflow-{safe}.lock"

    def acquire(self, key: str, owner: Optional[str] = None) -> Optional[DataflowLock]:
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return None

        metadata = LockMetadata.current(key, owner)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(metadata.to_dict(), handle)
        return DataflowLock(metadata, lambda: self._remove(path))

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def metadata(self, key: str) -> Optional[LockMetadata]:
        path = self.path_for(key)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except ValueError:
            # arquivo ainda sendo escrito pelo dono
            return LockMetadata(dataflow_id=key, owner=None, process_id=0, timestamp="")
        return LockMetadata(
            dataflow_id=str(data.get("dataflow_id", key)),
            owner=data.get("owner"),
            process_id=int(data.get("process_id", 0)),
            timestamp=str(data.get("timestamp", "")),
        )
