# src/dagflow/core/pipeline/context.py
"""
Contexto de execução explícito de uma run.

Este módulo define o `RunContext`, o objeto passado explicitamente a
engine, steps e iterators no lugar de estado global:

    - identidade da execução (run_id, created_at)
    - identidade de quem executa (`identity`)
    - diretório de trabalho isolado (`scratch_dir`)
    - flag de dry-run
    - configuração resolvida do engine
    - log estruturado de eventos e warnings por step

Logging:
    - cada evento é um dicionário com run_id, step_id, level, message,
      timestamp UTC ISO e campos extras
    - eventos abaixo de `min_level` são descartados
    - `render_log()` produz o stream legível anexado à run

Limites explícitos:
    - Não executa Steps
    - Não decide políticas de execução
    - Não persiste dados automaticamente
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

LOG_LEVELS: Dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "NOTICE": 25,
    "WARNING": 30,
    "ERROR": 40,
}

ENGINE_LOG_ID = "engine"


@dataclass
class RunContext:
    """
    Contexto canônico de uma run.

    Decisões arquiteturais:
        - Não existe sessão/identidade global: tudo chega por aqui
        - `dry_run` é consultado pelos steps com efeito colateral
        - Logs e warnings são estruturados e rastreáveis

    Invariantes:
        - Cada execução possui um RunContext único
        - Logs incluem sempre `run_id` e `step_id`
        - Warnings são associados explicitamente a um step
    """
    run_id: str
    created_at: datetime
    config: Dict[str, Any] = field(default_factory=dict)
    identity: Optional[str] = None
    scratch_dir: Optional[Path] = None
    dry_run: bool = False
    min_level: str = "INFO"
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        level = level.upper()
        if LOG_LEVELS.get(level, 0) < LOG_LEVELS.get(self.min_level.upper(), 0):
            return
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)
        self.log(step_id=step_id, level="WARNING", message=message)

    def render_log(self) -> str:
        lines = []
        for event in self.events:
            lines.append(
                f"{event['timestamp']} {event['level']:<7} [{event['step_id']}] {event['message']}"
            )
        return "\n".join(lines)

    def messages(self, *, step_id: Optional[str] = None, level: Optional[str] = None) -> List[str]:
        return [
            event["message"]
            for event in self.events
            if (step_id is None or event["step_id"] == step_id)
            and (level is None or event["level"] == level.upper())
        ]
