# src/dagflow/core/pipeline/types.py
"""
Tipos canônicos do pipeline do dagflow.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre Steps, Engine e camadas de rastreabilidade.

Componentes principais:
    - StepRole    → papel do step no grafo (trigger, connector, reader, flow, writer)
    - LinkKind    → tipo de ligação entre dois steps (flow ou connector)
    - LinkRange   → faixa (min, max) de ligações aceitas em uma direção
    - Status      → estados do engine e dos steps durante a run
    - StepOutcome → resumo imutável do resultado de um step na run

Invariantes:
    - Enums possuem valores textuais canônicos (serializáveis em JSON)
    - StepOutcome é imutável
    - Tipos não dependem de engine, iterators ou variáveis
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class StepRole(str, Enum):
    """
    Papel de um step no grafo.

    - TRIGGER: origina a execução; executa uma vez, sem upstream
    - CONNECTOR: executa uma vez por run (sinal de controle)
    - READER: produz registros (início de um fluxo)
    - FLOW: transforma registros um a um
    - WRITER: consome registros (fim de um fluxo)
    """
    TRIGGER = "trigger"
    CONNECTOR = "connector"
    READER = "reader"
    FLOW = "flow"
    WRITER = "writer"

    @property
    def is_flow(self) -> bool:
        return self in (StepRole.READER, StepRole.FLOW, StepRole.WRITER)


class LinkKind(str, Enum):
    FLOW = "flow"
    CONNECTOR = "connector"


@dataclass(frozen=True)
class LinkRange:
    minimum: int = 0
    maximum: int = 0

    def accepts(self, count: int) -> bool:
        return self.minimum <= count <= self.maximum


NO_LINKS = LinkRange(0, 0)


class Status(str, Enum):
    """
    Estados do engine e dos steps.

    Engine: NEW → INITIALISED → PROCESSING → FINISHED → FINALISED, ou ABORTED.
    Step:   NEW → INITIALISED → WAITING → PROCESSING|FLOWING
            → FINISHED | CANCELLED | ABORTED → FINALISED.

    ABORTED, CANCELLED e FINALISED são terminais.
    """
    NEW = "new"
    INITIALISED = "initialised"
    BLOCKED = "blocked"
    WAITING = "waiting"
    PROCESSING = "processing"
    FLOWING = "flowing"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    ABORTED = "aborted"
    FINALISED = "finalised"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({Status.ABORTED, Status.CANCELLED, Status.FINALISED})


@dataclass(frozen=True)
class StepOutcome:
    """Resumo imutável do que aconteceu com um step em uma run."""

    alias: str
    type: str
    role: StepRole
    status: Status
    iterations: int = 0
    error: Optional[Dict[str, Any]] = None
    timestamps: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alias": self.alias,
            "type": self.type,
            "role": self.role.value,
            "status": self.status.value,
            "iterations": self.iterations,
            "error": self.error,
            "timestamps": dict(self.timestamps),
        }
