"""
dagflow — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do dagflow.
Erros são artefatos de domínio e fazem parte do contrato operacional
do engine, devendo ser:

- explícitos
- serializáveis
- agrupáveis em lote (validação de grafo e configuração)
- associados a um step e, quando aplicável, a um campo

Taxonomia:
    - GRAPH_*       → ciclos, cardinalidade, tipos de link misturados
    - CONFIG_*      → estrutura inválida ou campos ausentes (por step)
    - EXPRESSION_*  → expressões não resolvidas ou inválidas
    - ENGINE_*      → erros de execução e de máquina de estados
    - LOCK_*        → contenção de lock ("blocked", nunca exceção)
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DagflowErrorPayload:
    """
    Payload canônico de erro do dagflow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - step: alias do step envolvido, quando houver
    - field: campo de configuração envolvido, quando houver
    """

    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    step: Optional[str] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)

    def __str__(self) -> str:
        prefix = f"[{self.step}] " if self.step else ""
        suffix = f" ({self.field})" if self.field else ""
        return f"{prefix}{self.message}{suffix}"


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Grafo
GRAPH_CYCLE = "GRAPH_CYCLE"
GRAPH_LINK_COUNT = "GRAPH_LINK_COUNT"
GRAPH_MIXED_LINKS = "GRAPH_MIXED_LINKS"
GRAPH_DUPLICATE_ALIAS = "GRAPH_DUPLICATE_ALIAS"
GRAPH_UNKNOWN_DEPENDENCY = "GRAPH_UNKNOWN_DEPENDENCY"
GRAPH_UNKNOWN_STEP_TYPE = "GRAPH_UNKNOWN_STEP_TYPE"
GRAPH_CASE_COUNT = "GRAPH_CASE_COUNT"
GRAPH_CASE_POSITION = "GRAPH_CASE_POSITION"
GRAPH_CONNECTOR_INSIDE_FLOW = "GRAPH_CONNECTOR_INSIDE_FLOW"

# Configuração
CONFIG_INVALID = "CONFIG_INVALID"

# Expressões
EXPRESSION_UNRESOLVED = "EXPRESSION_UNRESOLVED"
EXPRESSION_INVALID = "EXPRESSION_INVALID"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_ABORTED = "ENGINE_ABORTED"

# Lock
LOCK_BLOCKED = "LOCK_BLOCKED"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def graph_cycle(*, edges: List[Any]) -> DagflowErrorPayload:
    return DagflowErrorPayload(
        type=GRAPH_CYCLE,
        message="The dataflow contains a dependency cycle",
        details={"edges": [list(edge) for edge in edges]},
        hint="Remove one of the dependencies that closes the loop.",
    )


def graph_link_count(
    *,
    step: str,
    kind: str,
    direction: str,
    count: int,
    minimum: int,
    maximum: int,
) -> DagflowErrorPayload:
    if count < minimum:
        message = f"Requires at least {minimum} {direction} {kind} link(s), found {count}"
    else:
        message = f"Allows at most {maximum} {direction} {kind} link(s), found {count}"
    return DagflowErrorPayload(
        type=GRAPH_LINK_COUNT,
        message=message,
        details={
            "kind": kind,
            "direction": direction,
            "count": count,
            "min": minimum,
            "max": maximum,
        },
        step=step,
    )


def graph_mixed_links(*, step: str, direction: str, links: Dict[str, List[str]]) -> DagflowErrorPayload:
    return DagflowErrorPayload(
        type=GRAPH_MIXED_LINKS,
        message=f"Mixes flow and connector links in the {direction} direction",
        details={"direction": direction, "links": links},
        hint="A step can only link to flow steps or to connector steps on each side, never both.",
        step=step,
    )


def config_invalid(*, step: str, field: str, message: str) -> DagflowErrorPayload:
    return DagflowErrorPayload(
        type=CONFIG_INVALID,
        message=message,
        details={},
        step=step,
        field=field,
    )


def engine_execution_error(
    *,
    step: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
) -> DagflowErrorPayload:
    return DagflowErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message=exc_message or "Unexpected failure while executing the dataflow",
        details={"exc_type": exc_type},
        hint="Check the run log for the step context of this failure.",
        step=step,
    )


def engine_aborted(*, reason: str, step: Optional[str] = None) -> DagflowErrorPayload:
    return DagflowErrorPayload(
        type=ENGINE_ABORTED,
        message=reason,
        details={},
        step=step,
    )
