"""
dagflow — Canonical Exceptions (v1)

Exceções tipadas internas do dagflow.

Objetivo:
- Permitir que Steps/Engine levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para DagflowErrorPayload
- Reservar exceções para condições realmente irrecuperáveis
  (falhas de expressão e abort usam `Result` / sinais explícitos)

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import DagflowErrorPayload


@dataclass(eq=False)
class DagflowException(Exception):
    """Base class para exceções internas do dagflow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Validação (lote)
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ValidationBatchError(DagflowException):
    """Erro que transporta um lote completo de erros de validação."""

    errors: List[DagflowErrorPayload] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [self.message]
        lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)


@dataclass(eq=False)
class GraphValidationError(ValidationBatchError):
    """O grafo de steps é inválido; nada foi executado."""


@dataclass(eq=False)
class StepConfigurationError(ValidationBatchError):
    """Configuração de um ou mais steps é inválida."""


# ---------------------------------------------------------------------------
# Expressões / Variáveis
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ExpressionError(DagflowException):
    """Expressão não resolvida ou inválida (com linha/coluna em `details`)."""


@dataclass(eq=False)
class VariableScopeError(DagflowException):
    """Escrita fora do escopo permitido na árvore de variáveis."""


# ---------------------------------------------------------------------------
# Registry / Engine
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class UnknownStepTypeError(DagflowException):
    """Nenhuma factory registrada para o tipo de step."""


@dataclass(eq=False)
class EngineStatusError(DagflowException):
    """Transição de status proibida pela máquina de estados."""


@dataclass(eq=False)
class StepExecutionError(DagflowException):
    """Falha explícita levantada por um step durante `execute`."""


@dataclass(eq=False)
class RunFinalisedError(DagflowException):
    """O registro de run já foi finalizado e é imutável."""
