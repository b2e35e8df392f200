# src/dagflow/core/variables/tree.py
"""
Árvore de variáveis de uma execução de dataflow.

Estrutura da raiz:
    - global            → variáveis globais do engine (`global.vars`)
    - dataflow          → id, name, config, vars e states do dataflow
    - run               → identificação da run corrente
    - steps.<alias>     → subárvore de cada step (id, alias, type, config,
                          vars, states, outputs e saídas declaradas)

Regras de escrita:
    - o engine escreve em qualquer caminho (`VariableTree.set`)
    - um step escreve apenas na própria subárvore (`StepScope.set`)
    - steps que gravam variáveis arbitrárias usam `assign(path, value, owner)`,
      que recusa a subárvore de outro step

Leituras entre steps são do tipo snapshot: não há garantia transacional.
A leitura redigida (`get_redacted`) troca campos secretos da
configuração por `REDACTED` e serve apenas para exibição/log.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from dagflow.core.exceptions import VariableScopeError
from dagflow.core.expression import ExpressionEvaluator

from .nodes import VariableScope, split_path

REDACTED = "*****"


class StepScope(VariableScope):
    """Subárvore `steps.<alias>`, escrita apenas pelo próprio step."""

    def __init__(self, name, parent, tree, secret_fields: Iterable[str] = ()):
        super().__init__(name, parent, tree)
        self.secret_fields = tuple(secret_fields)

    @property
    def alias(self) -> str:
        return self.name

    def redacted(self) -> Dict[str, Any]:
        data = super().redacted()
        config = data.get("config")
        if isinstance(config, dict):
            for field in self.secret_fields:
                if config.get(field) not in (None, ""):
                    config[field] = REDACTED
        return data


class VariableTree(VariableScope):
    def __init__(self, evaluator: Optional[ExpressionEvaluator] = None):
        self.evaluator = evaluator or ExpressionEvaluator()
        self.generation = 0
        super().__init__("", None, self)
        for name in ("global", "dataflow", "run"):
            self.children[name] = VariableScope(name, self, self)
        self.new_object("steps")

    def touch(self) -> None:
        self.generation += 1

    @property
    def dataflow(self) -> VariableScope:
        return self.children["dataflow"]  # type: ignore[return-value]

    def add_step(self, alias: str, data: Mapping[str, Any], secret_fields: Iterable[str] = ()) -> StepScope:
        steps = self.children["steps"]
        scope = StepScope(alias, steps, self, secret_fields)
        steps.children[alias] = scope  # type: ignore[attr-defined]
        scope.fill(data)
        self.touch()
        return scope

    def step(self, alias: str) -> StepScope:
        scope = self.children["steps"].children.get(alias)  # type: ignore[attr-defined]
        if not isinstance(scope, StepScope):
            raise KeyError(alias)
        return scope

    def assign(self, path: str, value: Any, owner: Optional[str] = None) -> None:
        """Escrita guardada: um step não altera a subárvore de outro step."""
        levels = split_path(path)
        if not levels:
            raise VariableScopeError(message="A variable path is required", details={"path": path})
        if levels[0] == "steps" and (len(levels) < 2 or levels[1] != owner):
            raise VariableScopeError(
                message=f"Step '{owner}' cannot write to '{path}'",
                details={"path": path, "owner": owner},
                hint="A step subtree is writable only by that step.",
            )
        self.set(path, value)
