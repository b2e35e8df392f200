# src/dagflow/core/engine/planner.py
"""
Planejador de execução de um `StepGraph` já validado.

O grafo é condensado em unidades de execução:
    - ConnectorUnit  → um trigger ou connector; executa uma única vez
    - FlowBlockUnit  → um componente conexo de steps de fluxo; executado
                       por um flow cap que puxa todos os steps terminais

As unidades são ordenadas de forma topológica e determinística
(Kahn modificado, empates por ordem lexicográfica do id da unidade).

Decisões arquiteturais:
    - O plano é derivado apenas da estrutura do grafo
    - A aciclicidade do plano já foi garantida pelo builder

Invariantes:
    - Todo step aparece em exatamente uma unidade
    - Nenhuma unidade aparece antes das unidades das quais depende
    - A mesma definição produz sempre o mesmo plano

Limites explícitos:
    - Não executa Steps
    - Não interage com RunContext
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set, Union

from dagflow.core.graph import StepGraph, topological_order
from dagflow.core.graph.builder import flow_unit_id
from dagflow.core.pipeline.definition import Edge
from dagflow.core.pipeline.types import LinkKind


@dataclass(frozen=True)
class ConnectorUnit:
    id: str
    alias: str

    @property
    def aliases(self) -> List[str]:
        return [self.alias]


@dataclass(frozen=True)
class FlowBlockUnit:
    """`terminals`: steps do bloco sem dependentes de fluxo."""

    id: str
    aliases: List[str]
    terminals: List[str]


Unit = Union[ConnectorUnit, FlowBlockUnit]


@dataclass
class ExecutionPlan:
    units: List[Unit]
    unit_of: Dict[str, str]
    downstream: Dict[str, Set[str]] = field(default_factory=dict)

    def descendants(self, unit_id: str) -> Set[str]:
        """Todas as unidades alcançáveis a partir de `unit_id` (exclusive)."""
        found: Set[str] = set()
        pending = list(self.downstream.get(unit_id, ()))
        while pending:
            current = pending.pop()
            if current in found:
                continue
            found.add(current)
            pending.extend(self.downstream.get(current, ()))
        return found


def plan_execution(graph: StepGraph) -> ExecutionPlan:
    units: Dict[str, Unit] = {}
    for block in graph.flow_blocks():
        terminals = [alias for alias in block if not graph.outbound(alias, LinkKind.FLOW)]
        unit = FlowBlockUnit(id=flow_unit_id(block), aliases=list(block), terminals=terminals)
        units[unit.id] = unit
    for alias in graph.order:
        if not graph.node(alias).is_flow:
            units[alias] = ConnectorUnit(id=alias, alias=alias)

    unit_of, links = graph.unit_edges()
    downstream: Dict[str, Set[str]] = {unit_id: set() for unit_id in units}
    for source, target in links:
        downstream[source].add(target)

    order = topological_order(list(units), [Edge(source, target) for source, target in links])
    return ExecutionPlan(
        units=[units[unit_id] for unit_id in order],
        unit_of=unit_of,
        downstream=downstream,
    )
