# src/dagflow/core/graph/builder.py
"""
Construção e validação do grafo de steps de um dataflow.

O builder transforma a definição plana (steps + dependências) em um
`StepGraph` validado, acumulando **todos** os erros encontrados antes de
responder:

    - aliases duplicados, tipos de step desconhecidos, dependências
      para aliases inexistentes
    - `validate_config` de cada tipo de step (por campo)
    - cardinalidade de entrada/saída para flow e connector (4 faixas)
      em todo step que não é trigger
    - homogeneidade do tipo de ligação em cada direção
    - steps de ramificação: número de casos ≤ máximo de saídas de fluxo
      e posição 1..N declarada por cada dependente
    - aciclicidade (`is_dag`) do grafo e do plano condensado
      (connectors + blocos de fluxo)

Saída:
    - `Ok(StepGraph)` com ordem topológica determinística (Kahn,
      empates por ordem lexicográfica de alias)
    - `Err("graph", {"message": ..., "errors": [DagflowErrorPayload, ...]})`

Nenhum step é instanciado para execução aqui: isso é papel do engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Set, Tuple

from dagflow.core.errors import (
    DagflowErrorPayload,
    GRAPH_CASE_COUNT,
    GRAPH_CASE_POSITION,
    GRAPH_CONNECTOR_INSIDE_FLOW,
    GRAPH_DUPLICATE_ALIAS,
    GRAPH_UNKNOWN_DEPENDENCY,
    GRAPH_UNKNOWN_STEP_TYPE,
    config_invalid,
    graph_cycle,
    graph_link_count,
    graph_mixed_links,
)
from dagflow.core.exceptions import UnknownStepTypeError
from dagflow.core.pipeline.definition import DataflowDefinition, Edge, StepDefinition
from dagflow.core.pipeline.registry import StepTypeRegistry
from dagflow.core.pipeline.types import LinkKind, StepRole
from dagflow.core.result import GRAPH, Err, Ok, Result

from .dag import is_dag


@dataclass
class GraphNode:
    definition: StepDefinition
    step_type: Any
    inbound: List[Edge] = field(default_factory=list)
    outbound: List[Edge] = field(default_factory=list)

    @property
    def alias(self) -> str:
        return self.definition.alias

    @property
    def role(self) -> StepRole:
        return self.step_type.role

    @property
    def is_flow(self) -> bool:
        return self.role.is_flow


@dataclass
class StepGraph:
    dataflow: DataflowDefinition
    nodes: Dict[str, GraphNode]
    edges: List[Edge]
    order: List[str] = field(default_factory=list)

    def node(self, alias: str) -> GraphNode:
        return self.nodes[alias]

    def link_kind(self, edge: Edge) -> LinkKind:
        if self.nodes[edge.source].is_flow and self.nodes[edge.target].is_flow:
            return LinkKind.FLOW
        return LinkKind.CONNECTOR

    def inbound(self, alias: str, kind: LinkKind) -> List[Edge]:
        return [edge for edge in self.nodes[alias].inbound if self.link_kind(edge) is kind]

    def outbound(self, alias: str, kind: LinkKind) -> List[Edge]:
        return [edge for edge in self.nodes[alias].outbound if self.link_kind(edge) is kind]

    def flow_blocks(self) -> List[List[str]]:
        """Componentes conexos de steps de fluxo, na ordem topológica."""
        order = self.order or list(self.nodes)
        parent: Dict[str, str] = {alias: alias for alias in order if self.nodes[alias].is_flow}

        def find(alias: str) -> str:
            while parent[alias] != alias:
                parent[alias] = parent[parent[alias]]
                alias = parent[alias]
            return alias

        for edge in self.edges:
            if self.link_kind(edge) is LinkKind.FLOW:
                a, b = find(edge.source), find(edge.target)
                if a != b:
                    parent[b] = a

        blocks: Dict[str, List[str]] = {}
        for alias in order:
            if alias in parent:
                blocks.setdefault(find(alias), []).append(alias)
        return list(blocks.values())

    def unit_edges(self) -> Tuple[Dict[str, str], List[Tuple[str, str]]]:
        """Mapeia cada step para sua unidade de execução e liga as unidades."""
        unit_of: Dict[str, str] = {}
        for block in self.flow_blocks():
            for alias in block:
                unit_of[alias] = flow_unit_id(block)
        for alias, node in self.nodes.items():
            if not node.is_flow:
                unit_of[alias] = alias

        links: List[Tuple[str, str]] = []
        for edge in self.edges:
            source, target = unit_of[edge.source], unit_of[edge.target]
            if (source, target) not in links and source != target:
                links.append((source, target))
        return unit_of, links


def flow_unit_id(block: List[str]) -> str:
    return f"flow:{block[0]}"


def topological_order(aliases: List[str], edges: List[Edge]) -> List[str]:
    incoming: Dict[str, int] = {alias: 0 for alias in aliases}
    outgoing: Dict[str, Set[str]] = {alias: set() for alias in aliases}
    for edge in edges:
        if edge.target not in outgoing[edge.source]:
            outgoing[edge.source].add(edge.target)
            incoming[edge.target] += 1

    ready: List[str] = sorted(alias for alias, count in incoming.items() if count == 0)
    order: List[str] = []
    while ready:
        alias = ready.pop(0)
        order.append(alias)
        for child in sorted(outgoing[alias]):
            incoming[child] -= 1
            if incoming[child] == 0:
                ready.append(child)
                ready.sort()
    return order


class StepGraphBuilder:
    def __init__(self, registry: StepTypeRegistry):
        self.registry = registry

    def build(self, dataflow: DataflowDefinition) -> Result:
        errors: List[DagflowErrorPayload] = []
        nodes: Dict[str, GraphNode] = {}
        declared: Set[str] = set()

        for definition in dataflow.steps:
            alias = definition.alias
            if alias in declared:
                errors.append(DagflowErrorPayload(
                    type=GRAPH_DUPLICATE_ALIAS,
                    message=f"Duplicate step alias '{alias}'",
                    step=alias,
                ))
                continue
            declared.add(alias)

            try:
                step_type = self.registry.create(definition)
            except UnknownStepTypeError as exc:
                errors.append(DagflowErrorPayload(
                    type=GRAPH_UNKNOWN_STEP_TYPE,
                    message=exc.message,
                    details=dict(exc.details),
                    step=alias,
                ))
                continue

            nodes[alias] = GraphNode(definition=definition, step_type=step_type)
            validation = step_type.validate_config(definition.config)
            if validation is not True:
                for field_name, message in dict(validation).items():
                    errors.append(config_invalid(step=alias, field=field_name, message=message))

        edges: List[Edge] = []
        for edge in dataflow.edges:
            if edge.source not in declared:
                errors.append(DagflowErrorPayload(
                    type=GRAPH_UNKNOWN_DEPENDENCY,
                    message=f"Depends on unknown step '{edge.source}'",
                    details={"dependency": edge.source},
                    step=edge.target,
                ))
                continue
            if edge.source not in nodes or edge.target not in nodes:
                continue
            edges.append(edge)
            nodes[edge.source].outbound.append(edge)
            nodes[edge.target].inbound.append(edge)

        graph = StepGraph(dataflow=dataflow, nodes=nodes, edges=edges)

        for node in nodes.values():
            errors.extend(self._check_links(graph, node))
            errors.extend(self._check_branches(graph, node))

        if not is_dag((edge.source, edge.target) for edge in edges):
            errors.append(graph_cycle(edges=[(edge.source, edge.target) for edge in edges]))
        else:
            graph.order = topological_order(list(nodes), edges)
            unit_of, links = graph.unit_edges()
            if not is_dag(links):
                errors.append(DagflowErrorPayload(
                    type=GRAPH_CONNECTOR_INSIDE_FLOW,
                    message="A connector step cannot run in the middle of a flow",
                    details={"units": [list(link) for link in links]},
                    hint="Move the connector before the reader or after the writer of the flow.",
                ))

        if errors:
            return Err(GRAPH, {
                "message": f"The dataflow '{dataflow.name}' is invalid ({len(errors)} error(s))",
                "errors": errors,
            })
        return Ok(graph)

    def _check_links(self, graph: StepGraph, node: GraphNode) -> List[DagflowErrorPayload]:
        errors: List[DagflowErrorPayload] = []
        step_type = node.step_type
        directions = (
            ("input", node.inbound, step_type.input_flows, step_type.input_connectors),
            ("output", node.outbound, step_type.output_flows, step_type.output_connectors),
        )
        for direction, edges, flow_range, connector_range in directions:
            flows = [edge for edge in edges if graph.link_kind(edge) is LinkKind.FLOW]
            connectors = [edge for edge in edges if graph.link_kind(edge) is LinkKind.CONNECTOR]

            if flows and connectors:
                other = "source" if direction == "input" else "target"
                errors.append(graph_mixed_links(
                    step=node.alias,
                    direction=direction,
                    links={
                        "flow": [getattr(edge, other) for edge in flows],
                        "connector": [getattr(edge, other) for edge in connectors],
                    },
                ))

            if node.role is StepRole.TRIGGER:
                continue

            for kind, found, limits in (("flow", flows, flow_range), ("connector", connectors, connector_range)):
                if not limits.accepts(len(found)):
                    errors.append(graph_link_count(
                        step=node.alias,
                        kind=kind,
                        direction=direction,
                        count=len(found),
                        minimum=limits.minimum,
                        maximum=limits.maximum,
                    ))
        return errors

    def _check_branches(self, graph: StepGraph, node: GraphNode) -> List[DagflowErrorPayload]:
        step_type = node.step_type
        if not step_type.branching:
            return []

        errors: List[DagflowErrorPayload] = []
        cases = step_type.case_count()
        maximum = step_type.output_flows.maximum
        if cases > maximum:
            errors.append(DagflowErrorPayload(
                type=GRAPH_CASE_COUNT,
                message=f"Declares {cases} cases but allows at most {maximum} outputs",
                details={"cases": cases, "max": maximum},
                step=node.alias,
            ))

        for edge in node.outbound:
            if edge.position is None or not 1 <= edge.position <= cases:
                errors.append(DagflowErrorPayload(
                    type=GRAPH_CASE_POSITION,
                    message=(
                        f"Must depend on '{node.alias}' with a case position between 1 and {cases}"
                        f" (got {edge.position})"
                    ),
                    details={"branch": node.alias, "position": edge.position, "cases": cases},
                    step=edge.target,
                ))

        node.outbound.sort(key=lambda edge: (edge.position is None, edge.position or 0))
        return errors


def case_position_map(graph: StepGraph, alias: str) -> Dict[str, int]:
    """Dependente → posição do caso (1-based) para um step de ramificação."""
    return {
        edge.target: int(edge.position)
        for edge in graph.node(alias).outbound
        if edge.position is not None
    }
