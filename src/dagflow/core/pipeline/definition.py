# src/dagflow/core/pipeline/definition.py
"""
Definições declarativas de dataflows e steps.

Um dataflow é descrito por uma lista ordenada de `StepDefinition`, cada
uma com alias único, tipo (chave do registry), configuração bruta e
lista de dependências. As arestas do grafo são derivadas das
dependências: `depends_on: ["switch:2"]` gera a aresta
`Edge(source="switch", target=<step>, position=2)`.

Formato de documento (YAML/dict) aceito por `DataflowDefinition.from_dict`:

    name: Orders
    enabled: true
    concurrency_enabled: false
    vars:
      limit: 10
    steps:
      read:
        type: reader_csv
        config: {path: orders.csv}
      write:
        type: writer_stream
        depends_on: [read]
        config: {streamname: out.json}

Invariantes:
    - definições são imutáveis (frozen) durante a run
    - a ordem dos steps é a ordem de declaração
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

POSITION_SEPARATOR = ":"


@dataclass(frozen=True)
class Dependency:
    alias: str
    position: Optional[int] = None

    @classmethod
    def parse(cls, value: Union[str, "Dependency", Mapping[str, Any]]) -> "Dependency":
        if isinstance(value, Dependency):
            return value
        if isinstance(value, Mapping):
            position = value.get("position")
            return cls(str(value["alias"]), int(position) if position is not None else None)
        text = str(value).strip()
        if POSITION_SEPARATOR in text:
            alias, _, position = text.rpartition(POSITION_SEPARATOR)
            if position.strip().isdigit():
                return cls(alias.strip(), int(position))
        return cls(text)

    def __str__(self) -> str:
        if self.position is None:
            return self.alias
        return f"{self.alias}{POSITION_SEPARATOR}{self.position}"


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    position: Optional[int] = None


def _freeze(data: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class StepDefinition:
    alias: str
    type: str
    config: Mapping[str, Any] = field(default_factory=dict)
    depends_on: Tuple[Dependency, ...] = ()
    id: Optional[int] = None
    name: str = ""
    description: str = ""
    vars: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "config", _freeze(self.config))
        object.__setattr__(self, "vars", _freeze(self.vars))
        object.__setattr__(
            self, "depends_on", tuple(Dependency.parse(dep) for dep in (self.depends_on or ()))
        )
        if not self.name:
            object.__setattr__(self, "name", self.alias)

    @classmethod
    def from_dict(cls, alias: str, data: Mapping[str, Any], *, id: Optional[int] = None) -> "StepDefinition":
        depends_on = data.get("depends_on") or ()
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        return cls(
            alias=alias,
            type=str(data.get("type", "")),
            config=data.get("config") or {},
            depends_on=tuple(depends_on),
            id=data.get("id", id),
            name=str(data.get("name") or alias),
            description=str(data.get("description") or ""),
            vars=data.get("vars") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "depends_on": [str(dep) for dep in self.depends_on],
            "config": dict(self.config),
            "vars": dict(self.vars),
        }


@dataclass(frozen=True)
class DataflowDefinition:
    id: str
    name: str
    steps: Tuple[StepDefinition, ...] = ()
    vars: Mapping[str, Any] = field(default_factory=dict)
    enabled: bool = True
    concurrency_enabled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "vars", _freeze(self.vars))

    @property
    def edges(self) -> List[Edge]:
        return [
            Edge(source=dep.alias, target=step.alias, position=dep.position)
            for step in self.steps
            for dep in step.depends_on
        ]

    def step(self, alias: str) -> StepDefinition:
        for step in self.steps:
            if step.alias == alias:
                return step
        raise KeyError(alias)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, id: Optional[str] = None) -> "DataflowDefinition":
        raw_steps = data.get("steps") or {}
        steps: List[StepDefinition] = []
        if isinstance(raw_steps, Mapping):
            for index, (alias, step_data) in enumerate(raw_steps.items(), start=1):
                steps.append(StepDefinition.from_dict(str(alias), step_data or {}, id=index))
        else:
            for index, step_data in enumerate(raw_steps, start=1):
                steps.append(StepDefinition.from_dict(str(step_data["alias"]), step_data, id=index))

        name = str(data.get("name") or id or "dataflow")
        return cls(
            id=str(data.get("id") or id or name),
            name=name,
            steps=tuple(steps),
            vars=data.get("vars") or {},
            enabled=bool(data.get("enabled", True)),
            concurrency_enabled=bool(data.get("concurrency_enabled", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "concurrency_enabled": self.concurrency_enabled,
            "vars": dict(self.vars),
            "steps": {step.alias: step.to_dict() for step in self.steps},
        }


def replace_step(dataflow: DataflowDefinition, step: StepDefinition) -> DataflowDefinition:
    """Nova definição do dataflow com `step` no lugar do step de mesmo alias."""
    steps: Sequence[StepDefinition] = [step if s.alias == step.alias else s for s in dataflow.steps]
    return DataflowDefinition(
        id=dataflow.id,
        name=dataflow.name,
        steps=tuple(steps),
        vars=dataflow.vars,
        enabled=dataflow.enabled,
        concurrency_enabled=dataflow.concurrency_enabled,
    )
