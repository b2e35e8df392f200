# src/dagflow/core/pipeline/store.py
"""
Armazenamento de definições de dataflow consumido pelo engine.

Contrato (`DefinitionStore`):
    - dado um id de dataflow, devolver a definição, os steps na ordem
      declarada e as arestas derivadas das dependências
    - dado um step, ler a configuração serializada (YAML) e atualizar
      configuração e dependências
    - persistir variáveis do dataflow (`set_variable` fora de dry-run)

Regras de atualização (`InMemoryDefinitionStore.update_step`):
    - a nova configuração passa por `validate_config` do tipo de step
    - erros voltam como `Err("configuration", {"errors": [...]})`, sem
      alterar nada
    - em caso de sucesso o hook `on_save` do tipo é chamado
    - `delete_step` chama `on_delete` e remove as dependências para o
      step removido

Limites explícitos:
    - Não define schema de persistência (apenas memória)
    - Não executa dataflows
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

import yaml  # PyYAML

from dagflow.core.config import load_file
from dagflow.core.errors import config_invalid
from dagflow.core.result import CONFIGURATION, Err, Ok, Result

from .definition import DataflowDefinition, Dependency, Edge, StepDefinition, replace_step
from .registry import StepTypeRegistry


class DefinitionStore(Protocol):
    def get_dataflow(self, dataflow_id: str) -> DataflowDefinition: ...

    def get_steps(self, dataflow_id: str) -> List[StepDefinition]: ...

    def get_edges(self, dataflow_id: str) -> List[Edge]: ...

    def get_step_config(self, dataflow_id: str, alias: str) -> str: ...

    def update_step(
        self,
        dataflow_id: str,
        alias: str,
        *,
        config: Optional[Mapping[str, Any]] = None,
        depends_on: Optional[Sequence[Any]] = None,
    ) -> Result: ...

    def set_dataflow_var(self, dataflow_id: str, name: str, value: Any) -> None: ...


def load_dataflow(path: Union[str, Path], *, id: Optional[str] = None) -> DataflowDefinition:
    """Carrega uma definição de dataflow de um arquivo YAML ou JSON."""
    path = Path(path)
    return DataflowDefinition.from_dict(load_file(path), id=id or path.stem)


def dump_dataflow(dataflow: DataflowDefinition) -> str:
    return yaml.safe_dump(dataflow.to_dict(), sort_keys=False, allow_unicode=True)


def _with_dataflow_vars(dataflow: DataflowDefinition, vars: Mapping[str, Any]) -> DataflowDefinition:
    return DataflowDefinition(
        id=dataflow.id,
        name=dataflow.name,
        steps=dataflow.steps,
        vars=vars,
        enabled=dataflow.enabled,
        concurrency_enabled=dataflow.concurrency_enabled,
    )


class InMemoryDefinitionStore:
    def __init__(self, registry: Optional[StepTypeRegistry] = None):
        if registry is None:
            from dagflow.steps import default_registry

            registry = default_registry()
        self.registry = registry
        self._dataflows: Dict[str, DataflowDefinition] = {}

    def add(self, dataflow: Union[DataflowDefinition, Mapping[str, Any]]) -> DataflowDefinition:
        if not isinstance(dataflow, DataflowDefinition):
            dataflow = DataflowDefinition.from_dict(dataflow)
        self._dataflows[dataflow.id] = dataflow
        return dataflow

    def load(self, path: Union[str, Path]) -> DataflowDefinition:
        return self.add(load_dataflow(path))

    def ids(self) -> List[str]:
        return list(self._dataflows)

    def get_dataflow(self, dataflow_id: str) -> DataflowDefinition:
        try:
            return self._dataflows[dataflow_id]
        except KeyError:
            raise KeyError(f"Unknown dataflow '{dataflow_id}'") from None

    def get_steps(self, dataflow_id: str) -> List[StepDefinition]:
        return list(self.get_dataflow(dataflow_id).steps)

    def get_edges(self, dataflow_id: str) -> List[Edge]:
        return self.get_dataflow(dataflow_id).edges

    def get_step_config(self, dataflow_id: str, alias: str) -> str:
        step = self.get_dataflow(dataflow_id).step(alias)
        return yaml.safe_dump(dict(step.config), sort_keys=False, allow_unicode=True)

    def update_step(
        self,
        dataflow_id: str,
        alias: str,
        *,
        config: Optional[Union[Mapping[str, Any], str]] = None,
        depends_on: Optional[Sequence[Any]] = None,
    ) -> Result:
        dataflow = self.get_dataflow(dataflow_id)
        current = dataflow.step(alias)

        if isinstance(config, str):
            config = yaml.safe_load(config) or {}
            if not isinstance(config, Mapping):
                return Err(CONFIGURATION, {
                    "message": f"The configuration of '{alias}' must be a mapping",
                    "errors": [config_invalid(step=alias, field="config", message="Expected a mapping")],
                })

        updated = StepDefinition(
            alias=current.alias,
            type=current.type,
            config=dict(config) if config is not None else current.config,
            depends_on=tuple(Dependency.parse(dep) for dep in depends_on) if depends_on is not None else current.depends_on,
            id=current.id,
            name=current.name,
            description=current.description,
            vars=current.vars,
        )

        step_type = self.registry.create(updated)
        validation = step_type.validate_config(updated.config)
        if validation is not True:
            return Err(CONFIGURATION, {
                "message": f"The configuration of '{alias}' is invalid",
                "errors": [
                    config_invalid(step=alias, field=field, message=message)
                    for field, message in dict(validation).items()
                ],
            })

        step_type.on_save()
        self._dataflows[dataflow_id] = replace_step(dataflow, updated)
        return Ok(updated)

    def delete_step(self, dataflow_id: str, alias: str) -> None:
        dataflow = self.get_dataflow(dataflow_id)
        step = dataflow.step(alias)
        self.registry.create(step).on_delete()

        remaining = []
        for other in dataflow.steps:
            if other.alias == alias:
                continue
            dependencies = tuple(dep for dep in other.depends_on if dep.alias != alias)
            if dependencies != other.depends_on:
                other = StepDefinition(
                    alias=other.alias,
                    type=other.type,
                    config=other.config,
                    depends_on=dependencies,
                    id=other.id,
                    name=other.name,
                    description=other.description,
                    vars=other.vars,
                )
            remaining.append(other)

        self._dataflows[dataflow_id] = DataflowDefinition(
            id=dataflow.id,
            name=dataflow.name,
            steps=tuple(remaining),
            vars=dataflow.vars,
            enabled=dataflow.enabled,
            concurrency_enabled=dataflow.concurrency_enabled,
        )

    def set_dataflow_var(self, dataflow_id: str, name: str, value: Any) -> None:
        dataflow = self.get_dataflow(dataflow_id)
        vars = dict(dataflow.vars)
        vars[name] = value
        self._dataflows[dataflow_id] = _with_dataflow_vars(dataflow, vars)
