# src/dagflow/__init__.py
"""
dagflow — engine de dataflows baseado em DAG.

Um dataflow é um conjunto de steps nomeados ligados por dependências.
Cada step tem um papel (trigger, connector, reader, flow, writer): os
connectors trocam um sinal de controle executado uma vez; readers, flows
e writers trocam registros um a um, puxados por demanda.

Uso típico:

    from dagflow import Engine, load_dataflow

    result = Engine(load_dataflow("orders.yaml")).execute()

Limites explícitos:
    - Não agenda execuções
    - Não renderiza UI
    - Não define schema de persistência
"""

from .core.engine import Engine, RunResult
from .core.pipeline.definition import DataflowDefinition, StepDefinition
from .core.pipeline.store import InMemoryDefinitionStore, load_dataflow
from .steps import default_registry

__all__ = [
    "DataflowDefinition",
    "Engine",
    "InMemoryDefinitionStore",
    "RunResult",
    "StepDefinition",
    "default_registry",
    "load_dataflow",
]
