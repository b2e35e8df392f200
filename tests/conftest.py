# tests/conftest.py
"""
Fixtures compartilhados para testes do dagflow.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração de engine determinística (scratch isolado em tmp_path)
- registry padrão estendido com steps de teste
- uma factory de Engine com lock em memória isolado por teste
- contexto de execução controlado (RunContext)

Decisões arquiteturais:
    - Imports do core são realizados de forma lazy para melhorar a
      clareza de erros durante falhas de import
    - Cada engine recebe sua própria `InMemoryLockFactory`, evitando
      que testes compartilhem locks do processo
    - Steps de teste vivem em `tests/fixtures/steps/`

Invariantes:
    - Nenhuma fixture executa dataflow por conta própria
    - I/O apenas dentro de `tmp_path`
"""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def engine_config(tmp_path) -> dict:
    """
    Configuração mínima de engine para testes.

    - scratch dentro de `tmp_path`
    - log em DEBUG (mensagens de descarte do switch ficam visíveis)
    - fail-fast habilitado (padrão)
    """
    return {
        "engine": {
            "fail_fast": True,
            "log_level": "DEBUG",
            "scratch_root": str(tmp_path / "scratch"),
        },
    }


@pytest.fixture
def sink() -> list:
    return []


@pytest.fixture
def registry(sink):
    """Registry padrão + `collect` (acumula registros em `sink`)."""
    from dagflow.steps import default_registry
    from tests.fixtures.steps.collect import CollectStep

    reg = default_registry()
    reg.register("collect", lambda definition: CollectStep(definition, sink=sink))
    return reg


@pytest.fixture
def make_engine(registry, engine_config):
    """
    Factory de Engine para os testes.

    Uso:
        engine = make_engine({"name": "x", "steps": {...}}, dry_run=True)
    """
    from dagflow.core.engine import Engine, InMemoryLockFactory

    def _make(document, **kwargs):
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("config", engine_config)
        kwargs.setdefault("lock_factory", InMemoryLockFactory())
        return Engine(document, **kwargs)

    return _make


@pytest.fixture
def run_context():
    """RunContext determinístico, sem scratch e fora de dry-run."""
    from dagflow.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config={"engine": {"fail_fast": True}},
        identity="pytest",
        meta={"source": "pytest"},
    )
