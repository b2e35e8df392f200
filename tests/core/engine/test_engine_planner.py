# tests/core/engine/test_engine_planner.py
"""
Testes do planejador de execução.

Os testes asseguram que:
- connectors viram unidades próprias e fluxos viram blocos
- cada step pertence a exatamente uma unidade
- a ordem das unidades é topológica e determinística
- descendentes de uma unidade são calculados de forma transitiva
"""
import pytest

try:
    from dagflow.core.engine import ConnectorUnit, FlowBlockUnit, plan_execution
    from dagflow.core.graph import StepGraphBuilder
    from dagflow.core.pipeline.definition import DataflowDefinition
except Exception as e:
    plan_execution = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if plan_execution is None:
        pytest.fail(f"Missing dagflow.core.engine.plan_execution. Import error: {_IMPORT_ERR}")


def _plan(registry, document):
    graph = StepGraphBuilder(registry).build(DataflowDefinition.from_dict(document)).unwrap()
    return plan_execution(graph)


DOCUMENT = {
    "steps": {
        "start": {"type": "trigger_manual"},
        "read": {"type": "reader_array", "depends_on": ["start"], "config": {"array": [1]}},
        "clean": {"type": "flow_noop", "depends_on": ["read"]},
        "sink": {"type": "collect", "depends_on": ["clean"]},
        "notify": {"type": "noop", "depends_on": ["sink"]},
        "audit": {"type": "log", "depends_on": ["start"], "config": {"level": "info", "message": "started"}},
    },
}


def test_units_and_order(registry):
    _require_imports()
    plan = _plan(registry, DOCUMENT)

    assert [unit.id for unit in plan.units] == ["start", "audit", "flow:read", "notify"]
    units = {unit.id: unit for unit in plan.units}
    block = units["flow:read"]
    assert isinstance(block, FlowBlockUnit)
    assert block.aliases == ["read", "clean", "sink"]
    assert block.terminals == ["sink"]
    assert isinstance(units["notify"], ConnectorUnit)


def test_every_step_belongs_to_one_unit(registry):
    _require_imports()
    plan = _plan(registry, DOCUMENT)

    aliases = [alias for unit in plan.units for alias in unit.aliases]
    assert sorted(aliases) == sorted(DOCUMENT["steps"])
    assert plan.unit_of["clean"] == "flow:read"
    assert plan.unit_of["audit"] == "audit"


def test_descendants_are_transitive(registry):
    _require_imports()
    plan = _plan(registry, DOCUMENT)

    assert plan.descendants("start") == {"audit", "flow:read", "notify"}
    assert plan.descendants("flow:read") == {"notify"}
    assert plan.descendants("notify") == set()


def test_same_definition_same_plan(registry):
    _require_imports()
    first = _plan(registry, DOCUMENT)
    second = _plan(registry, DOCUMENT)
    assert [unit.id for unit in first.units] == [unit.id for unit in second.units]


def test_join_builds_one_block_with_two_sources(registry):
    _require_imports()
    plan = _plan(registry, {
        "steps": {
            "left": {"type": "reader_array", "config": {"array": [1]}},
            "right": {"type": "reader_array", "config": {"array": [2]}},
            "both": {"type": "flow_logic_join", "depends_on": ["left", "right"]},
            "sink": {"type": "collect", "depends_on": ["both"]},
        },
    })

    assert len(plan.units) == 1
    assert plan.units[0].aliases == ["left", "right", "both", "sink"]
    assert plan.units[0].terminals == ["sink"]
