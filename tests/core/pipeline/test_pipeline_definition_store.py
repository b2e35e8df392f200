# tests/core/pipeline/test_pipeline_definition_store.py
"""
Testes do definition store em memória e do carregamento de YAML.

Os testes asseguram que:
- definições são carregadas de arquivos YAML e voltam a YAML
- arestas são derivadas das dependências (com posição de caso)
- `update_step` valida a configuração antes de gravar e chama `on_save`
- `delete_step` chama `on_delete` e remove as dependências órfãs
- `set_variable` persiste `dataflow.vars.*` no store, exceto em dry-run
"""
import pytest
import yaml

try:
    from dagflow.core.errors import CONFIG_INVALID
    from dagflow.core.pipeline.definition import Edge
    from dagflow.core.pipeline.store import InMemoryDefinitionStore, dump_dataflow, load_dataflow
except Exception as e:
    InMemoryDefinitionStore = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if InMemoryDefinitionStore is None:
        pytest.fail(f"Missing dagflow.core.pipeline.store. Import error: {_IMPORT_ERR}")


ROUTING = {
    "id": "routing",
    "name": "Routing",
    "vars": {"cursor": 0},
    "steps": {
        "read": {"type": "reader_array", "config": {"array": [1, 2, 3]}},
        "route": {"type": "flow_logic_switch", "depends_on": ["read"], "config": {"cases": {"big": "${{ record > 1 }}", "small": "${{ record <= 1 }}"}}},
        "big": {"type": "flow_noop", "depends_on": ["route:1"]},
        "small": {"type": "flow_noop", "depends_on": ["route:2"]},
    },
}


@pytest.fixture
def store(registry):
    store = InMemoryDefinitionStore(registry)
    store.add(ROUTING)
    return store


def test_edges_are_derived_from_dependencies(store):
    _require_imports()
    assert store.get_edges("routing") == [
        Edge(source="read", target="route", position=None),
        Edge(source="route", target="big", position=1),
        Edge(source="route", target="small", position=2),
    ]
    assert [step.alias for step in store.get_steps("routing")] == ["read", "route", "big", "small"]
    assert [step.id for step in store.get_steps("routing")] == [1, 2, 3, 4]


def test_unknown_dataflow(store):
    _require_imports()
    with pytest.raises(KeyError, match="Unknown dataflow 'nope'"):
        store.get_dataflow("nope")


def test_step_config_is_yaml(store):
    _require_imports()
    assert yaml.safe_load(store.get_step_config("routing", "read")) == {"array": [1, 2, 3]}


def test_load_and_dump_yaml(tmp_path):
    _require_imports()
    path = tmp_path / "routing.yaml"
    path.write_text(yaml.safe_dump(ROUTING, sort_keys=False), encoding="utf-8")

    dataflow = load_dataflow(path)
    assert dataflow.id == "routing"
    assert dataflow.vars["cursor"] == 0
    assert [str(dep) for dep in dataflow.step("big").depends_on] == ["route:1"]

    again = yaml.safe_load(dump_dataflow(dataflow))
    assert again["steps"]["small"]["depends_on"] == ["route:2"]
    assert again["steps"]["read"]["config"] == {"array": [1, 2, 3]}


def test_update_step_accepts_yaml_config(registry):
    _require_imports()
    from tests.fixtures.steps.hooks import HookRecorderStep

    calls = {}
    registry.register("hook_recorder", lambda definition: HookRecorderStep(definition, calls))
    store = InMemoryDefinitionStore(registry)
    store.add({"id": "hooks", "steps": {"rec": {"type": "hook_recorder"}, "read": {"type": "reader_array", "config": {"array": [1]}}}})

    result = store.update_step("hooks", "rec", config="retries: 3\n")
    assert result.is_ok()
    assert store.get_dataflow("hooks").step("rec").config == {"retries": 3}
    assert calls == {"rec.on_save": 1}

    store.delete_step("hooks", "rec")
    assert calls["rec.on_delete"] == 1
    assert [step.alias for step in store.get_steps("hooks")] == ["read"]


def test_update_step_rejects_invalid_config(store):
    _require_imports()
    result = store.update_step("routing", "read", config={"array": None})

    assert not result.is_ok()
    errors = result.context["errors"]
    assert [(error.type, error.step, error.field) for error in errors] == [(CONFIG_INVALID, "read", "config_array")]
    assert store.get_dataflow("routing").step("read").config == {"array": [1, 2, 3]}

    not_a_mapping = store.update_step("routing", "read", config="- 1\n- 2\n")
    assert not not_a_mapping.is_ok()
    assert not_a_mapping.message == "The configuration of 'read' must be a mapping"


def test_update_step_dependencies(store):
    _require_imports()
    assert store.update_step("routing", "small", depends_on=["route:1"]).is_ok()
    assert Edge(source="route", target="small", position=1) in store.get_edges("routing")


def test_delete_step_removes_orphan_dependencies(store):
    _require_imports()
    store.delete_step("routing", "route")

    assert [step.alias for step in store.get_steps("routing")] == ["read", "big", "small"]
    assert store.get_dataflow("routing").step("big").depends_on == ()


def test_set_variable_persists_dataflow_vars(registry):
    _require_imports()
    from dagflow.core.engine import Engine, InMemoryLockFactory

    store = InMemoryDefinitionStore(registry)
    store.add({
        "id": "cursor",
        "vars": {"cursor": 0},
        "steps": {"save": {"type": "set_variable", "config": {"field": "dataflow.vars.cursor", "value": 42}}},
    })

    dry = Engine.from_store(store, "cursor", registry=registry, lock_factory=InMemoryLockFactory(), dry_run=True)
    assert dry.execute().ok is True
    assert dry.tree.get("dataflow.vars.cursor") == 42
    assert store.get_dataflow("cursor").vars["cursor"] == 0

    real = Engine.from_store(store, "cursor", registry=registry, lock_factory=InMemoryLockFactory())
    assert real.execute().ok is True
    assert store.get_dataflow("cursor").vars["cursor"] == 42
    assert "Set 'dataflow.vars.cursor' as '42'" in real.context.messages(step_id="save")
