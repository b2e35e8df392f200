# tests/steps/test_flow_steps.py
"""
Testes dos steps de fluxo embutidos.

Os testes asseguram que:
- `flow_transformer_regex` grava o trecho encontrado (ou None)
- `flow_transformer_alter` altera caminhos com ponto sem tocar na entrada
- switch entrega cada registro ao primeiro caso verdadeiro
- case entrega cada registro a todos os casos verdadeiros
- um caso ou filtro que cita um campo ausente conta como falso
- join reúne os ramos em um único fluxo
- `flow_log` registra o registro corrente junto do evento
"""
import pytest

try:
    from dagflow.core.errors import CONFIG_INVALID, GRAPH_CASE_POSITION
    from dagflow.core.exceptions import GraphValidationError
    from dagflow.steps.flows.regex import compile_pattern
except Exception as e:
    compile_pattern = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if compile_pattern is None:
        pytest.fail(f"Missing dagflow.steps.flows. Import error: {_IMPORT_ERR}")


def _pipeline(array, *middle):
    steps = {"read": {"type": "reader_array", "config": {"array": array}}}
    previous = "read"
    for alias, step in middle:
        steps[alias] = dict(step, depends_on=[previous])
        previous = alias
    steps["sink"] = {"type": "collect", "depends_on": [previous]}
    return {"name": "Flow", "steps": steps}


def test_regex_keeps_unmatched_records(make_engine, sink):
    _require_imports()
    document = _pipeline(
        [{"code": "12-X"}, {"code": "none"}],
        ("num", {"type": "flow_transformer_regex", "config": {"pattern": r"/(\d+)-x/i", "field": "${{ record.code }}"}}),
    )

    assert make_engine(document).execute().ok is True
    assert sink == [{"code": "12-X", "num": "12-X"}, {"code": "none", "num": None}]


def test_regex_pattern_forms():
    _require_imports()
    assert compile_pattern("/abc/i").search("xABCx") is not None
    assert compile_pattern("abc").search("xABCx") is None
    assert compile_pattern("/a.b/s").search("a\nb") is not None


def test_regex_invalid_pattern_is_a_config_error(make_engine):
    _require_imports()
    with pytest.raises(GraphValidationError) as excinfo:
        make_engine(_pipeline([1], ("num", {"type": "flow_transformer_regex", "config": {"pattern": "(", "field": "x"}})))

    error = excinfo.value.errors[0]
    assert (error.type, error.step, error.field) == (CONFIG_INVALID, "num", "config_pattern")


def test_alter_dotted_paths(make_engine, sink):
    _require_imports()
    original = {"first": "ada", "address": {"city": "london"}}
    document = _pipeline(
        [original],
        ("alter", {
            "type": "flow_transformer_alter",
            "config": {"expressions": {
                "name": "${{ upper(record.first) }}",
                "address.city": "${{ upper(record.address.city) }}",
                "meta.source": "array",
            }},
        }),
    )

    assert make_engine(document).execute().ok is True
    assert sink == [{
        "first": "ada",
        "name": "ADA",
        "address": {"city": "LONDON"},
        "meta": {"source": "array"},
    }]
    assert original["address"]["city"] == "london"


def test_filter_treats_undefined_as_false(make_engine, sink):
    _require_imports()
    document = _pipeline(
        [{"age": 20}, {"name": "no age"}, {"age": 10}],
        ("adults", {"type": "flow_transformer_filter", "config": {"filter": "record.age >= 18"}}),
    )

    assert make_engine(document).execute().ok is True
    assert sink == [{"age": 20}]


ROUTED = {
    "name": "Routes",
    "steps": {
        "read": {"type": "reader_array", "config": {"array": [1, 5, 12]}},
        "route": {
            "type": "flow_logic_switch",
            "depends_on": ["read"],
            "config": {"cases": {"big": "${{ record > 10 }}", "mid": "${{ record > 3 }}"}},
        },
        "big": {"type": "flow_transformer_alter", "depends_on": ["route:1"], "config": {"expressions": {"size": "big"}}},
        "mid": {"type": "flow_transformer_alter", "depends_on": ["route:2"], "config": {"expressions": {"size": "mid"}}},
        "both": {"type": "flow_logic_join", "depends_on": ["big", "mid"]},
        "sink": {"type": "collect", "depends_on": ["both"]},
    },
}


def test_switch_and_join(make_engine, sink):
    _require_imports()
    engine = make_engine(ROUTED)

    assert engine.execute().ok is True
    assert sorted(sink, key=lambda record: record["value"]) == [
        {"value": 5, "size": "mid"},
        {"value": 12, "size": "big"},
    ]
    assert "Skipping record: no matching case" in engine.context.messages(step_id="route", level="DEBUG")


def test_case_sends_records_to_every_true_branch(make_engine, sink):
    _require_imports()
    document = {
        "name": "Routes",
        "steps": dict(ROUTED["steps"], route=dict(ROUTED["steps"]["route"], type="flow_logic_case")),
    }

    assert make_engine(document).execute().ok is True
    assert sorted((record["value"], record["size"]) for record in sink) == [(5, "mid"), (12, "big"), (12, "mid")]


def test_switch_case_on_missing_field_counts_as_false(make_engine, sink):
    _require_imports()
    document = {
        "name": "Flags",
        "steps": {
            "read": {"type": "reader_array", "config": {"array": [{"flag": True}, {"other": 1}]}},
            "route": {
                "type": "flow_logic_switch",
                "depends_on": ["read"],
                "config": {"cases": {"on": "${{ record.flag }}", "any": "${{ true }}"}},
            },
            "on": {"type": "flow_transformer_alter", "depends_on": ["route:1"], "config": {"expressions": {"branch": "on"}}},
            "any": {"type": "flow_transformer_alter", "depends_on": ["route:2"], "config": {"expressions": {"branch": "any"}}},
            "both": {"type": "flow_logic_join", "depends_on": ["on", "any"]},
            "sink": {"type": "collect", "depends_on": ["both"]},
        },
    }
    result = make_engine(document).execute()

    assert result.ok is True
    assert sorted(record["branch"] for record in sink) == ["any", "on"]
    assert {"other": 1, "branch": "any"} in sink


def test_filter_with_delimited_expression_on_missing_field(make_engine, sink):
    _require_imports()
    document = _pipeline(
        [{"vip": True, "id": 1}, {"id": 2}],
        ("vips", {"type": "flow_transformer_filter", "config": {"filter": "${{ record.vip }}"}}),
    )

    assert make_engine(document).execute().ok is True
    assert sink == [{"vip": True, "id": 1}]


def test_case_position_beyond_cases(make_engine):
    _require_imports()
    document = {"name": "Routes", "steps": dict(ROUTED["steps"], mid=dict(ROUTED["steps"]["mid"], depends_on=["route:3"]))}

    with pytest.raises(GraphValidationError) as excinfo:
        make_engine(document)
    assert GRAPH_CASE_POSITION in [error.type for error in excinfo.value.errors]


def test_flow_log_carries_the_record(make_engine, sink):
    _require_imports()
    engine = make_engine(_pipeline(
        [{"id": 1}],
        ("trace", {"type": "flow_log", "config": {"level": "info", "message": "row ${{ record.id }}"}}),
    ))

    assert engine.execute().ok is True
    events = [event for event in engine.context.events if event["step_id"] == "trace"]
    assert [(event["message"], event["record"]) for event in events] == [("row 1", {"id": 1})]
    assert sink == [{"id": 1}]
