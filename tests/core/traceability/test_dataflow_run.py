# tests/core/traceability/test_dataflow_run.py
"""
Testes do registro de run (DataflowRun).

Os testes asseguram que:
- snapshots são cópias profundas da árvore
- depois de `finalise` o registro é imutável
- a serialização é estável (to_dict → from_dict)
"""
import json

import pytest

try:
    from dagflow.core.exceptions import RunFinalisedError
    from dagflow.core.traceability import DataflowRun
except Exception as e:
    DataflowRun = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if DataflowRun is None:
        pytest.fail(f"Missing dagflow.core.traceability.DataflowRun. Import error: {_IMPORT_ERR}")


def test_snapshots_are_deep_copies():
    _require_imports()
    state = {"dataflow": {"vars": {"limit": 1}}}
    run = DataflowRun(dataflow_id="users", run_id="r1")
    run.initialise(state)

    state["dataflow"]["vars"]["limit"] = 99
    assert run.start_state["dataflow"]["vars"]["limit"] == 1
    assert run.status == "initialised"
    assert run.started_at is not None


def test_finalised_run_is_immutable():
    _require_imports()
    run = DataflowRun(dataflow_id="users", run_id="r1")
    run.initialise({})
    run.finalise({"x": 1}, {"read": "finalised"}, status="finished", log="line")

    assert run.finalised is True
    assert run.end_state == {"x": 1}
    assert run.duration_ms is not None and run.duration_ms >= 0
    with pytest.raises(RunFinalisedError):
        run.snapshot({}, {})
    with pytest.raises(RunFinalisedError):
        run.add_error({"type": "X"})
    with pytest.raises(RunFinalisedError):
        run.finalise({}, {}, status="aborted")


def test_finalise_without_initialise_sets_both_timestamps():
    _require_imports()
    run = DataflowRun(dataflow_id="users", run_id="r1")
    run.finalise({}, {}, status="aborted")
    assert run.started_at == run.finished_at
    assert run.duration_ms == 0


def test_dict_round_trip_is_json_safe():
    _require_imports()
    run = DataflowRun(dataflow_id="users", run_id="r1", name="#3", identity="alice", definition_hash="abc")
    run.initialise({"a": 1})
    run.add_error({"type": "ENGINE_ABORTED", "message": "stop"})
    run.finalise({"a": 2}, {"read": "finalised"}, status="aborted", log="log")

    data = run.to_dict()
    json.dumps(data)
    again = DataflowRun.from_dict(data)

    assert again.to_dict() == data
    assert again.name == "#3"
    assert again.errors == [{"type": "ENGINE_ABORTED", "message": "stop"}]
    assert again.started_at.tzinfo is not None
