# tests/core/traceability/test_run_stores.py
"""
Testes dos run stores.

Os testes asseguram que:
- nomes de run são sequenciais por dataflow ("#1", "#2", ...)
- runs salvas são recuperadas por id e listadas por dataflow
- o store em JSON mantém o contador entre instâncias
"""
import pytest

try:
    from dagflow.core.traceability import DataflowRun, InMemoryRunStore, JsonRunStore
except Exception as e:
    InMemoryRunStore = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if InMemoryRunStore is None:
        pytest.fail(f"Missing dagflow run stores. Import error: {_IMPORT_ERR}")


def _finished(dataflow_id, run_id, name):
    run = DataflowRun(dataflow_id=dataflow_id, run_id=run_id, name=name)
    run.finalise({"v": 1}, {}, status="finished")
    return run


def test_in_memory_names_are_sequential_per_dataflow():
    _require_imports()
    store = InMemoryRunStore()
    assert store.next_name("a") == "#1"
    assert store.next_name("a") == "#2"
    assert store.next_name("b") == "#1"


def test_in_memory_save_get_list():
    _require_imports()
    store = InMemoryRunStore()
    store.save(_finished("a", "r1", "#1"))
    store.save(_finished("a", "r2", "#2"))

    assert store.get("a", "r1").name == "#1"
    assert store.get("a", "missing") is None
    assert sorted(run.run_id for run in store.list("a")) == ["r1", "r2"]
    assert store.list("b") == []


def test_json_store_persists_runs_and_counter(tmp_path):
    _require_imports()
    first = JsonRunStore(tmp_path)
    assert first.next_name("a") == "#1"
    first.save(_finished("a", "r1", "#1"))

    second = JsonRunStore(tmp_path)
    assert second.next_name("a") == "#2"
    loaded = second.get("a", "r1")
    assert loaded.status == "finished"
    assert loaded.finalised is True
    assert [run.run_id for run in second.list("a")] == ["r1"]
    assert (tmp_path / "a" / "r1.json").exists()
    assert second.list("none") == []


def test_engine_saves_into_a_json_store(make_engine, tmp_path):
    _require_imports()
    store = JsonRunStore(tmp_path / "runs")
    document = {"id": "tiny", "name": "Tiny", "steps": {"start": {"type": "trigger_manual"}}}

    make_engine(document, run_store=store).execute()
    make_engine(document, run_store=store).execute()

    assert sorted(run.name for run in store.list("tiny")) == ["#1", "#2"]
