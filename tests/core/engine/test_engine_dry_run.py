# tests/core/engine/test_engine_dry_run.py
"""
Testes de dry-run.

Os testes asseguram que:
- steps com efeito colateral fora do scratch não alteram nada e expõem
  o que teriam feito
- efeitos dentro do scratch da run continuam acontecendo
- a run de dry-run não é salva no run store
"""
import pytest

try:
    from dagflow.core.pipeline.types import Status
except Exception as e:
    Status = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if Status is None:
        pytest.fail(f"Missing dagflow imports. Import error: {_IMPORT_ERR}")


@pytest.fixture
def permitted_config(engine_config, tmp_path):
    return dict(engine_config, engine=dict(engine_config["engine"], permitted_dirs=[str(tmp_path)]))


def _copy_document(source, destination):
    return {
        "id": "copy",
        "name": "Copy",
        "steps": {"copy": {"type": "copy_file", "config": {"from": str(source), "to": str(destination)}}},
    }


def test_dry_run_does_not_copy(make_engine, permitted_config, tmp_path):
    _require_imports()
    source = tmp_path / "in.txt"
    source.write_text("data", encoding="utf-8")
    destination = tmp_path / "out" / "copy.txt"

    engine = make_engine(_copy_document(source, destination), config=permitted_config, dry_run=True)
    result = engine.execute()

    command = f"cp {source} {destination}"
    assert result.ok is True
    assert not (tmp_path / "out").exists()
    assert engine.tree.get("steps.copy.command") == command
    assert f"Dry run, not executing: {command}" in engine.context.messages(step_id="copy")
    assert result.run.dry_run is True
    assert engine.run_store.list("copy") == []


def test_real_run_copies(make_engine, permitted_config, tmp_path):
    _require_imports()
    source = tmp_path / "in.txt"
    source.write_text("data", encoding="utf-8")
    destination = tmp_path / "out" / "copy.txt"

    engine = make_engine(_copy_document(source, destination), config=permitted_config)
    result = engine.execute()

    assert result.ok is True
    assert destination.read_text(encoding="utf-8") == "data"
    assert f"Creating a directory at {tmp_path / 'out'}" in engine.context.messages(step_id="copy")
    assert len(engine.run_store.list("copy")) == 1


def test_dry_run_still_writes_inside_the_scratch(make_engine):
    _require_imports()
    engine = make_engine({
        "name": "Scratch",
        "steps": {
            "read": {"type": "reader_array", "config": {"array": [{"a": 1}]}},
            "write": {"type": "writer_stream", "depends_on": ["read"], "config": {"streamname": "out.json", "format": "json"}},
        },
    }, dry_run=True)

    assert engine.execute().ok is True
    assert (engine.context.scratch_dir / "out.json").exists()
