# tests/core/pipeline/test_pipeline_run_context.py
"""
Testes do log estruturado do RunContext.

Os testes asseguram que:
- todo evento carrega run_id, step_id, nível e timestamp
- eventos abaixo do nível mínimo são descartados
- warnings são associados explicitamente a um step
- `render_log()` produz uma linha legível por evento
"""
from datetime import datetime, timezone

import pytest

try:
    from dagflow.core.pipeline.context import RunContext
except Exception as e:
    RunContext = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if RunContext is None:
        pytest.fail(f"Missing dagflow.core.pipeline.context.RunContext. Import error: {_IMPORT_ERR}")


def test_events_are_structured(run_context):
    _require_imports()
    run_context.log(step_id="read", level="info", message="Reading", rows=3)

    event = run_context.events[0]
    assert event["run_id"] == "run-test-001"
    assert event["step_id"] == "read"
    assert event["level"] == "INFO"
    assert event["rows"] == 3
    assert datetime.fromisoformat(event["timestamp"]).tzinfo is not None


def test_min_level_filters_events():
    _require_imports()
    ctx = RunContext(run_id="r", created_at=datetime.now(timezone.utc), min_level="WARNING")
    ctx.log(step_id="s", level="DEBUG", message="hidden")
    ctx.log(step_id="s", level="INFO", message="hidden too")
    ctx.log(step_id="s", level="ERROR", message="shown")

    assert ctx.messages() == ["shown"]


def test_messages_filter_by_step_and_level(run_context):
    _require_imports()
    run_context.log(step_id="a", level="INFO", message="one")
    run_context.log(step_id="b", level="INFO", message="two")
    run_context.log(step_id="a", level="ERROR", message="three")

    assert run_context.messages(step_id="a") == ["one", "three"]
    assert run_context.messages(level="info") == ["one", "two"]


def test_warnings_are_tracked_per_step(run_context):
    _require_imports()
    run_context.add_warning(step_id="read", message="Empty file")

    assert run_context.warnings == {"read": ["Empty file"]}
    assert run_context.messages(step_id="read", level="WARNING") == ["Empty file"]


def test_render_log(run_context):
    _require_imports()
    run_context.log(step_id="engine", level="INFO", message="Started")
    run_context.log(step_id="read", level="WARNING", message="Slow")

    lines = run_context.render_log().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("INFO    [engine] Started")
    assert lines[1].endswith("WARNING [read] Slow")
