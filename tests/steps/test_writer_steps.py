# tests/steps/test_writer_steps.py
"""
Testes do writer_stream.

Os testes asseguram que:
- registros são gravados em JSON (compacto ou indentado) e em CSV
- o writer repassa o registro e publica `records`
- nenhum arquivo é criado quando o fluxo não produz registros
- em dry-run com destino fora do scratch nada é gravado
- formatos desconhecidos são erros de configuração
"""
import json

import pytest

try:
    from dagflow.core.errors import CONFIG_INVALID
    from dagflow.core.exceptions import GraphValidationError
    from dagflow.formats import CsvEncoder, JsonEncoder
except Exception as e:
    JsonEncoder = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if JsonEncoder is None:
        pytest.fail(f"Missing dagflow.formats. Import error: {_IMPORT_ERR}")


ROWS = [{"id": 1, "name": "Ana"}, {"id": 2, "name": "Bruno, Jr"}]


def _writer_document(array, config):
    return {
        "name": "Write",
        "steps": {
            "read": {"type": "reader_array", "config": {"array": array}},
            "write": {"type": "writer_stream", "depends_on": ["read"], "config": config},
            "sink": {"type": "collect", "depends_on": ["write"]},
        },
    }


def test_json_output(make_engine, sink):
    _require_imports()
    engine = make_engine(_writer_document(ROWS, {"streamname": "out/users.json", "format": "json"}))

    assert engine.execute().ok is True
    text = (engine.context.scratch_dir / "out" / "users.json").read_text(encoding="utf-8")
    assert text == '[\n{"id": 1, "name": "Ana"},\n{"id": 2, "name": "Bruno, Jr"}\n]\n'
    assert sink == ROWS
    assert engine.tree.get("steps.write.records") == 2


def test_pretty_json_output(make_engine):
    _require_imports()
    engine = make_engine(_writer_document(ROWS, {"streamname": "users.json", "format": "JSON", "prettyprint": True}))

    assert engine.execute().ok is True
    text = (engine.context.scratch_dir / "users.json").read_text(encoding="utf-8")
    assert json.loads(text) == ROWS
    assert '\n        "id": 1' in text


def test_csv_output(make_engine):
    _require_imports()
    engine = make_engine(_writer_document(ROWS, {"streamname": "users.csv", "format": "csv"}))

    assert engine.execute().ok is True
    text = (engine.context.scratch_dir / "users.csv").read_text(encoding="utf-8")
    assert text == 'id,name\n1,Ana\n2,"Bruno, Jr"\n'


def test_no_records_no_file(make_engine):
    _require_imports()
    engine = make_engine(_writer_document([], {"streamname": "users.json", "format": "json"}))

    assert engine.execute().ok is True
    assert not (engine.context.scratch_dir / "users.json").exists()


def test_dry_run_outside_the_scratch(make_engine, engine_config, tmp_path):
    _require_imports()
    config = dict(engine_config, engine=dict(engine_config["engine"], permitted_dirs=[str(tmp_path)]))
    target = tmp_path / "exports" / "users.json"
    engine = make_engine(_writer_document(ROWS, {"streamname": str(target), "format": "json"}), config=config, dry_run=True)

    assert engine.execute().ok is True
    assert not target.exists()
    assert "Dry run, 2 record(s) were not written" in engine.context.messages(step_id="write")
    assert engine.tree.get("steps.write.records") == 2


def test_unknown_format_is_a_config_error(make_engine):
    _require_imports()
    with pytest.raises(GraphValidationError) as excinfo:
        make_engine(_writer_document(ROWS, {"streamname": "users.xml", "format": "xml"}))

    error = excinfo.value.errors[0]
    assert (error.type, error.step, error.field) == (CONFIG_INVALID, "write", "config_format")


def test_encoders_frame_the_stream():
    _require_imports()
    encoder = JsonEncoder()
    text = encoder.start_output() + encoder.encode_record({"a": 1}, 1) + encoder.encode_record(2, 2) + encoder.close_output()
    assert json.loads(text) == [{"a": 1}, 2]

    csv_encoder = CsvEncoder(delimiter=";")
    assert csv_encoder.encode_record({"a": 1, "b": "x;y"}, 1) == 'a;b\n1;"x;y"\n'
    assert csv_encoder.encode_record(5, 2) == "5\n"
