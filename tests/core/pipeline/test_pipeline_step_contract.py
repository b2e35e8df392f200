# tests/core/pipeline/test_pipeline_step_contract.py
"""
Testes do contrato de step.

Os testes asseguram que:
- `BaseStep` fornece padrões seguros para todos os hooks e consultas
- a conformidade com `StepType` é estrutural (duck typing)
- cada família declara as faixas de ligação esperadas
- consultas que dependem da run falham fora dela, de forma explícita
- `DestinationOutsideScratch` só conta destinos fora do scratch
"""
import pytest

try:
    from dagflow.core.pipeline.definition import StepDefinition
    from dagflow.core.pipeline.step import (
        BaseStep,
        ConnectorStep,
        FlowStep,
        ReaderStep,
        StepType,
        TriggerStep,
        WriterStep,
    )
    from dagflow.core.pipeline.types import LinkRange, StepRole
except Exception as e:
    BaseStep = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if BaseStep is None:
        pytest.fail(f"Missing dagflow.core.pipeline.step. Import error: {_IMPORT_ERR}")


class Required(ConnectorStep):
    key = "required"
    required_fields = ("path",)
    secrets = ("password",)
    outputs = {"rows": "Rows read"}


def test_defaults_outside_a_run():
    _require_imports()
    step = Required(StepDefinition(alias="r", type="required", config={"path": "a.csv"}))

    assert step.alias == "r"
    assert step.config["path"] == "a.csv"
    assert step.is_dry_run() is False
    assert step.has_side_effect() is False
    assert step.scratch_dir is None
    assert step.permitted_dirs == ()
    assert step.get_iterator() is None
    assert step.case_count() == 0
    assert step.define_outputs() == {"rows": "Rows read"}
    assert step.secret_fields() == ("password",)
    assert step.execute() is True
    assert step.validate_for_run() is True


def test_required_fields_are_validated():
    _require_imports()
    step = Required(StepDefinition(alias="r", type="required"))
    assert step.validate_config({}) == {"config_path": "The field 'path' is required"}
    assert step.validate_config({"path": ""}) == {"config_path": "The field 'path' is required"}
    assert step.validate_config({"path": "x"}) is True


def test_flow_steps_pass_records_through():
    _require_imports()
    step = FlowStep(StepDefinition(alias="f", type="flow"))
    assert step.execute({"a": 1}) == {"a": 1}


def test_structural_conformance():
    _require_imports()

    class DuckStep:
        role = StepRole.CONNECTOR
        input_flows = output_flows = LinkRange(0, 0)
        input_connectors = output_connectors = LinkRange(0, 1)

        def execute(self, input=None):
            return True

        def has_side_effect(self):
            return False

        def validate_config(self, config):
            return True

        def validate_for_run(self):
            return True

        def define_outputs(self):
            return {}

    assert isinstance(DuckStep(), StepType)
    assert isinstance(Required(StepDefinition(alias="r", type="required")), StepType)
    assert not isinstance(object(), StepType)


@pytest.mark.parametrize(
    "family, role, input_flows, output_flows, input_connectors, output_connectors",
    [
        ("TriggerStep", "trigger", (0, 0), (0, 0), (0, 0), (0, 20)),
        ("ConnectorStep", "connector", (0, 0), (0, 0), (0, 1), (0, 20)),
        ("ReaderStep", "reader", (0, 0), (1, 1), (0, 1), (0, 0)),
        ("FlowStep", "flow", (1, 1), (0, 1), (0, 0), (0, 0)),
        ("WriterStep", "writer", (1, 1), (0, 1), (0, 0), (0, 1)),
    ],
)
def test_link_ranges_per_family(family, role, input_flows, output_flows, input_connectors, output_connectors):
    _require_imports()
    families = {
        "TriggerStep": TriggerStep,
        "ConnectorStep": ConnectorStep,
        "ReaderStep": ReaderStep,
        "FlowStep": FlowStep,
        "WriterStep": WriterStep,
    }
    step_class = families[family]

    assert step_class.role.value == role
    assert step_class.input_flows == LinkRange(*input_flows)
    assert step_class.output_flows == LinkRange(*output_flows)
    assert step_class.input_connectors == LinkRange(*input_connectors)
    assert step_class.output_connectors == LinkRange(*output_connectors)


def test_run_bound_queries_fail_outside_a_run():
    _require_imports()
    step = Required(StepDefinition(alias="r", type="required"))
    with pytest.raises(RuntimeError, match="Step 'r' is not bound to a run"):
        step.log("hello")
    with pytest.raises(RuntimeError):
        step.set_output("rows", 1)
    with pytest.raises(RuntimeError):
        step.variables


def test_destination_outside_scratch(tmp_path):
    _require_imports()
    from types import SimpleNamespace

    from dagflow.core.pipeline.capabilities import DestinationOutsideScratch

    scratch = tmp_path / "scratch"
    scratch.mkdir()
    policy = DestinationOutsideScratch("to")

    def step(destination, scratch_dir=scratch):
        return SimpleNamespace(config={"to": destination}, scratch_dir=scratch_dir)

    assert policy.applies(step(str(scratch / "out.csv"))) is False
    assert policy.applies(step("relative/out.csv")) is False
    assert policy.applies(step("")) is False
    assert policy.applies(step(str(tmp_path / "elsewhere.csv"))) is True
    assert policy.applies(step(str(scratch / ".." / "escaped.csv"))) is True
    assert policy.applies(step("sftp://host/out.csv")) is True
    assert policy.applies(step(str(scratch / "out.csv"), scratch_dir=None)) is True
