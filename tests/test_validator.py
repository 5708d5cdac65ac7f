from skipper_broker.models import Plan
from skipper_broker.schema import build_parameters_schema, build_plan_schemas
from skipper_broker.validator import ParameterValidator

from conftest import LOG_PROPERTIES


def make_plan():
    schema = build_parameters_schema(LOG_PROPERTIES, "1.0.0,1.1.0", "default, k8s")
    return Plan(id="log", name="log", schemas=build_plan_schemas(schema))


def test_valid_parameters_pass():
    errors = ParameterValidator().validate(
        make_plan(),
        {"log-level": "WARN", "log-max-replicas": 2, "version": "1.1.0", "deploymentProperties": "memory=1g"},
    )

    assert errors == []


def test_unknown_parameters_are_rejected():
    errors = ParameterValidator().validate(make_plan(), {"log-colour": "red"})

    assert len(errors) == 1
    assert "log-colour" in errors[0]


def test_declared_types_constrain_non_string_values():
    errors = ParameterValidator().validate(make_plan(), {"log-max-replicas": 1.5, "log-level": 3})

    assert len(errors) == 2
    assert any(error.startswith("log-level: 3 is not of type") for error in errors)
    assert any(error.startswith("log-max-replicas: 1.5 is not of type") for error in errors)


def test_plan_without_schema_accepts_anything():
    assert ParameterValidator().validate(Plan(id="x", name="x"), {"anything": 1}) == []
