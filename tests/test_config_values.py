import yaml

from skipper_broker.config_values import (
    build_tree,
    coerce_scalar,
    convert_to_yaml,
    key_path,
    parse_properties,
    split_property,
)
from skipper_broker.instances import install_properties_string


def test_application_and_deployment_properties_are_nested():
    raw = convert_to_yaml("spec.applicationProperties.max.replicas: 3,spec.deploymentProperties=memory=512")

    assert raw == (
        "spec:\n"
        "  applicationProperties:\n"
        "    max.replicas: 3\n"
        "  deploymentProperties:\n"
        "    memory: 512\n"
    )


def test_dots_in_values_are_not_path_separators():
    document = yaml.safe_load(convert_to_yaml("spec.applicationProperties.log.expression: payload.toUpperCase()"))

    assert document == {"spec": {"applicationProperties": {"log.expression": "payload.toUpperCase()"}}}


def test_prefix_before_spec_is_a_path():
    document = yaml.safe_load(convert_to_yaml("log.spec.applicationProperties.server.port=8080"))

    assert document == {"log": {"spec": {"applicationProperties": {"server.port": 8080}}}}


def test_plain_dotted_keys_expand():
    document = yaml.safe_load(convert_to_yaml("server.port=8080,server.ssl.enabled=true"))

    assert document == {"server": {"port": 8080, "ssl": {"enabled": True}}}


def test_unknown_spec_keys_stay_literal():
    assert key_path("spec.resource.name") == ["spec.resource.name"]
    assert key_path("spec.deploymentProperties") == ["spec", "deploymentProperties"]
    assert key_path("spec.deploymentProperties.memory") == ["spec", "deploymentProperties", "memory"]


def test_blank_input_converts_to_nothing():
    assert convert_to_yaml("") == ""
    assert convert_to_yaml("  ") == ""
    assert convert_to_yaml(" , ") == ""


def test_split_property_uses_first_separator():
    assert split_property("memory=512") == ("memory", "512")
    assert split_property("a.b: c=d") == ("a.b", "c=d")
    assert split_property("flag") == ("flag", "")


def test_versions_and_words_stay_strings():
    entries = parse_properties("spec.applicationProperties.version: 1.0.0,spec.applicationProperties.name: time")

    assert [value for _, value in entries] == ["1.0.0", "time"]


def test_later_entries_win():
    tree = build_tree([(["a", "b"], 1), (["a", "b"], 2), (["a"], "scalar"), (["a", "c"], 3)])

    assert tree == {"a": {"c": 3}}


def test_dashed_property_names_are_kept_by_the_converter():
    document = yaml.safe_load(
        convert_to_yaml("spec.applicationProperties.max-replicas: 3,spec.deploymentProperties=memory=512")
    )

    assert document == {
        "spec": {
            "applicationProperties": {"max-replicas": 3},
            "deploymentProperties": {"memory": 512},
        }
    }


def test_dashed_parameters_become_dotted_property_names():
    properties = install_properties_string({"max-replicas": 3, "deploymentProperties": "memory=512"})

    assert yaml.safe_load(convert_to_yaml(properties)) == {
        "spec": {
            "applicationProperties": {"max.replicas": 3},
            "deploymentProperties": {"memory": 512},
        }
    }


def test_values_that_do_not_print_back_unchanged_stay_text():
    properties = install_properties_string(
        {"app-version": "1.10", "start-at": "12:30", "mode": "off", "zip-code": "010", "nothing": None}
    )

    document = yaml.safe_load(convert_to_yaml(properties))

    assert document["spec"]["applicationProperties"] == {
        "app.version": "1.10",
        "start.at": "12:30",
        "mode": "off",
        "zip.code": "010",
        "nothing": "null",
    }


def test_canonical_numbers_and_booleans_are_typed():
    assert coerce_scalar("3") == 3
    assert coerce_scalar("1.5") == 1.5
    assert coerce_scalar("true") is True
    assert coerce_scalar("True") == "True"
    assert coerce_scalar("0x1F") == "0x1F"
