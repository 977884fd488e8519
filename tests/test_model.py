import copy
import dataclasses
from types import MappingProxyType

import pytest

from json_verifier import (
    MISSING,
    Alternatives,
    Any,
    Array,
    BigInteger,
    Boolean,
    Field,
    Null,
    Number,
    Object,
    Schema,
    String,
    Union,
    Unspecified,
    type_matches,
)
from json_verifier.errors import (
    CyclicDefinitionError,
    NullValueError,
    SchemaError,
    TypeMismatchError,
)
from json_verifier.model import _visit


def test_create_not_a_mapping():
    for definition in (MISSING, 42, "a: str", [String]):
        with pytest.raises(TypeMismatchError):
            Schema.create(definition)


def test_create_none():
    with pytest.raises(NullValueError):
        Schema.create(None)


def test_errors_keep_builtin_kinds():
    with pytest.raises(TypeError):
        Schema(42)
    with pytest.raises(ValueError):
        Schema(None)
    with pytest.raises(SchemaError):
        Schema({"a": 42})


def test_simple_definition():
    schema = Schema.create({"a": String, "b": Boolean})

    assert schema.confirm_matches({"a": "x", "b": True})
    assert not schema.confirm_matches({"a": "x", "b": True, "c": 1})
    assert not schema.confirm_matches({"a": "x"})


def test_builtin_types():
    schema = Schema({"a": str, "b": bool, "c": int, "d": float, "e": list, "f": dict})

    assert schema.confirm_matches(
        {"a": "", "b": False, "c": 10**30, "d": 1.5, "e": [1, "x"], "f": {"k": 1}}
    )
    assert not schema.confirm_matches(
        {"a": "", "b": False, "c": 1.0, "d": 1.5, "e": [], "f": {}}
    )


def test_extra_key_and_missing_key_checked_independently():
    schema = Schema({"a": {"type": String}, "b": {"type": Boolean, "required": False}})

    assert schema.confirm_matches({"a": ""})
    assert schema.confirm_matches({"a": "", "b": True})
    # only optional fields missing, but an unknown key is present
    assert not schema.confirm_matches({"a": "", "c": "bar"})
    # no unknown key, but a required field is missing
    assert not schema.confirm_matches({"b": True})


def test_optional_field():
    schema = Schema.create({"a": String, "b": {"type": Boolean, "required": False}})

    assert schema.confirm_matches({"a": "x"})


def test_optional_nested_object():
    schema = Schema.create(
        {"a": {"type": {"c": Number, "d": Boolean}, "required": False}}
    )

    assert schema.confirm_matches({})
    assert schema.confirm_matches({"a": {"c": 1, "d": True}})
    assert not schema.confirm_matches({"a": {"c": 1}})
    assert not schema.confirm_matches({"a": {"c": 1, "d": True, "e": "x"}})


def test_schema_as_type():
    b_schema = Schema({"c": Number, "d": BigInteger})
    schema = Schema({"a": {"type": String}, "b": b_schema})

    assert schema.confirm_matches({"a": "", "b": {"c": 1, "d": 10**30}})
    assert not schema.confirm_matches({"a": "", "b": {"c": 1, "d": "1"}})
    assert not schema.confirm_matches({"a": "", "b": "not an object"})


def test_inline_nested_object():
    schema = Schema({"a": {"type": String}, "b": {"c": Number, "d": BigInteger}})

    assert schema.confirm_matches({"a": "", "b": {"c": 1, "d": 1}})
    assert not schema.confirm_matches({"a": "", "b": None})


def test_union():
    b_schema = Schema({"c": Number, "d": BigInteger})
    schema = Schema(
        {
            "a": {"type": String},
            "b": Union(String, Boolean, b_schema, {"foo": BigInteger, "bar": String}),
        }
    )

    assert schema.confirm_matches({"a": "", "b": ""})
    assert schema.confirm_matches({"a": "", "b": False})
    assert schema.confirm_matches({"a": "", "b": {"c": 1, "d": 1}})
    assert schema.confirm_matches({"a": "", "b": {"foo": 420, "bar": "hello"}})

    assert not schema.confirm_matches({"a": "", "b": 1})
    assert not schema.confirm_matches({"a": "", "b": {"c": 1, "d": 1, "e": 8}})
    assert not schema.confirm_matches({"a": "", "b": {"c": 1}})
    assert not schema.confirm_matches({"a": "", "b": {"c": 1, "d": "hello"}})
    assert not schema.confirm_matches(
        {"a": "", "b": {"foo": 420, "bar": "hello", "toto": "clown"}}
    )
    assert not schema.confirm_matches({"a": "", "b": {"foo": 420}})


def test_union_create_with_nested_schema():
    inner = Schema({"c": Number, "d": Boolean})
    schema = Schema({"b": Union.create(String, inner)})

    assert schema.confirm_matches({"b": {"c": 1, "d": True}})
    assert not schema.confirm_matches({"b": {"c": 1, "d": True, "e": "x"}})


def test_union_order_does_not_change_verdict():
    forward = Union(String, Number, {"c": Boolean})
    backward = Union({"c": Boolean}, Number, String)

    for value in ("x", 1, 2.5, True, None, {"c": True}, {"c": 1}, [], {}):
        assert type_matches(forward, value) == type_matches(backward, value)


def test_empty_union_matches_nothing():
    union = Union()

    assert len(union) == 0
    assert not type_matches(union, "x")
    assert not type_matches(union, None)


def test_array():
    a_schema = Schema({"b": String, "c": Number})
    schema = Schema({"a": [String, Boolean, a_schema, {"foo": BigInteger, "bar": String}]})

    assert schema.confirm_matches(
        {"a": ["", False, {"b": "hello there", "c": 1}, {"foo": 420, "bar": "hello"}]}
    )
    assert schema.confirm_matches({"a": []})
    assert schema.confirm_matches({"a": ("x", True)})
    assert not schema.confirm_matches({"a": ""})
    assert not schema.confirm_matches({"a": ["", 1]})
    assert not schema.confirm_matches({"a": [{"b": "x", "c": 1, "d": 2}]})


def test_array_of_alternatives_with_nested_schema():
    inner = Schema({"c": Number, "d": Boolean})
    schema = Schema({"a": [String, Boolean, inner]})

    assert schema.confirm_matches({"a": ["x", False, {"c": 1, "d": True}]})
    assert not schema.confirm_matches({"a": ["x", 1]})


def test_descriptor_with_union_and_list_type():
    schema = Schema(
        {
            "u": {"type": Union(str, int), "required": False},
            "l": {"type": [str, {"x": int}]},
        }
    )

    assert schema.confirm_matches({"l": ["a", {"x": 1}]})
    assert schema.confirm_matches({"u": 3, "l": []})
    assert not schema.confirm_matches({"u": 1.5, "l": []})
    assert not schema.confirm_matches({"l": [{"x": "1"}]})


def test_none_is_a_present_value():
    schema = Schema(
        {
            "s": {"type": String, "required": False},
            "o": {"type": Object, "required": False},
            "any": {"type": Any, "required": False},
        }
    )

    assert schema.confirm_matches({})
    assert schema.confirm_matches({"o": None, "any": None})
    assert not schema.confirm_matches({"s": None})


def test_numbers_and_booleans_are_distinct():
    schema = Schema({"n": Number, "i": BigInteger, "b": Boolean})

    assert schema.confirm_matches({"n": 1, "i": 1, "b": True})
    assert schema.confirm_matches({"n": 1.5, "i": -7, "b": False})
    assert not schema.confirm_matches({"n": True, "i": 1, "b": True})
    assert not schema.confirm_matches({"n": 1, "i": False, "b": True})
    assert not schema.confirm_matches({"n": 1, "i": 1, "b": 1})


def test_refinement_runs_after_type_check():
    schema = Schema({"age": {"type": int, "refinement": lambda value: value >= 0}})

    assert schema.confirm_matches({"age": 3})
    assert not schema.confirm_matches({"age": -1})
    # "x" >= 0 would raise, the type check must stop first
    assert not schema.confirm_matches({"age": "x"})


def test_refinement_not_called_for_missing_value():
    calls = []

    def refinement(value):
        calls.append(value)
        return True

    schema = Schema({"a": {"type": String, "required": False, "refinement": refinement}})

    assert schema.confirm_matches({})
    assert calls == []
    assert schema.confirm_matches({"a": "x"})
    assert calls == ["x"]


def test_descriptor_validation():
    with pytest.raises(TypeMismatchError):
        Schema({"a": {"type": String, "required": "yes"}})
    with pytest.raises(TypeMismatchError):
        Schema({"a": {"type": String, "refinement": 1}})
    with pytest.raises(TypeMismatchError):
        Field(String, required=1)
    with pytest.raises(TypeMismatchError):
        Field(String, refinement="not callable")


def test_unsupported_field_definitions():
    with pytest.raises(TypeMismatchError):
        Schema({"a": 42})
    with pytest.raises(TypeMismatchError):
        Schema({"a": "string"})
    with pytest.raises(TypeMismatchError):
        Schema({1: String})
    with pytest.raises(NullValueError):
        Schema({"a": None})
    with pytest.raises(NullValueError):
        Schema({"a": {"type": {"b": None}}})


def test_definition_is_not_mutated():
    definition = {
        "a": {"type": {"c": Number}, "required": False},
        "b": [String, {"x": int}],
        "u": Union(String, {"y": bool}),
    }
    snapshot = copy.copy(definition)
    nested = definition["a"]["type"]
    items = list(definition["b"])

    Schema(definition)

    assert definition == snapshot
    assert definition["a"]["type"] is nested
    assert definition["a"]["type"] == {"c": Number}
    assert definition["b"] == items
    assert isinstance(definition["b"][1], dict)


def test_shared_definition_is_not_a_cycle():
    shared = {"c": Number}
    schema = Schema({"a": shared, "b": [shared], "c": {"type": shared}})

    assert schema.confirm_matches({"a": {"c": 1}, "b": [{"c": 2}], "c": {"c": 3}})


def test_cyclic_definitions():
    node = {"value": Number}
    node["next"] = node
    with pytest.raises(CyclicDefinitionError):
        Schema(node)

    items = [String]
    items.append(items)
    with pytest.raises(CyclicDefinitionError):
        Schema({"a": items})

    descriptor = {"required": False}
    descriptor["type"] = {"inner": descriptor}
    with pytest.raises(CyclicDefinitionError):
        Schema({"a": descriptor})

    with pytest.raises(CyclicDefinitionError):
        Union(String, node)


def test_deep_nesting_is_closed_world():
    schema = Schema({"a": {"b": {"c": {"d": String}}}})

    assert schema.confirm_matches({"a": {"b": {"c": {"d": "x"}}}})
    assert not schema.confirm_matches({"a": {"b": {"c": {"d": "x", "e": 1}}}})
    assert not schema.confirm_matches({"a": {"b": {"c": {"d": "x"}, "z": 1}}})


def test_non_mapping_candidates():
    schema = Schema({"a": {"type": String, "required": False}})

    for candidate in (None, [], "a", 1, ["a"]):
        assert not schema.confirm_matches(candidate)
    assert schema.confirm_matches(MappingProxyType({"a": "x"}))
    assert schema.confirmMatches({})


def test_field_matches():
    assert Field(String, required=False).matches()
    assert not Field(String).matches()
    assert not Field(String, required=False).matches(None)
    assert Field(Object, required=False).matches(None)
    assert Field(Unspecified).matches(object())
    assert Field({"a": str}).matches({"a": "x"})


def test_prebuilt_field_in_definition():
    optional = Field(String, required=False)
    schema = Schema({"a": optional})

    assert schema.fields["a"] is optional
    assert schema.confirm_matches({})


def test_type_matches():
    assert type_matches(String, "x")
    assert type_matches(str, "x")
    assert type_matches(Array, [])
    assert type_matches(Array, ())
    assert not type_matches(Array, "abc")
    assert type_matches(Object, {})
    assert not type_matches(Object, [])
    assert not type_matches(Object, "x")
    assert type_matches(Any, object())
    assert type_matches(Alternatives((String,)), ["a"])
    assert not type_matches("nonsense", 1)


def test_schema_is_read_only():
    schema = Schema({"a": String})

    assert list(schema) == ["a"]
    assert "a" in schema
    assert len(schema) == 1
    with pytest.raises(AttributeError):
        schema.extra = 1
    with pytest.raises(TypeError):
        schema.fields["b"] = Field(String)
    with pytest.raises(dataclasses.FrozenInstanceError):
        schema.fields["a"].required = False
    with pytest.raises(AttributeError):
        Union(String).alternatives = ()


def test_type_matches_raw_definitions():
    assert type_matches([String], ["x"])
    assert not type_matches([String], ["x", 1])
    assert type_matches({"a": str}, {"a": "x"})
    assert not type_matches({"a": str}, {"a": "x", "b": 1})
    with pytest.raises(NullValueError):
        type_matches({"a": None}, {})


def test_cycle_check_recovers_after_error():
    node = {"value": Number}
    visiting = set()

    with pytest.raises(CyclicDefinitionError):
        with _visit(node, visiting):
            with _visit(node, visiting):
                pass

    assert visiting == set()


def test_null_tag():
    schema = Schema({"n": Null, "m": {"type": type(None), "required": False}})

    assert schema.confirm_matches({"n": None})
    assert schema.confirm_matches({"n": None, "m": None})
    assert not schema.confirm_matches({"n": 0})
    assert not schema.confirm_matches({"n": {}})
    assert not schema.confirm_matches({})
    with pytest.raises(NullValueError):
        Schema({"n": None})
