from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from types import MappingProxyType

from json_verifier.errors import (
    CyclicDefinitionError,
    NullValueError,
    TypeMismatchError,
)
from json_verifier.primitives import MISSING, Primitive, as_primitive

logger = logging.getLogger(__name__)


def _kind(value: object) -> str:
    return type(value).__name__


def _always(value: object) -> bool:
    return True


@dataclass(frozen=True)
class Alternatives:
    """Element types of an array: each element must match one of `options`."""

    options: tuple[TypeExpression, ...]

    def __iter__(self) -> Iterator[TypeExpression]:
        return iter(self.options)


@dataclass(frozen=True)
class Field:
    """One field of a schema.

    Parameters:
    - type: The expected type expression. Builtin types (`str`, `int`, ...),
        lists of alternatives and raw mappings are normalized.
    - required (bool): Whether the key must be present in the candidate.
    - refinement (Callable[[object], bool]): Extra predicate, only called
        once the structural type check has passed.

    Raises:
    - TypeMismatchError: If `required` is not a bool or `refinement` is not
        callable.
    """

    type: TypeExpression
    required: bool = True
    refinement: Callable[[object], bool] = _always

    def __post_init__(self) -> None:
        if not isinstance(self.required, bool):
            raise TypeMismatchError(
                f"Type of required must be bool. It currently is {_kind(self.required)}"
            )
        if not callable(self.refinement):
            raise TypeMismatchError(
                f"Type of refinement must be callable. It currently is {_kind(self.refinement)}"
            )
        object.__setattr__(self, "type", _normalize_type(self.type, set()))

    def matches(self, value: object = MISSING) -> bool:
        """Check a candidate value, `MISSING` meaning the key is absent."""
        if value is MISSING:
            return not self.required
        return type_matches(self.type, value) and bool(self.refinement(value))


class Union:
    """Matches a value when at least one alternative matches it.

    Raw mappings among the alternatives are turned into nested schemas and
    lists into array alternatives; nothing else is checked.
    """

    __slots__ = ("alternatives",)

    def __init__(self, *alternatives: object) -> None:
        normalized = tuple(_normalize_type(alt, set()) for alt in alternatives)
        object.__setattr__(self, "alternatives", normalized)
        logger.debug("Built union of %d alternatives", len(normalized))

    @classmethod
    def create(cls, *alternatives: object) -> Union:
        return cls(*alternatives)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{_kind(self)} is immutable")

    def __iter__(self) -> Iterator[TypeExpression]:
        return iter(self.alternatives)

    def __len__(self) -> int:
        return len(self.alternatives)

    def __repr__(self) -> str:
        return f"Union{self.alternatives!r}"


class Schema:
    """Closed description of an object: a fixed set of named fields.

    A schema is built once from a definition mapping and never changes
    afterwards. The definition itself is left untouched.

    Parameters:
    - definition (Mapping[str, object]): Field name to field definition. A
        field definition is a type tag or builtin type, a list of array
        alternatives, a descriptor mapping with a `type` key (plus optional
        `required` and `refinement`), a `Schema`, a `Union`, a `Field`, or a
        raw mapping describing a nested object.

    Raises:
    - NullValueError: If `definition` (or a field definition) is None.
    - TypeMismatchError: If `definition` is not a mapping, or a field
        definition is not understood.
    - CyclicDefinitionError: If a raw definition contains itself.
    """

    __slots__ = ("_fields",)

    def __init__(self, definition: Mapping[str, object]) -> None:
        fields = _normalize_fields(definition, set())
        object.__setattr__(self, "_fields", MappingProxyType(fields))
        logger.debug("Built schema with fields %s", list(fields))

    @classmethod
    def create(cls, definition: Mapping[str, object]) -> Schema:
        return cls(definition)

    @classmethod
    def _from_fields(cls, fields: dict[str, Field]) -> Schema:
        schema = cls.__new__(cls)
        object.__setattr__(schema, "_fields", MappingProxyType(fields))
        logger.debug("Built nested schema with fields %s", list(fields))
        return schema

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{_kind(self)} is immutable")

    @property
    def fields(self) -> Mapping[str, Field]:
        return self._fields

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Schema({dict(self._fields)!r})"

    def confirm_matches(self, candidate: object) -> bool:
        """Check `candidate` against every field of this schema.

        Keys the schema does not declare make the candidate invalid. An
        absent key only passes for a field that is not required; a key
        holding None is present and must satisfy the field's type.
        """
        if not isinstance(candidate, Mapping):
            return False
        for key in candidate:
            if key not in self._fields:
                return False
        for name, field in self._fields.items():
            if not field.matches(candidate.get(name, MISSING)):
                return False
        return True

    confirmMatches = confirm_matches


TypeExpression = Primitive | Schema | Union | Alternatives


def type_matches(expr: TypeExpression, value: object) -> bool:
    """Check whether `value` has the shape described by `expr`.

    Raw lists and mappings are normalized first, the way a field definition
    would be, so a malformed one raises the usual construction errors.
    """
    if isinstance(expr, (list, tuple, Mapping)):
        expr = _normalize_type(expr, set())
    return _matches(expr, value)


def _matches(expr: TypeExpression, value: object) -> bool:
    tag = as_primitive(expr)
    if tag is not None:
        return tag.accepts(value)

    if isinstance(expr, Schema):
        return isinstance(value, Mapping) and expr.confirm_matches(value)

    if isinstance(expr, Union):
        return any(_matches(alt, value) for alt in expr.alternatives)

    if isinstance(expr, Alternatives):
        if not isinstance(value, (list, tuple)):
            return False
        return all(
            any(_matches(option, element) for option in expr.options)
            for element in value
        )

    return False


@contextmanager
def _visit(definition: object, visiting: set[int]) -> Iterator[None]:
    """Track raw definitions currently being normalized, by identity."""
    marker = id(definition)
    if marker in visiting:
        raise CyclicDefinitionError(
            f"{_kind(definition)} definition contains itself"
        )
    visiting.add(marker)
    try:
        yield
    finally:
        visiting.discard(marker)


def _is_descriptor(definition: Mapping) -> bool:
    """Check if a mapping is a field descriptor rather than a nested object."""
    if "type" not in definition:
        return False
    declared = definition["type"]
    return as_primitive(declared) is not None or isinstance(
        declared, (Schema, Union, Alternatives, list, tuple, Mapping)
    )


def _normalize_fields(definition: object, visiting: set[int]) -> dict[str, Field]:
    if definition is None:
        raise NullValueError("schema definition can't be None")
    if not isinstance(definition, Mapping):
        raise TypeMismatchError(
            f"schema definition should be a mapping. Instead, its type is {_kind(definition)}"
        )

    fields = {}
    with _visit(definition, visiting):
        for name, field_definition in definition.items():
            if not isinstance(name, str):
                raise TypeMismatchError(
                    f"field names must be str. Got {_kind(name)} for {name!r}"
                )
            fields[name] = _normalize_field(field_definition, visiting)
    return fields


def _normalize_field(definition: object, visiting: set[int]) -> Field:
    """Convert one field definition to a Field."""
    if definition is None:
        raise NullValueError("field definition can't be None")

    tag = as_primitive(definition)
    if tag is not None:
        return Field(tag)

    if isinstance(definition, (list, tuple)):
        return Field(_normalize_alternatives(definition, visiting))

    if isinstance(definition, Field):
        return definition

    if isinstance(definition, (Schema, Union)):
        return Field(definition)

    if isinstance(definition, Mapping):
        if _is_descriptor(definition):
            with _visit(definition, visiting):
                declared = _normalize_type(definition["type"], visiting)
            return Field(
                declared,
                definition.get("required", True),
                definition.get("refinement", _always),
            )
        return Field(Schema._from_fields(_normalize_fields(definition, visiting)))

    raise TypeMismatchError(f"Unsupported field definition: {definition!r}")


def _normalize_type(definition: object, visiting: set[int]) -> TypeExpression:
    """Convert a type definition to a type expression."""
    if definition is None:
        raise NullValueError("type definition can't be None")

    tag = as_primitive(definition)
    if tag is not None:
        return tag

    if isinstance(definition, (Schema, Union, Alternatives)):
        return definition

    if isinstance(definition, (list, tuple)):
        return _normalize_alternatives(definition, visiting)

    if isinstance(definition, Mapping):
        return Schema._from_fields(_normalize_fields(definition, visiting))

    raise TypeMismatchError(f"Unsupported type definition: {definition!r}")


def _normalize_alternatives(definition: list | tuple, visiting: set[int]) -> Alternatives:
    with _visit(definition, visiting):
        options = tuple(_normalize_type(option, visiting) for option in definition)
    return Alternatives(options)
