import dataclasses
import enum
import inspect
import logging
import typing
from types import NoneType, UnionType
from typing import (
    Annotated,
    Callable,
    Literal,
    NotRequired,
    Required,
    get_args,
    get_origin,
    get_type_hints,
    is_typeddict,
)
from importlib.util import find_spec

from json_verifier.errors import CyclicDefinitionError, TypeMismatchError
from json_verifier.model import Field, Schema, Union
from json_verifier.primitives import Any, Array, Null, Object, as_primitive

logger = logging.getLogger(__name__)

Refinement = Callable[[object], bool]
Converted = tuple[object, bool, Refinement | None]


def _is_union(annotation: type) -> bool:
    """Check if a type annotation is Union."""
    origin = get_origin(annotation)
    return origin is typing.Union or origin is UnionType


def _is_literal(annotation: type) -> bool:
    """Check if a type annotation is Literal."""
    return get_origin(annotation) is Literal


def _is_array(annotation: type) -> bool:
    """Check if a type annotation is a sequence (like list or tuple)."""
    return get_origin(annotation) in (list, tuple)


def _is_dict(annotation: type) -> bool:
    """Check if a type annotation is a dictionary."""
    return get_origin(annotation) is dict


def _is_class(annotation: type) -> bool:
    """Check if a type annotation is a plain class (not a generic alias)."""
    return isinstance(annotation, type) and get_origin(annotation) is None


def _is_enum(annotation: type) -> bool:
    """Check if a type annotation is an Enum."""
    return _is_class(annotation) and issubclass(annotation, enum.Enum)


def _is_annotated(annotation: type) -> bool:
    """Check if a type annotation is a typing annotation."""
    return get_origin(annotation) is Annotated


def _is_required_marker(annotation: type) -> bool:
    """Check for the `Required[...]`/`NotRequired[...]` TypedDict markers."""
    return get_origin(annotation) in (Required, NotRequired)


def _all_of(refinements: list[Refinement | None]) -> Refinement | None:
    checks = [check for check in refinements if check is not None]
    if not checks:
        return None
    if len(checks) == 1:
        return checks[0]

    def refinement(value: object) -> bool:
        return all(check(value) for check in checks)

    return refinement


def _one_of_values(allowed: tuple) -> Refinement:
    # exact type as well as value, so that True does not pass for 1
    def refinement(value: object) -> bool:
        return any(type(value) is type(item) and value == item for item in allowed)

    return refinement


def _to_field(converted: Converted) -> Field:
    definition, _, refinement = converted
    if refinement is None:
        return Field(definition)
    return Field(definition, refinement=refinement)


class _Converter:
    def __init__(
        self,
        raise_when_unsupported: bool = True,
        type_handler: Callable[[type], object] | None = None,
    ) -> None:
        self._raise_when_unsupported = raise_when_unsupported
        self._type_handler = type_handler
        self._visiting: set[type] = set()

        self._enable_pydantic = find_spec("pydantic") is not None

    def _is_pydantic_model(self, annotation: type) -> bool:
        if not self._enable_pydantic or not _is_class(annotation):
            return False
        from pydantic import BaseModel

        return issubclass(annotation, BaseModel)

    def _is_class_schema(self, annotation: type) -> bool:
        return _is_class(annotation) and (
            is_typeddict(annotation)
            or dataclasses.is_dataclass(annotation)
            or self._is_pydantic_model(annotation)
        )

    def _descriptor(self, converted: Converted, has_default: bool) -> dict:
        definition, required, refinement = converted
        descriptor = {"type": definition, "required": required and not has_default}
        if refinement is not None:
            descriptor["refinement"] = refinement
        return descriptor

    def _class_fields(self, cls: type) -> list[tuple[str, type, bool]]:
        """List (name, annotation, has_default) for every field of a class."""
        if self._is_pydantic_model(cls):
            return [
                (name, info.annotation, not info.is_required())
                for name, info in cls.model_fields.items()
            ]

        hints = get_type_hints(cls, include_extras=True)
        if is_typeddict(cls):
            required_keys = cls.__required_keys__
            return [(name, hint, name not in required_keys) for name, hint in hints.items()]

        return [
            (
                f.name,
                hints.get(f.name, f.type),
                f.default is not dataclasses.MISSING
                or f.default_factory is not dataclasses.MISSING,
            )
            for f in dataclasses.fields(cls)
        ]

    def _convert_class(self, cls: type) -> Schema:
        """Convert a TypedDict, dataclass or pydantic model to a Schema."""
        if cls in self._visiting:
            raise CyclicDefinitionError(f"{cls.__name__} refers to itself")
        self._visiting.add(cls)

        definition = {}
        for name, annotation, has_default in self._class_fields(cls):
            definition[name] = self._descriptor(self._convert_core(annotation), has_default)

        self._visiting.discard(cls)
        logger.debug("Converted %s with fields %s", cls.__name__, list(definition))
        return Schema(definition)

    def _convert_function(self, func: Callable) -> Schema:
        sig = inspect.signature(func)
        hints = get_type_hints(func, include_extras=True)
        definition = {}

        for name, param in sig.parameters.items():
            if (
                param.kind
                in (
                    inspect.Parameter.VAR_POSITIONAL,
                    inspect.Parameter.VAR_KEYWORD,
                )
                or param.name == "self"
            ):
                continue  # Skip *args and **kwargs

            annotation = hints.get(name, inspect.Parameter.empty)

            if annotation is inspect.Parameter.empty:
                if param.default is not inspect.Parameter.empty:
                    annotation = type(param.default)
                elif not self._raise_when_unsupported:
                    annotation = typing.Any
                else:
                    raise ValueError(f"Parameter '{name}' is missing a type annotation.")

            has_default = param.default is not inspect.Parameter.empty
            definition[name] = self._descriptor(self._convert_core(annotation), has_default)

        return Schema(definition)

    def _convert_union(self, annotations: tuple[type, ...]) -> Converted:
        """Convert the arms of a Union; a None arm makes the field optional."""
        optional = NoneType in annotations
        arms = [self._convert_core(ann) for ann in annotations if ann is not NoneType]

        if not arms:
            return Null, False, None

        if len(arms) == 1:
            definition, _, refinement = arms[0]
        elif any(refinement is not None for _, _, refinement in arms):
            fields = [_to_field(arm) for arm in arms]
            definition = Any

            def refinement(value: object) -> bool:
                return any(field.matches(value) for field in fields)

        else:
            definition, refinement = Union(*(arm[0] for arm in arms)), None

        if not optional:
            return definition, True, refinement

        if refinement is None:
            return Union(definition, Null), False, None

        inner = refinement

        def accepts_none(value: object) -> bool:
            return value is None or bool(inner(value))

        return Union(definition, Null), False, accepts_none

    def _convert_array(self, annotations: tuple[type, ...]) -> Converted:
        items = [self._convert_core(ann) for ann in annotations if ann is not Ellipsis]

        if not items:
            return Array, True, None

        if all(refinement is None for _, _, refinement in items):
            return [definition for definition, _, _ in items], True, None

        fields = [_to_field(item) for item in items]

        def every_element(value: object) -> bool:
            return all(any(field.matches(element) for field in fields) for element in value)

        return Array, True, every_element

    def _convert_core(self, annotation: type) -> Converted:
        """Convert a type annotation to (type definition, required, refinement)."""

        if self._type_handler:
            custom = self._type_handler(annotation)
            if isinstance(custom, Field):
                return custom.type, custom.required, custom.refinement
            if custom is not None:
                return custom, True, None

        if _is_annotated(annotation):
            args = get_args(annotation)
            definition, required, refinement = self._convert_core(args[0])
            extra = [arg for arg in args[1:] if callable(arg) and not isinstance(arg, type)]
            return definition, required, _all_of([refinement, *extra])

        if _is_required_marker(annotation):
            return self._convert_core(get_args(annotation)[0])

        if _is_union(annotation):
            return self._convert_union(get_args(annotation))

        if _is_array(annotation):
            return self._convert_array(get_args(annotation))

        if _is_literal(annotation):
            return Any, True, _one_of_values(get_args(annotation))

        if _is_enum(annotation):
            members = tuple(annotation)
            values = tuple(member.value for member in members)
            return Any, True, _one_of_values(values + members)

        if self._is_class_schema(annotation):
            return self._convert_class(annotation), True, None

        if _is_dict(annotation):
            return Object, True, None

        if annotation is None or annotation is NoneType:
            return Null, False, None

        tag = as_primitive(annotation)
        if tag is not None:
            return tag, True, None

        if self._raise_when_unsupported:
            raise ValueError(f"Unsupported type: {annotation}")

        logger.debug("Unsupported type %r accepted as Any", annotation)
        return Any, True, None

    def convert(self, object: type) -> Schema:
        if self._is_class_schema(object):
            return self._convert_class(object)
        if inspect.isfunction(object) or inspect.ismethod(object):
            return self._convert_function(object)
        raise TypeMismatchError(
            f"Only TypedDicts, dataclasses, pydantic models and functions describe "
            f"an object. Got {object!r}"
        )
