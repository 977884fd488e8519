from collections.abc import Callable

from json_verifier.converter import _Converter
from json_verifier.errors import (
    CyclicDefinitionError,
    NullValueError,
    SchemaError,
    TypeMismatchError,
)
from json_verifier.json_schema import to_json_schema
from json_verifier.model import Alternatives, Field, Schema, Union, type_matches
from json_verifier.primitives import (
    MISSING,
    Any,
    Array,
    BigInteger,
    Boolean,
    Null,
    Number,
    Object,
    Primitive,
    String,
    Unspecified,
)

__all__ = [
    "MISSING",
    "Alternatives",
    "Any",
    "Array",
    "BigInteger",
    "Boolean",
    "CyclicDefinitionError",
    "Field",
    "Null",
    "NullValueError",
    "Number",
    "Object",
    "Primitive",
    "Schema",
    "SchemaError",
    "String",
    "TypeMismatchError",
    "Union",
    "Unspecified",
    "function_to_schema",
    "to_json_schema",
    "type_matches",
    "typing_to_schema",
]


def typing_to_schema(
    object: type,
    raise_when_unsupported: bool = True,
    type_handler: Callable[[type], object] | None = None,
) -> Schema:
    """
    Build a Schema from a class describing an object.

    Parameters:
    - object (type): A TypedDict, a dataclass or a pydantic model. Field
        annotations are converted recursively: nested classes become nested
        schemas, `X | None` makes a field optional and lets it hold None,
        `Literal[...]` and Enum types check membership, and callables found
        in `Annotated[...]` metadata are used as refinements.
    - raise_when_unsupported (bool): If True, raise `ValueError` when an
        unsupported annotation is encountered. If False, the field accepts
        any value.
    - type_handler (Callable[[type], object] | None): Optional custom
        handler that receives each annotation and may return a field type
        definition (or a `Field`). If the handler returns something other
        than None, the converter uses it and skips the built-in conversion.

    Returns:
    - Schema: The schema for objects of the given class.

    Raises:
    - ValueError: If an unsupported annotation is encountered and
        `raise_when_unsupported` is True.
    - TypeMismatchError: If `object` does not describe an object.
    - CyclicDefinitionError: If the class refers to itself.
    """

    converter = _Converter(raise_when_unsupported, type_handler)
    return converter.convert(object)


def function_to_schema(
    func: Callable,
    raise_when_unsupported: bool = True,
    type_handler: Callable[[type], object] | None = None,
) -> Schema:
    """Build a Schema that checks a mapping of keyword arguments for `func`.

    Parameters:
    - func (Callable): The function whose parameters are described. Parameter
        annotations are converted as in `typing_to_schema`; parameters with a
        default are optional.
    - raise_when_unsupported (bool): See `typing_to_schema`.
    - type_handler (Callable[[type], object] | None): See `typing_to_schema`.

    Returns:
    - Schema: One field per parameter, `*args`, `**kwargs` and `self` left
        out.

    Raises:
    - ValueError: If a parameter is missing an annotation and no default is
        provided, or if an unsupported annotation is encountered and
        `raise_when_unsupported` is True.
    """

    converter = _Converter(raise_when_unsupported, type_handler)
    return converter._convert_function(func)
