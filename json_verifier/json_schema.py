from typing import Literal, TypedDict

from json_verifier.model import Alternatives, Schema, TypeExpression, Union
from json_verifier.primitives import Primitive, as_primitive

ValueTypeItem = Literal["string", "integer", "number", "boolean", "object", "null"]

ValueType = ValueTypeItem | list[ValueTypeItem]


class BaseSchema(TypedDict, total=False):
    description: str | None


class ValueSchema(BaseSchema, total=False):
    type: ValueType


class ArraySchema(BaseSchema, total=False):
    type: Literal["array"]
    items: BaseSchema
    maxItems: int


class ObjectSchema(BaseSchema, total=False):
    type: Literal["object"]
    properties: dict[str, BaseSchema]
    required: list[str]
    additionalProperties: bool


class AnyOfSchema(BaseSchema, total=False):
    anyOf: list[BaseSchema]


# "not" is a keyword, hence the functional form
NotSchema = TypedDict("NotSchema", {"not": BaseSchema, "description": str | None}, total=False)


_PRIMITIVE_TYPES: dict[Primitive, ValueType] = {
    Primitive.STRING: "string",
    Primitive.NUMBER: "number",
    Primitive.BIG_INTEGER: "integer",
    Primitive.BOOLEAN: "boolean",
    Primitive.OBJECT: ["object", "null"],
    Primitive.NULL: "null",
}


def _export_object(schema: Schema) -> ObjectSchema:
    return ObjectSchema(
        type="object",
        properties={name: _export(field.type) for name, field in schema.fields.items()},
        required=[name for name, field in schema.fields.items() if field.required],
        additionalProperties=False,
    )


def _export(expr: TypeExpression) -> BaseSchema:
    tag = as_primitive(expr)
    if tag is Primitive.ARRAY:
        return ArraySchema(type="array")
    if tag in _PRIMITIVE_TYPES:
        return ValueSchema(type=_PRIMITIVE_TYPES[tag])
    if tag is not None:
        # Any and Unspecified
        return BaseSchema()

    if isinstance(expr, Schema):
        return _export_object(expr)

    if isinstance(expr, Union):
        if not expr.alternatives:
            # anyOf must not be empty
            return NotSchema({"not": BaseSchema()})
        return AnyOfSchema(anyOf=[_export(alt) for alt in expr.alternatives])

    if isinstance(expr, Alternatives):
        if not expr.options:
            return ArraySchema(type="array", maxItems=0)
        return ArraySchema(
            type="array",
            items=AnyOfSchema(anyOf=[_export(option) for option in expr.options]),
        )

    raise TypeError(f"Not a type expression: {expr!r}")


def to_json_schema(schema: Schema, description: str | None = None) -> ObjectSchema:
    """Render a Schema as a JSON Schema document.

    Parameters:
    - schema (Schema): The schema to render.
    - description (str | None): Optional description of the top-level object.

    Returns:
    - ObjectSchema: A document with `additionalProperties` disabled at every
        level. Refinement predicates can't be expressed and are left out, so
        the document may accept values the schema rejects.
    """
    document = _export_object(schema)
    if description:
        document["description"] = description
    return document
