import enum
import typing
from collections.abc import Mapping


class Primitive(enum.Enum):
    """Leaf tags of a type expression."""

    STRING = "string"
    NUMBER = "number"
    BIG_INTEGER = "big_integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"
    ANY = "any"
    UNSPECIFIED = "unspecified"

    def accepts(self, value: object) -> bool:
        """Check the runtime kind of `value` against this tag, without coercion."""
        if self is Primitive.ANY or self is Primitive.UNSPECIFIED:
            return True
        if self is Primitive.STRING:
            return isinstance(value, str)
        if self is Primitive.NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self is Primitive.BIG_INTEGER:
            return isinstance(value, int) and not isinstance(value, bool)
        if self is Primitive.BOOLEAN:
            return isinstance(value, bool)
        if self is Primitive.ARRAY:
            return isinstance(value, (list, tuple))
        if self is Primitive.OBJECT:
            # None counts as an object, as it does for JSON documents
            return value is None or isinstance(value, Mapping)
        if self is Primitive.NULL:
            return value is None
        return False


String = Primitive.STRING
Number = Primitive.NUMBER
BigInteger = Primitive.BIG_INTEGER
Boolean = Primitive.BOOLEAN
Array = Primitive.ARRAY
Object = Primitive.OBJECT
Null = Primitive.NULL
Any = Primitive.ANY
Unspecified = Primitive.UNSPECIFIED

_BUILTIN_TAGS: dict[type, Primitive] = {
    str: Primitive.STRING,
    float: Primitive.NUMBER,
    int: Primitive.BIG_INTEGER,
    bool: Primitive.BOOLEAN,
    list: Primitive.ARRAY,
    tuple: Primitive.ARRAY,
    dict: Primitive.OBJECT,
    type(None): Primitive.NULL,
    object: Primitive.ANY,
}


def as_primitive(definition: object) -> Primitive | None:
    """Return the tag a definition stands for, or None if it is not a leaf."""
    if isinstance(definition, Primitive):
        return definition
    if definition is typing.Any:
        return Primitive.ANY
    if isinstance(definition, type):
        return _BUILTIN_TAGS.get(definition)
    return None


class _Missing:
    """Marker for a key that is absent from the candidate object."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()
