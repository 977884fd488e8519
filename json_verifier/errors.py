"""Exceptions raised while building schemas.

Validation itself never raises: a mismatch is reported as ``False``.
"""


class SchemaError(Exception):
    """Base exception for malformed schema definitions."""
    pass


class NullValueError(SchemaError, ValueError):
    """Raised when ``None`` is given where a definition is mandatory."""
    pass


class TypeMismatchError(SchemaError, TypeError):
    """Raised when a definition argument has the wrong kind."""
    pass


class CyclicDefinitionError(SchemaError, ValueError):
    """Raised when a definition refers to itself, directly or transitively."""
    pass
