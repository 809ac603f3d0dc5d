# flowcatalog/catalog/values.py
"""
Closed classification of parameter values.

Parameter bags arrive as arbitrary JSON. Each value is mapped onto one
ValueKind so type checks are a lookup instead of a chain of isinstance
probes scattered over the validator.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet


class ValueKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    COLLECTION = "collection"
    LIST = "list"
    NULL = "null"
    EXPRESSION = "expression"


# Declared property type -> value kinds accepted for it.
# 'options' is checked against its allowed literals separately.
ACCEPTED_KINDS: Dict[str, FrozenSet[ValueKind]] = {
    "string": frozenset({ValueKind.STRING}),
    "number": frozenset({ValueKind.NUMBER}),
    "boolean": frozenset({ValueKind.BOOLEAN}),
    "options": frozenset({ValueKind.STRING, ValueKind.NUMBER, ValueKind.BOOLEAN}),
    "collection": frozenset({ValueKind.COLLECTION, ValueKind.LIST}),
}

PROPERTY_TYPES = tuple(ACCEPTED_KINDS)


def is_expression(value: Any) -> bool:
    """n8n expressions are strings prefixed with '='."""
    return isinstance(value, str) and value.startswith("=")


def classify(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int: test it first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.EXPRESSION if is_expression(value) else ValueKind.STRING
    if isinstance(value, dict):
        return ValueKind.COLLECTION
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    raise TypeError(f"Unsupported parameter value of type {type(value).__name__}")


def kind_matches(declared_type: str, value: Any, multiple: bool = False) -> bool:
    """
    True if `value` is acceptable for a property of `declared_type`.
    Expressions match every type; their value is only known at runtime.
    """
    kind = classify(value)
    if kind is ValueKind.EXPRESSION:
        return True
    if declared_type == "options" and multiple:
        if kind is not ValueKind.LIST:
            return False
        return all(kind_matches("options", v) for v in value)
    return kind in ACCEPTED_KINDS.get(declared_type, frozenset())


def matches_type(prop: Any, value: Any) -> bool:
    """kind_matches for a PropertySpec-like object (needs .type and .multiple)."""
    return kind_matches(prop.type, value, multiple=getattr(prop, "multiple", False))
