# flowcatalog/validation/node.py

from typing import Any, Dict, List, Optional

from flowcatalog.catalog.model import NodeDescriptor, PropertySpec
from flowcatalog.catalog.store import DescriptorStore
from flowcatalog.catalog.values import ValueKind, classify, is_expression, matches_type
from flowcatalog.errors import MalformedRequest
from flowcatalog.utils.logger import get_logger
from flowcatalog.validation import findings as F
from flowcatalog.validation.findings import Finding, ValidationResult

logger = get_logger("validation")


def validate_node(store: DescriptorStore, type_name: str, parameters: Optional[Dict[str, Any]]) -> ValidationResult:
    """
    Check one parameter bag against a descriptor's property schema.
    Raises UnknownType for a type name the store does not know.
    """
    descriptor = store.require(type_name)
    result = ValidationResult()
    result.extend(check_parameters(descriptor, parameters))
    logger.debug("%s: %d finding(s)", descriptor.name, len(result.findings))
    return result


def check_parameters(
    descriptor: NodeDescriptor,
    parameters: Optional[Dict[str, Any]],
    node: Optional[str] = None,
) -> List[Finding]:
    if parameters is None:
        parameters = {}
    if not isinstance(parameters, dict):
        raise MalformedRequest("parameters must be an object")

    out: List[Finding] = []
    for prop in descriptor.properties:
        value = parameters.get(prop.name)
        if value is None:
            if prop.required and not prop.has_default:
                out.append(F.error(
                    F.MISSING_REQUIRED_PROPERTY,
                    f"Required property '{prop.name}' is not set",
                    node=node, prop=prop.name,
                ))
            continue
        out.extend(_check_value(prop, value, node))

    declared = {p.name for p in descriptor.properties}
    for key in parameters:
        if key not in declared:
            out.append(F.warning(
                F.UNKNOWN_PROPERTY,
                f"Property '{key}' is not declared by {descriptor.name}",
                node=node, prop=key,
            ))
    return out


def _check_value(prop: PropertySpec, value: Any, node: Optional[str]) -> List[Finding]:
    try:
        ok = matches_type(prop, value)
    except TypeError:
        ok = False
    if not ok:
        expected = "list of options" if prop.multiple else prop.type
        return [F.error(
            F.TYPE_MISMATCH,
            f"Property '{prop.name}' expects {expected}, got {_kind_name(value)}",
            node=node, prop=prop.name,
        )]
    if is_expression(value):
        return []

    if prop.type == "options" and prop.options:
        values = value if prop.multiple else [value]
        bad = [v for v in values if not is_expression(v) and v not in prop.options]
        if bad:
            allowed = ", ".join(repr(o) for o in prop.options)
            return [F.error(
                F.INVALID_OPTION_VALUE,
                f"Property '{prop.name}' does not allow {', '.join(repr(b) for b in bad)} (allowed: {allowed})",
                node=node, prop=prop.name,
            )]

    if prop.type == "number":
        if prop.min_value is not None and value < prop.min_value:
            return [F.warning(
                F.VALUE_OUT_OF_RANGE,
                f"Property '{prop.name}' = {value} is below minimum {prop.min_value}",
                node=node, prop=prop.name,
            )]
        if prop.max_value is not None and value > prop.max_value:
            return [F.warning(
                F.VALUE_OUT_OF_RANGE,
                f"Property '{prop.name}' = {value} is above maximum {prop.max_value}",
                node=node, prop=prop.name,
            )]
    return []


def _kind_name(value: Any) -> str:
    try:
        kind = classify(value)
    except TypeError:
        return type(value).__name__
    return "object" if kind is ValueKind.COLLECTION else kind.value
