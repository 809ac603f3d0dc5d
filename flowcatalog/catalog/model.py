# flowcatalog/catalog/model.py
"""Immutable node descriptor model and record parsing."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jsonschema import ValidationError, validate

from flowcatalog.catalog.schema import DESCRIPTOR_SCHEMA
from flowcatalog.catalog.values import PROPERTY_TYPES, is_expression, kind_matches
from flowcatalog.errors import MalformedRequest
from flowcatalog.utils.logger import get_logger

logger = get_logger("catalog.model")

MAIN = "main"
DEFAULT_CATEGORY = "Miscellaneous"

# UI-only property types of the source catalog, folded onto the five
# types the validator understands.
_TYPE_ALIASES = {
    "fixedCollection": "collection",
    "json-object": "collection",
    "multiOptions": "options",
    "json": "string",
    "dateTime": "string",
    "color": "string",
    "hidden": "string",
    "notice": "string",
    "resourceLocator": "string",
    "credentialsSelect": "string",
}


class Capability(str, Enum):
    TRIGGER = "trigger"
    POLLING = "polling"
    WEBHOOK = "webhook"
    LOOP = "loop"


_CAPABILITY_FLAGS = {
    "triggerNode": Capability.TRIGGER,
    "polling": Capability.POLLING,
    "webhookSupport": Capability.WEBHOOK,
    "loopNode": Capability.LOOP,
}


@dataclass(frozen=True)
class PortSpec:
    type: str = MAIN
    display_name: str = ""
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "displayName": self.display_name, "required": self.required}


@dataclass(frozen=True)
class PropertySpec:
    name: str
    type: str
    display_name: str = ""
    required: bool = False
    default: Any = None
    has_default: bool = False
    options: Tuple[Any, ...] = ()
    multiple: bool = False
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "displayName": self.display_name,
            "type": self.type,
            "required": self.required,
        }
        if self.has_default:
            payload["default"] = self.default
        if self.type == "options":
            payload["options"] = list(self.options)
            payload["multiple"] = self.multiple
        if self.min_value is not None:
            payload["minValue"] = self.min_value
        if self.max_value is not None:
            payload["maxValue"] = self.max_value
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class Credential:
    name: str
    required: bool = True


@dataclass(frozen=True)
class NodeDescriptor:
    name: str
    display_name: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    subcategory: Optional[str] = None
    properties: Tuple[PropertySpec, ...] = ()
    inputs: Tuple[PortSpec, ...] = ()
    outputs: Tuple[PortSpec, ...] = ()
    credentials: Tuple[Credential, ...] = ()
    capabilities: frozenset = field(default_factory=frozenset)
    aliases: Tuple[str, ...] = ()
    versions: Tuple[float, ...] = (1,)

    @property
    def short_name(self) -> str:
        """'n8n-nodes-base.httpRequest' -> 'httpRequest'."""
        return self.name.rsplit(".", 1)[-1]

    @property
    def is_trigger(self) -> bool:
        return Capability.TRIGGER in self.capabilities

    @property
    def is_loop(self) -> bool:
        return Capability.LOOP in self.capabilities

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def get_property(self, name: str) -> Optional[PropertySpec]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def ports(self, direction: str, port_type: str) -> List[PortSpec]:
        """Ports of one type, in declaration order. direction is 'input' or 'output'."""
        pool = self.inputs if direction == "input" else self.outputs
        return [p for p in pool if p.type == port_type]

    def port(self, direction: str, port_type: str, index: int) -> Optional[PortSpec]:
        matching = self.ports(direction, port_type)
        if 0 <= index < len(matching):
            return matching[index]
        return None

    def with_aliases(self, extra: Iterable[str]) -> "NodeDescriptor":
        merged = _dedupe([*self.aliases, *extra])
        if len(merged) == len(self.aliases):
            return self
        return replace(self, aliases=tuple(merged))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "properties": [p.to_dict() for p in self.properties],
            "inputs": [p.to_dict() for p in self.inputs],
            "outputs": [p.to_dict() for p in self.outputs],
            "credentials": [{"name": c.name, "required": c.required} for c in self.credentials],
            "capabilities": sorted(c.value for c in self.capabilities),
            "aliases": list(self.aliases),
            "version": list(self.versions),
        }


def canonical_key(name: str) -> str:
    return name.strip().lower()


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for it in items:
        key = it.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(it.strip())
    return out


# ---------- Record parsing ----------

def parse_descriptor(record: Dict[str, Any]) -> NodeDescriptor:
    """
    Parse one catalog record into a NodeDescriptor.
    Raises MalformedRequest when the record does not match DESCRIPTOR_SCHEMA.
    """
    try:
        validate(instance=record, schema=DESCRIPTOR_SCHEMA)
    except ValidationError as e:
        name = record.get("name") if isinstance(record, dict) else None
        raise MalformedRequest(f"Invalid descriptor {name!r}: {e.message}") from e

    name = record["name"].strip()
    capabilities = frozenset(cap for flag, cap in _CAPABILITY_FLAGS.items() if record.get(flag))

    inputs = tuple(_parse_port(p) for p in record.get("inputs", []))
    if Capability.TRIGGER in capabilities and inputs:
        logger.debug("Trigger %s declares %d input(s); dropping them", name, len(inputs))
        inputs = ()

    versions = record.get("version", 1)
    if not isinstance(versions, list):
        versions = [versions]

    return NodeDescriptor(
        name=name,
        display_name=record.get("displayName") or name.rsplit(".", 1)[-1],
        description=record.get("description", ""),
        category=record.get("category") or DEFAULT_CATEGORY,
        subcategory=record.get("subcategory") or None,
        properties=_parse_properties(name, record.get("properties", [])),
        inputs=inputs,
        outputs=tuple(_parse_port(p) for p in record.get("outputs", [])),
        credentials=tuple(_parse_credential(c) for c in record.get("credentials", [])),
        capabilities=capabilities,
        aliases=tuple(_dedupe(record.get("aliases", []))),
        versions=tuple(versions) or (1,),
    )


def _parse_port(spec: Dict[str, Any]) -> PortSpec:
    return PortSpec(
        type=spec["type"],
        display_name=spec.get("displayName", ""),
        required=bool(spec.get("required", False)),
    )


def _parse_credential(spec: Any) -> Credential:
    if isinstance(spec, str):
        return Credential(name=spec)
    return Credential(name=spec["name"], required=bool(spec.get("required", True)))


def _parse_properties(node_name: str, specs: List[Dict[str, Any]]) -> Tuple[PropertySpec, ...]:
    props: List[PropertySpec] = []
    seen = set()
    for spec in specs:
        pname = spec["name"]
        if pname in seen:
            # the source catalog repeats names for displayOptions variants
            logger.debug("%s: duplicate property %r ignored", node_name, pname)
            continue
        seen.add(pname)
        props.append(_parse_property(node_name, spec))
    return tuple(props)


def _parse_property(node_name: str, spec: Dict[str, Any]) -> PropertySpec:
    raw_type = spec["type"]
    multiple = raw_type == "multiOptions"
    ptype = _TYPE_ALIASES.get(raw_type, raw_type)
    if ptype not in PROPERTY_TYPES:
        logger.debug("%s.%s: unknown property type %r treated as string", node_name, spec["name"], raw_type)
        ptype = "string"

    options: Tuple[Any, ...] = ()
    if ptype == "options":
        options = tuple(o["value"] if isinstance(o, dict) else o for o in spec.get("options", []))

    type_options = spec.get("typeOptions") or {}
    validation = spec.get("validation") or {}
    min_value = type_options.get("minValue", validation.get("min"))
    max_value = type_options.get("maxValue", validation.get("max"))

    default = spec.get("default")
    has_default = default is not None
    if has_default and not _default_consistent(ptype, default, options, multiple):
        logger.warning(
            "%s.%s: default %r inconsistent with type %s; dropped",
            node_name, spec["name"], default, ptype,
        )
        default, has_default = None, False

    return PropertySpec(
        name=spec["name"],
        type=ptype,
        display_name=spec.get("displayName", spec["name"]),
        required=bool(spec.get("required", False)),
        default=default,
        has_default=has_default,
        options=options,
        multiple=multiple,
        min_value=min_value,
        max_value=max_value,
        description=spec.get("description", ""),
    )


def _default_consistent(ptype: str, default: Any, options: Tuple[Any, ...], multiple: bool) -> bool:
    if is_expression(default):
        return True
    if not kind_matches(ptype, default, multiple=multiple):
        return False
    if ptype == "options" and options:
        if multiple:
            return all(v in options for v in default)
        return default in options
    return True
