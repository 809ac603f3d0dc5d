# flowcatalog/generator/skeleton.py
"""
Skeleton generator: a minimally wired starting workflow for a list of node
types. The result always parses; it is not guaranteed to validate.

Layout:
  - the first requested trigger is the entry point, further triggers are
    kept as unwired nodes (extra-trigger note)
  - nodes with a main port are chained main[0] -> main[0] in order
  - sub-nodes (no main ports, e.g. a chat model feeding an agent) are wired
    on their own channel to the first node with a free input of that type
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from flowcatalog.catalog.model import MAIN, NodeDescriptor, canonical_key
from flowcatalog.catalog.store import DescriptorStore
from flowcatalog.errors import MalformedRequest
from flowcatalog.graph.model import Connection, NodeInstance, PortRef, WorkflowGraph
from flowcatalog.utils.logger import get_logger
from flowcatalog.validation import findings as F
from flowcatalog.validation.findings import Finding
from flowcatalog.validation.ports import ports_compatible

logger = get_logger("generator")

DEFAULT_SPACING = 220
MAIN_ROW = 300
SUB_NODE_ROW = 500


@dataclass(frozen=True)
class SkeletonHints:
    # type name -> parameter values applied before defaults
    parameters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    # type name -> base instance name
    names: Dict[str, str] = field(default_factory=dict)
    spacing: int = DEFAULT_SPACING

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SkeletonHints":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MalformedRequest("hints must be an object")
        params = data.get("parameters") or {}
        names = data.get("names") or {}
        spacing = data.get("spacing", DEFAULT_SPACING)
        if not isinstance(params, dict) or not all(isinstance(v, dict) for v in params.values()):
            raise MalformedRequest("hints.parameters must map type names to objects")
        if not isinstance(names, dict) or not all(isinstance(v, str) and v.strip() for v in names.values()):
            raise MalformedRequest("hints.names must map type names to non-empty strings")
        if isinstance(spacing, bool) or not isinstance(spacing, int) or spacing <= 0:
            raise MalformedRequest("hints.spacing must be a positive integer")
        return cls(
            parameters={canonical_key(k): v for k, v in params.items()},
            names={canonical_key(k): v.strip() for k, v in names.items()},
            spacing=spacing,
        )

    def parameters_for(self, type_name: str) -> Dict[str, Any]:
        return copy.deepcopy(self.parameters.get(canonical_key(type_name), {}))

    def name_for(self, type_name: str) -> Optional[str]:
        return self.names.get(canonical_key(type_name))


@dataclass
class Skeleton:
    graph: WorkflowGraph
    notes: List[Finding] = field(default_factory=list)
    type_versions: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graph": self.graph.to_dict(),
            "notes": [n.to_dict() for n in self.notes],
        }

    def to_n8n(self, name: str = "My workflow") -> Dict[str, Any]:
        return self.graph.to_n8n(name=name, type_versions=self.type_versions)


def unique_name(base: str, taken: Set[str]) -> str:
    """n8n naming: 'Slack', then 'Slack1', 'Slack2', ..."""
    if base not in taken:
        return base
    i = 1
    while f"{base}{i}" in taken:
        i += 1
    return f"{base}{i}"


def generate_skeleton(
    store: DescriptorStore,
    type_names: Sequence[str],
    hints: Optional[SkeletonHints] = None,
) -> Skeleton:
    """
    Raises UnknownType if any requested name is missing from the store;
    every other problem is reported as a note on the returned skeleton.
    """
    if isinstance(type_names, str) or not all(isinstance(t, str) for t in type_names):
        raise MalformedRequest("type names must be a list of strings")
    hints = hints or SkeletonHints()
    requested = [store.require(t) for t in type_names]

    notes: List[Finding] = []
    ordered = _order(requested)

    taken: Set[str] = set()
    placed: List[Tuple[NodeInstance, NodeDescriptor]] = []
    extra_triggers: Set[str] = set()
    for d, extra in ordered:
        name = unique_name(hints.name_for(d.name) or d.display_name, taken)
        taken.add(name)
        inst = NodeInstance(name=name, type=d.name, parameters=hints.parameters_for(d.name))
        notes.extend(_fill_parameters(inst, d))
        notes.extend(_credential_notes(inst, d))
        placed.append((inst, d))
        if extra:
            extra_triggers.add(inst.name)

    for inst, d in placed:
        if inst.name in extra_triggers:
            notes.append(F.warning(
                F.EXTRA_TRIGGER,
                f"'{inst.name}' is an additional trigger; only the first trigger is wired",
                node=inst.name,
            ))

    connections: List[Connection] = []
    wired = [(i, d) for i, d in placed if i.name not in extra_triggers]
    chain = [(i, d) for i, d in wired if _has_main(d)]
    sub_nodes = [(i, d) for i, d in wired if not _has_main(d)]

    connections.extend(_wire_chain(chain, notes))
    connections.extend(_wire_sub_nodes(sub_nodes, wired, connections, notes))

    _layout(placed, sub_nodes, hints.spacing)

    graph = WorkflowGraph(nodes=[i for i, _ in placed], connections=connections)
    logger.info(
        "Skeleton: %d node(s), %d connection(s), %d note(s)",
        len(graph.nodes), len(connections), len(notes),
    )
    return Skeleton(
        graph=graph,
        notes=notes,
        type_versions={d.name: max(d.versions) for _, d in placed},
    )


def _order(requested: List[NodeDescriptor]) -> List[Tuple[NodeDescriptor, bool]]:
    """First trigger moves to the front; (descriptor, is_extra_trigger) pairs."""
    first = next((i for i, d in enumerate(requested) if d.is_trigger), None)
    if first is None:
        return [(d, False) for d in requested]
    rest = [(d, d.is_trigger) for i, d in enumerate(requested) if i != first]
    return [(requested[first], False), *rest]


def _has_main(d: NodeDescriptor) -> bool:
    return bool(d.ports("input", MAIN) or d.ports("output", MAIN))


def _fill_parameters(inst: NodeInstance, d: NodeDescriptor) -> List[Finding]:
    notes: List[Finding] = []
    for prop in d.properties:
        if not prop.required or inst.parameters.get(prop.name) is not None:
            continue
        if prop.has_default:
            inst.parameters[prop.name] = copy.deepcopy(prop.default)
            continue
        notes.append(F.warning(
            F.NEEDS_CONFIGURATION,
            f"'{inst.name}' needs a value for required property '{prop.name}'",
            node=inst.name, prop=prop.name,
        ))
    return notes


def _credential_notes(inst: NodeInstance, d: NodeDescriptor) -> List[Finding]:
    return [
        F.warning(
            F.NEEDS_CREDENTIALS,
            f"'{inst.name}' needs credentials of type '{cred.name}'",
            node=inst.name,
        )
        for cred in d.credentials
        if cred.required
    ]


def _wire_chain(chain: List[Tuple[NodeInstance, NodeDescriptor]], notes: List[Finding]) -> List[Connection]:
    out: List[Connection] = []
    for (src, src_d), (tgt, tgt_d) in zip(chain, chain[1:]):
        src_port = src_d.port("output", MAIN, 0)
        tgt_port = tgt_d.port("input", MAIN, 0)
        if not ports_compatible(src_port, tgt_port):
            missing = f"'{src.name}' has no main output" if src_port is None else f"'{tgt.name}' has no main input"
            notes.append(F.warning(
                F.NOT_WIRED,
                f"'{src.name}' -> '{tgt.name}' left unwired: {missing}",
                node=tgt.name,
            ))
            continue
        out.append(Connection(PortRef(src.name, MAIN, 0), PortRef(tgt.name, MAIN, 0)))
    return out


def _wire_sub_nodes(
    sub_nodes: List[Tuple[NodeInstance, NodeDescriptor]],
    wired: List[Tuple[NodeInstance, NodeDescriptor]],
    existing: List[Connection],
    notes: List[Finding],
) -> List[Connection]:
    taken = {(c.target.node, c.target.type, c.target.index) for c in existing}
    out: List[Connection] = []
    for sub, sub_d in sub_nodes:
        counters: Dict[str, int] = {}
        for src_port in sub_d.outputs:
            src_idx = counters.get(src_port.type, 0)
            counters[src_port.type] = src_idx + 1
            target = _free_input(sub, src_port, wired, taken)
            if target is None:
                notes.append(F.warning(
                    F.NOT_WIRED,
                    f"'{sub.name}' output '{src_port.type}' has no node to feed",
                    node=sub.name, port=f"{src_port.type}[{src_idx}]",
                ))
                continue
            taken.add((target.node, target.type, target.index))
            out.append(Connection(PortRef(sub.name, src_port.type, src_idx), target))
    return out


def _free_input(sub: NodeInstance, src_port, wired, taken) -> Optional[PortRef]:
    for inst, d in wired:
        if inst.name == sub.name:
            continue
        for idx, port in enumerate(d.ports("input", src_port.type)):
            if (inst.name, port.type, idx) in taken:
                continue
            if ports_compatible(src_port, port):
                return PortRef(inst.name, port.type, idx)
    return None


def _layout(
    placed: List[Tuple[NodeInstance, NodeDescriptor]],
    sub_nodes: List[Tuple[NodeInstance, NodeDescriptor]],
    spacing: int,
) -> None:
    subs = {i.name for i, _ in sub_nodes}
    col = 0
    sub_col = 1
    for inst, _ in placed:
        if inst.name in subs:
            inst.position = (sub_col * spacing, SUB_NODE_ROW)
            sub_col += 1
        else:
            inst.position = (col * spacing, MAIN_ROW)
            col += 1
