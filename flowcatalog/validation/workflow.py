# flowcatalog/validation/workflow.py
"""
Whole-graph validation.

Per-instance parameter checks run first, then the graph checks in a fixed
order: connection references, port compatibility, required-input coverage,
reachability, cycle policy. A connection with a dangling reference is
dropped from the later checks; every other connection is still checked.
"""

from typing import Dict, List, Set, Tuple

from flowcatalog.catalog.model import NodeDescriptor
from flowcatalog.catalog.store import DescriptorStore
from flowcatalog.graph.model import Connection, PortRef, WorkflowGraph
from flowcatalog.utils.graph import build_graph, cyclic_components
from flowcatalog.utils.logger import get_logger
from flowcatalog.validation import findings as F
from flowcatalog.validation.findings import Finding, ValidationResult
from flowcatalog.validation.node import check_parameters
from flowcatalog.validation.ports import ports_compatible

logger = get_logger("validation")


def validate_workflow(store: DescriptorStore, graph: WorkflowGraph) -> ValidationResult:
    """
    Collect every finding for `graph`. Raises UnknownType when an instance
    names a type the store does not know.
    """
    descriptors: Dict[str, NodeDescriptor] = {n.name: store.require(n.type) for n in graph.nodes}
    result = ValidationResult()

    for inst in graph.nodes:
        result.extend(check_parameters(descriptors[inst.name], inst.parameters, node=inst.name))

    connections, duplicates = _dedupe(graph.connections)

    structural: List[Connection] = []
    covered: Set[Tuple[str, str, int]] = set()
    for conn in connections:
        broken = _check_references(conn, descriptors)
        if broken is not None:
            result.add(broken)
            continue
        structural.append(conn)

        src_port = descriptors[conn.source.node].port("output", conn.source.type, conn.source.index)
        tgt_port = descriptors[conn.target.node].port("input", conn.target.type, conn.target.index)
        if not ports_compatible(src_port, tgt_port):
            result.add(F.error(
                F.INCOMPATIBLE_PORTS,
                f"Connection {conn}: output type '{src_port.type}' cannot feed input type '{tgt_port.type}'",
                node=conn.target.node, port=_port_label(conn.target),
            ))
            continue
        covered.add((conn.target.node, conn.target.type, conn.target.index))

    result.extend(_required_inputs(graph, descriptors, covered))
    result.extend(_unreachable(graph, descriptors, structural))
    result.extend(_cycles(graph, descriptors, structural))

    for conn in duplicates:
        result.add(F.warning(
            F.DUPLICATE_CONNECTION,
            f"Connection {conn} is declared more than once",
            node=conn.source.node, port=_port_label(conn.source),
        ))

    logger.debug(
        "Workflow with %d node(s): %d error(s), %d warning(s)",
        len(graph.nodes), len(result.errors), len(result.warnings),
    )
    return result


def _dedupe(connections: List[Connection]) -> Tuple[List[Connection], List[Connection]]:
    seen: Set[Connection] = set()
    unique: List[Connection] = []
    duplicates: List[Connection] = []
    for conn in connections:
        if conn in seen:
            if conn not in duplicates:
                duplicates.append(conn)
            continue
        seen.add(conn)
        unique.append(conn)
    return unique, duplicates


def _port_label(ref: PortRef) -> str:
    return f"{ref.type}[{ref.index}]"


def _check_references(conn: Connection, descriptors: Dict[str, NodeDescriptor]):
    """Returns an invalid-connection finding, or None when both ends exist."""
    src, tgt = conn.source, conn.target
    for ref in (src, tgt):
        if ref.node not in descriptors:
            return F.error(
                F.INVALID_CONNECTION,
                f"Connection {conn} references unknown node '{ref.node}'",
                node=ref.node, port=_port_label(ref),
            )
    if descriptors[src.node].port("output", src.type, src.index) is None:
        return F.error(
            F.INVALID_CONNECTION,
            f"Connection {conn}: '{src.node}' has no output {_port_label(src)}",
            node=src.node, port=_port_label(src),
        )
    if descriptors[tgt.node].port("input", tgt.type, tgt.index) is None:
        return F.error(
            F.INVALID_CONNECTION,
            f"Connection {conn}: '{tgt.node}' has no input {_port_label(tgt)}",
            node=tgt.node, port=_port_label(tgt),
        )
    return None


def _required_inputs(
    graph: WorkflowGraph,
    descriptors: Dict[str, NodeDescriptor],
    covered: Set[Tuple[str, str, int]],
) -> List[Finding]:
    out: List[Finding] = []
    for inst in graph.nodes:
        d = descriptors[inst.name]
        if d.is_trigger:
            continue
        counters: Dict[str, int] = {}
        for port in d.inputs:
            idx = counters.get(port.type, 0)
            counters[port.type] = idx + 1
            if port.required and (inst.name, port.type, idx) not in covered:
                label = f"{port.type}[{idx}]"
                out.append(F.error(
                    F.UNCONNECTED_REQUIRED_INPUT,
                    f"Required input {label} of '{inst.name}' has no incoming connection",
                    node=inst.name, port=label,
                ))
    return out


def _unreachable(
    graph: WorkflowGraph,
    descriptors: Dict[str, NodeDescriptor],
    connections: List[Connection],
) -> List[Finding]:
    inbound = {c.target.node for c in connections}
    return [
        F.warning(
            F.UNREACHABLE_NODE,
            f"'{inst.name}' is not a trigger and has no incoming connection",
            node=inst.name,
        )
        for inst in graph.nodes
        if not descriptors[inst.name].is_trigger and inst.name not in inbound
    ]


def _cycles(
    graph: WorkflowGraph,
    descriptors: Dict[str, NodeDescriptor],
    connections: List[Connection],
) -> List[Finding]:
    G = build_graph(WorkflowGraph(nodes=graph.nodes, connections=connections))
    out: List[Finding] = []
    for comp in cyclic_components(G):
        members = sorted(comp)
        if all(descriptors[name].is_loop for name in members):
            continue
        out.append(F.error(
            F.CYCLE_DETECTED,
            f"Cycle through {', '.join(members)}",
            node=members[0],
        ))
    return out
