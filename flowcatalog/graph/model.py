# flowcatalog/graph/model.py
"""
Workflow graph handed to validation and produced by the skeleton generator.

Ports are addressed as (instance name, channel type, index among that
instance's ports of the same type), the same addressing n8n uses in its
connection map.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import ValidationError, validate

from flowcatalog.catalog.model import MAIN
from flowcatalog.errors import MalformedRequest
from flowcatalog.graph.schema import GRAPH_SCHEMA, N8N_MINIMAL_SCHEMA


@dataclass(frozen=True)
class PortRef:
    node: str
    type: str = MAIN
    index: int = 0

    @classmethod
    def parse(cls, raw: Any) -> "PortRef":
        if isinstance(raw, str):
            return cls(node=raw)
        return cls(node=raw["node"], type=raw.get("type", MAIN), index=raw.get("index", 0))

    def to_dict(self) -> Dict[str, Any]:
        return {"node": self.node, "type": self.type, "index": self.index}

    def __str__(self) -> str:
        return f"{self.node}.{self.type}[{self.index}]"


@dataclass(frozen=True)
class Connection:
    source: PortRef
    target: PortRef

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source.to_dict(), "target": self.target.to_dict()}

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


@dataclass
class NodeInstance:
    name: str
    type: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    position: Optional[Tuple[float, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "parameters": copy.deepcopy(self.parameters),
        }
        if self.position is not None:
            payload["position"] = list(self.position)
        return payload


@dataclass
class WorkflowGraph:
    nodes: List[NodeInstance] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)

    def node(self, name: str) -> Optional[NodeInstance]:
        for n in self.nodes:
            if n.name == name:
                return n
        return None

    def names(self) -> List[str]:
        return [n.name for n in self.nodes]

    # ---------- plain data ----------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowGraph":
        try:
            validate(instance=data, schema=GRAPH_SCHEMA)
        except ValidationError as e:
            raise MalformedRequest(f"Invalid workflow graph: {e.message}") from e

        nodes = [
            NodeInstance(
                name=n["name"],
                type=n["type"],
                parameters=copy.deepcopy(n.get("parameters") or {}),
                position=tuple(n["position"]) if n.get("position") else None,
            )
            for n in data["nodes"]
        ]
        _check_unique_names(nodes)
        connections = [
            Connection(source=PortRef.parse(c["source"]), target=PortRef.parse(c["target"]))
            for c in data.get("connections") or []
        ]
        return cls(nodes=nodes, connections=connections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
        }

    # ---------- n8n export format ----------

    @classmethod
    def from_n8n(cls, workflow: Dict[str, Any]) -> "WorkflowGraph":
        try:
            validate(instance=workflow, schema=N8N_MINIMAL_SCHEMA)
        except ValidationError as e:
            raise MalformedRequest(f"Invalid n8n workflow: {e.message}") from e

        nodes: List[NodeInstance] = []
        for n in workflow["nodes"]:
            pos = n.get("position")
            if isinstance(pos, dict):
                pos = (pos["x"], pos["y"])
            nodes.append(NodeInstance(
                name=n["name"],
                type=n["type"],
                parameters=copy.deepcopy(n.get("parameters") or {}),
                position=tuple(pos) if pos else None,
            ))
        _check_unique_names(nodes)

        connections: List[Connection] = []
        for src_name, channels in workflow["connections"].items():
            for channel, outputs in channels.items():
                for out_idx, hops in enumerate(outputs):
                    for hop in hops or []:
                        connections.append(Connection(
                            source=PortRef(src_name, channel, out_idx),
                            target=PortRef(hop["node"], hop.get("type", channel), hop.get("index", 0)),
                        ))
        return cls(nodes=nodes, connections=connections)

    def to_n8n(self, name: str = "My workflow", type_versions: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
        type_versions = type_versions or {}
        nodes = []
        for i, n in enumerate(self.nodes):
            nodes.append({
                "id": str(uuid.uuid4()),
                "name": n.name,
                "type": n.type,
                "typeVersion": type_versions.get(n.type, 1),
                "position": list(n.position) if n.position is not None else [i * 220, 300],
                "parameters": copy.deepcopy(n.parameters),
            })

        conns: Dict[str, Dict[str, List[List[Dict[str, Any]]]]] = {}
        for c in self.connections:
            outputs = conns.setdefault(c.source.node, {}).setdefault(c.source.type, [])
            while len(outputs) <= c.source.index:
                outputs.append([])
            outputs[c.source.index].append(
                {"node": c.target.node, "type": c.target.type, "index": c.target.index}
            )
        return {"name": name, "nodes": nodes, "connections": conns}


def _check_unique_names(nodes: List[NodeInstance]) -> None:
    seen = set()
    for n in nodes:
        if n.name in seen:
            raise MalformedRequest(f"Duplicate node instance name {n.name!r}")
        seen.add(n.name)
