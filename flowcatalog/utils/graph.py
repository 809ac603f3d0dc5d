# flowcatalog/utils/graph.py
from typing import List, Set

import networkx as nx

from flowcatalog.graph.model import WorkflowGraph


def build_graph(workflow: WorkflowGraph) -> nx.DiGraph:
    """
    Instance-level directed graph: one node per instance name, one edge per
    connected (source, target) pair. Connections naming unknown instances
    are skipped; the validator reports those separately.
    """
    G = nx.DiGraph()
    for n in workflow.nodes:
        G.add_node(n.name, type=n.type)

    for c in workflow.connections:
        src, tgt = c.source.node, c.target.node
        if src not in G or tgt not in G:
            continue
        G.add_edge(src, tgt)
    return G


def cyclic_components(G: nx.DiGraph) -> List[Set[str]]:
    """
    Node sets that lie on a directed cycle: every SCC with more than one
    node, plus single nodes wired to themselves.
    """
    comps: List[Set[str]] = []
    for comp in nx.strongly_connected_components(G):
        if len(comp) > 1:
            comps.append(set(comp))
            continue
        (only,) = comp
        if G.has_edge(only, only):
            comps.append({only})
    # deterministic order for reporting
    comps.sort(key=lambda c: sorted(c))
    return comps
