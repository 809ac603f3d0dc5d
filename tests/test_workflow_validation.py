# tests/test_workflow_validation.py

import pytest

from flowcatalog.errors import MalformedRequest, UnknownType
from flowcatalog.graph.model import WorkflowGraph
from flowcatalog.validation.workflow import validate_workflow


def _graph(nodes, connections=()):
    return WorkflowGraph.from_dict({
        "nodes": [{"name": n, "type": t, "parameters": p} for n, t, p in nodes],
        "connections": list(connections),
    })


def _conn(src, tgt, src_type="main", src_idx=0, tgt_type="main", tgt_idx=0):
    return {
        "source": {"node": src, "type": src_type, "index": src_idx},
        "target": {"node": tgt, "type": tgt_type, "index": tgt_idx},
    }


HOOK = ("Hook", "webhook-trigger", {})
HTTP = ("Fetch", "http-request", {"url": "https://example.com"})


def test_valid_chain(store):
    result = validate_workflow(store, _graph([HOOK, HTTP], [_conn("Hook", "Fetch")]))
    assert result.valid
    assert result.findings == []


def test_node_findings_carry_instance_name(store):
    bare = ("Fetch", "http-request", {})
    result = validate_workflow(store, _graph([HOOK, bare], [_conn("Hook", "Fetch")]))
    assert result.codes() == ["missing-required-property"]
    assert result.errors[0].node == "Fetch"
    assert result.errors[0].to_dict()["property"] == "url"


def test_dangling_node_reference(store):
    result = validate_workflow(store, _graph([HOOK, HTTP], [_conn("Hook", "Fetch"), _conn("Hook", "Ghost")]))
    assert result.codes("error") == ["invalid-connection"]
    assert result.errors[0].node == "Ghost"


def test_missing_port_is_invalid_connection(store):
    graph = _graph([HOOK, HTTP], [_conn("Hook", "Fetch"), _conn("Hook", "Fetch", src_idx=3)])
    result = validate_workflow(store, graph)
    assert result.codes("error") == ["invalid-connection"]
    # input port that the node does not declare
    graph = _graph([HOOK, HTTP], [_conn("Hook", "Fetch"), _conn("Hook", "Fetch", tgt_idx=1)])
    assert validate_workflow(store, graph).codes("error") == ["invalid-connection"]


def test_other_connections_still_checked_after_invalid_one(store):
    graph = _graph(
        [HOOK, HTTP, ("Agent", "ai-agent", {})],
        [_conn("Hook", "Fetch"), _conn("Ghost", "Fetch"), _conn("Fetch", "Agent", tgt_type="ai_languageModel")],
    )
    codes = validate_workflow(store, graph).codes("error")
    assert codes == ["invalid-connection", "incompatible-ports", "unconnected-required-input", "unconnected-required-input"]


def test_incompatible_ports(store):
    graph = _graph(
        [("Model", "chat-model", {}), ("Agent", "ai-agent", {}), HOOK],
        [_conn("Hook", "Agent"), _conn("Model", "Agent", src_type="ai_languageModel", tgt_type="main")],
    )
    result = validate_workflow(store, graph)
    # both ports exist; only their channel types differ
    assert "incompatible-ports" in result.codes("error")
    assert "unconnected-required-input" in result.codes("error")


def test_named_channel_connection(store):
    graph = _graph(
        [HOOK, ("Model", "chat-model", {}), ("Agent", "ai-agent", {})],
        [
            _conn("Hook", "Agent"),
            _conn("Model", "Agent", src_type="ai_languageModel", tgt_type="ai_languageModel"),
        ],
    )
    result = validate_workflow(store, graph)
    assert result.valid
    # sub-nodes feed their parent; they have no inbound edge of their own
    assert result.codes("warning") == ["unreachable-node"]


def test_one_finding_per_unconnected_required_port(store):
    graph = _graph([HOOK, ("Join", "merge", {})], [_conn("Hook", "Join")])
    result = validate_workflow(store, graph)
    assert result.codes("error") == ["unconnected-required-input"]
    assert result.errors[0].port == "main[1]"

    graph = _graph([("Join", "merge", {})])
    result = validate_workflow(store, graph)
    assert result.codes("error") == ["unconnected-required-input"] * 2


def test_fixing_the_input_clears_the_finding(store):
    broken = _graph([HOOK, HTTP])
    assert validate_workflow(store, broken).codes("error") == ["unconnected-required-input"]
    fixed = _graph([HOOK, HTTP], [_conn("Hook", "Fetch")])
    assert "unconnected-required-input" not in validate_workflow(store, fixed).codes()


def test_triggers_need_no_inputs(store):
    result = validate_workflow(store, _graph([HOOK]))
    assert result.findings == []


def test_unreachable_node_is_a_warning(store):
    graph = _graph([HOOK, HTTP, ("Fields", "set-fields", {})], [_conn("Hook", "Fetch")])
    result = validate_workflow(store, graph)
    assert result.valid
    assert result.codes() == ["unreachable-node"]
    assert result.warnings[0].node == "Fields"


def test_self_loop_on_regular_node_is_a_cycle(store):
    graph = _graph(
        [HOOK, ("Fields", "set-fields", {})],
        [_conn("Hook", "Fields"), _conn("Fields", "Fields")],
    )
    result = validate_workflow(store, graph)
    assert result.codes() == ["cycle-detected"]


def test_self_loop_on_loop_node_is_allowed(store):
    graph = _graph(
        [HOOK, ("Loop", "batch-loop", {})],
        [_conn("Hook", "Loop"), _conn("Loop", "Loop", src_idx=1)],
    )
    result = validate_workflow(store, graph)
    assert result.findings == []


def test_cycle_through_regular_nodes(store):
    graph = _graph(
        [HOOK, ("A", "set-fields", {}), ("B", "set-fields", {}), ("Loop", "batch-loop", {})],
        [_conn("Hook", "A"), _conn("A", "B"), _conn("B", "A"), _conn("Hook", "Loop"), _conn("Loop", "Loop", src_idx=1)],
    )
    result = validate_workflow(store, graph)
    assert result.codes() == ["cycle-detected"]
    assert "A, B" in result.errors[0].message


def test_duplicate_connections_are_collapsed(store):
    graph = _graph([HOOK, HTTP], [_conn("Hook", "Fetch"), _conn("Hook", "Fetch"), _conn("Hook", "Fetch")])
    result = validate_workflow(store, graph)
    assert result.valid
    assert result.codes() == ["duplicate-connection"]


def test_unknown_instance_type(store):
    with pytest.raises(UnknownType):
        validate_workflow(store, _graph([("X", "teleporter", {})]))


def test_duplicate_instance_names_rejected():
    with pytest.raises(MalformedRequest):
        _graph([HOOK, ("Hook", "http-request", {})])


def test_malformed_graph_rejected():
    with pytest.raises(MalformedRequest):
        WorkflowGraph.from_dict({"nodes": [{"name": "x"}]})
    with pytest.raises(MalformedRequest):
        WorkflowGraph.from_dict({"nodes": [], "connections": [{"source": "a"}]})


def test_shorthand_port_refs(store):
    graph = WorkflowGraph.from_dict({
        "nodes": [{"name": "Hook", "type": "webhook-trigger"}, {"name": "Fetch", "type": "http-request",
                                                                "parameters": {"url": "https://x"}}],
        "connections": [{"source": "Hook", "target": "Fetch"}],
    })
    assert validate_workflow(store, graph).valid


def test_n8n_export_round_trip(store):
    n8n = {
        "name": "demo",
        "nodes": [
            {"id": "1", "name": "Hook", "type": "n8n-nodes-base.webhook", "position": [0, 0], "parameters": {}},
            {"id": "2", "name": "Fetch", "type": "n8n-nodes-base.httpRequest", "position": {"x": 200, "y": 0},
             "parameters": {"url": "https://x"}},
        ],
        "connections": {"Hook": {"main": [[{"node": "Fetch", "type": "main", "index": 0}]]}},
    }
    graph = WorkflowGraph.from_n8n(n8n)
    assert [str(c) for c in graph.connections] == ["Hook.main[0] -> Fetch.main[0]"]
    assert graph.node("Fetch").position == (200, 0)

    back = graph.to_n8n(name="demo")
    assert back["connections"] == n8n["connections"]
    assert WorkflowGraph.from_n8n(back).to_dict() == graph.to_dict()


def test_n8n_schema_rejects_bad_export():
    with pytest.raises(MalformedRequest):
        WorkflowGraph.from_n8n({"nodes": [{"name": "x", "type": "noPackage"}], "connections": {}})
