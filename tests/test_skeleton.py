# tests/test_skeleton.py

import itertools

import pytest

from flowcatalog.errors import MalformedRequest, UnknownType
from flowcatalog.generator.skeleton import SkeletonHints, generate_skeleton, unique_name
from flowcatalog.graph.model import WorkflowGraph
from flowcatalog.validation.workflow import validate_workflow


def _edges(skeleton):
    return [str(c) for c in skeleton.graph.connections]


def _notes(skeleton):
    return [(n.code, n.node) for n in skeleton.notes]


def test_webhook_then_http_request(store):
    sk = generate_skeleton(store, ["webhook-trigger", "http-request"])

    assert _edges(sk) == ["Webhook Trigger.main[0] -> HTTP Request.main[0]"]
    assert _notes(sk) == [("needs-configuration", "HTTP Request")]
    assert sk.notes[0].prop == "url"

    result = validate_workflow(store, sk.graph)
    assert result.codes("error") == ["missing-required-property"]
    assert result.errors[0].prop == "url"


def test_trigger_is_moved_to_the_front(store):
    sk = generate_skeleton(store, ["set-fields", "http-request", "webhook-trigger"])
    assert sk.graph.names() == ["Webhook Trigger", "Set Fields", "HTTP Request"]
    assert _edges(sk) == [
        "Webhook Trigger.main[0] -> Set Fields.main[0]",
        "Set Fields.main[0] -> HTTP Request.main[0]",
    ]


def test_extra_triggers_are_demoted(store):
    sk = generate_skeleton(store, ["webhook-trigger", "set-fields", "slack-trigger"])
    assert _edges(sk) == ["Webhook Trigger.main[0] -> Set Fields.main[0]"]
    assert ("extra-trigger", "Slack Trigger") in _notes(sk)
    assert not any(n.is_error for n in sk.notes)


def test_same_trigger_twice(store):
    sk = generate_skeleton(store, ["webhook-trigger", "webhook-trigger", "set-fields"])
    assert sk.graph.names() == ["Webhook Trigger", "Webhook Trigger1", "Set Fields"]
    assert _notes(sk) == [("extra-trigger", "Webhook Trigger1")]
    assert _edges(sk) == ["Webhook Trigger.main[0] -> Set Fields.main[0]"]


def test_instance_names_get_numeric_suffix(store):
    sk = generate_skeleton(store, ["set-fields"] * 3)
    assert sk.graph.names() == ["Set Fields", "Set Fields1", "Set Fields2"]
    assert len(sk.graph.connections) == 2


def test_unique_name():
    assert unique_name("Slack", set()) == "Slack"
    assert unique_name("Slack", {"Slack"}) == "Slack1"
    assert unique_name("Slack", {"Slack", "Slack1"}) == "Slack2"


def test_defaults_and_credentials(store):
    sk = generate_skeleton(store, ["mailer"])
    node = sk.graph.node("Mailer")
    assert node.parameters == {"format": "text"}
    assert _notes(sk) == [("needs-configuration", "Mailer"), ("needs-credentials", "Mailer")]
    assert "smtp" in sk.notes[1].message


def test_hints(store):
    hints = SkeletonHints.from_dict({
        "parameters": {"http-request": {"url": "https://example.com"}},
        "names": {"HTTP-Request": "Fetch"},
        "spacing": 100,
    })
    sk = generate_skeleton(store, ["webhook-trigger", "http-request"], hints)
    assert sk.graph.names() == ["Webhook Trigger", "Fetch"]
    assert sk.graph.node("Fetch").parameters == {"url": "https://example.com"}
    assert sk.graph.node("Fetch").position == (100, 300)
    assert sk.notes == []
    assert validate_workflow(store, sk.graph).findings == []


@pytest.mark.parametrize(
    "hints",
    [{"spacing": -5}, {"spacing": True}, {"names": {"x": ""}}, {"parameters": {"x": 1}}, []],
)
def test_bad_hints(hints):
    with pytest.raises(MalformedRequest):
        SkeletonHints.from_dict(hints)


def test_sub_nodes_are_wired_on_their_channel(store):
    sk = generate_skeleton(store, ["webhook-trigger", "ai-agent", "chat-model"])
    assert _edges(sk) == [
        "Webhook Trigger.main[0] -> AI Agent.main[0]",
        "Chat Model.ai_languageModel[0] -> AI Agent.ai_languageModel[0]",
    ]
    assert sk.graph.node("Chat Model").position[1] != sk.graph.node("AI Agent").position[1]
    assert validate_workflow(store, sk.graph).valid


def test_sub_node_without_consumer_is_noted(store):
    sk = generate_skeleton(store, ["webhook-trigger", "chat-model"])
    assert sk.graph.connections == []
    assert ("not-wired", "Chat Model") in _notes(sk)


def test_unknown_type_fails_the_whole_request(store):
    with pytest.raises(UnknownType):
        generate_skeleton(store, ["webhook-trigger", "teleporter"])


def test_type_names_must_be_a_list(store):
    with pytest.raises(MalformedRequest):
        generate_skeleton(store, "webhook-trigger")


def test_empty_request(store):
    sk = generate_skeleton(store, [])
    assert sk.graph.nodes == [] and sk.notes == []


@pytest.mark.parametrize(
    "types",
    list(itertools.permutations(["webhook-trigger", "merge", "chat-model", "ai-agent"], 3))
    + [["slack-trigger", "mailer", "batch-loop", "feed-poller", "set-fields"]],
)
def test_auto_wiring_never_breaks_connections(store, types):
    sk = generate_skeleton(store, list(types))
    codes = validate_workflow(store, sk.graph).codes("error")
    assert "invalid-connection" not in codes
    assert "incompatible-ports" not in codes


def test_plain_and_n8n_output(store):
    sk = generate_skeleton(store, ["webhook-trigger", "http-request"])
    plain = sk.to_dict()
    assert plain["notes"][0]["code"] == "needs-configuration"
    assert WorkflowGraph.from_dict(plain["graph"]).to_dict() == plain["graph"]

    n8n = sk.to_n8n("demo")
    assert n8n["connections"] == {
        "Webhook Trigger": {"main": [[{"node": "HTTP Request", "type": "main", "index": 0}]]}
    }
    assert [n["typeVersion"] for n in n8n["nodes"]] == [1, 1]
    assert [n["position"] for n in n8n["nodes"]] == [[0, 300], [220, 300]]
