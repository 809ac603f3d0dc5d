# tests/test_cli.py

import json

import pytest
from typer.testing import CliRunner

from flowcatalog.cli import app
from conftest import RECORDS

runner = CliRunner()
ENV = {"LOG_LEVEL": "ERROR", "FLOWCATALOG_REMOTE_URL": ""}


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "nodes.json"
    path.write_text(json.dumps({"nodes": RECORDS}), encoding="utf-8")
    return path


def invoke(catalog_file, *args):
    return runner.invoke(app, ["--catalog", str(catalog_file), *args], env=ENV)


def payload(result):
    return json.loads(result.stdout)


def test_search(catalog_file):
    result = invoke(catalog_file, "search", "slack")
    assert result.exit_code == 0
    body = payload(result)
    assert body["results"][0] == "slack-trigger"
    assert body["catalog"]["node_count"] == len(RECORDS)


def test_search_with_filters(catalog_file):
    result = invoke(catalog_file, "search", "--kind", "trigger", "--capability", "polling")
    assert payload(result)["results"] == ["feed-poller"]


def test_suggest_and_complete(catalog_file):
    assert payload(invoke(catalog_file, "suggest", "-t", "chat-model"))["results"] == ["ai-agent"]
    assert payload(invoke(catalog_file, "complete", "sl"))["results"] == ["Slack Trigger", "slack"]


def test_suggest_needs_context(catalog_file):
    result = invoke(catalog_file, "suggest")
    assert result.exit_code == 2


def test_validate_node_exit_codes(catalog_file):
    ok = invoke(catalog_file, "validate-node", "http-request", "--params", '{"url": "https://x"}')
    assert ok.exit_code == 0
    assert payload(ok)["valid"] is True

    bad = invoke(catalog_file, "validate-node", "http-request", "--params", "{}")
    assert bad.exit_code == 1
    assert payload(bad)["findings"][0]["code"] == "missing-required-property"


def test_unknown_type_is_an_input_error(catalog_file):
    result = invoke(catalog_file, "validate-node", "http-reqest")
    assert result.exit_code == 2
    error = payload(result)["error"]
    assert error["code"] == "unknown-type"
    assert error["suggestions"][0] == "http-request"


def test_params_must_be_json(catalog_file):
    result = invoke(catalog_file, "validate-node", "http-request", "--params", "{url")
    assert result.exit_code == 2


def test_validate_workflow_file(catalog_file, tmp_path):
    graph = {
        "nodes": [{"name": "Hook", "type": "webhook-trigger"}, {"name": "Join", "type": "merge"}],
        "connections": [{"source": "Hook", "target": "Join"}],
    }
    path = tmp_path / "wf.json"
    path.write_text(json.dumps(graph), encoding="utf-8")

    result = invoke(catalog_file, "validate", str(path))
    assert result.exit_code == 1
    assert payload(result)["error_count"] == 1

    report = invoke(catalog_file, "validate", str(path), "--report")
    assert report.exit_code == 1
    assert "ERRORS (1):" in report.stdout
    assert "[unconnected-required-input]" in report.stdout


def test_validate_yaml_workflow(catalog_file, tmp_path):
    path = tmp_path / "wf.yaml"
    path.write_text(
        "nodes:\n"
        "  - {name: Hook, type: webhook-trigger}\n"
        "  - {name: Fetch, type: http-request, parameters: {url: 'https://x'}}\n"
        "connections:\n"
        "  - {source: Hook, target: Fetch}\n",
        encoding="utf-8",
    )
    result = invoke(catalog_file, "validate", str(path))
    assert result.exit_code == 0
    assert payload(result)["valid"] is True


def test_skeleton_out(catalog_file, tmp_path):
    out = tmp_path / "gen" / "skeleton.json"
    result = invoke(catalog_file, "skeleton", "http-request", "webhook-trigger", "--out", str(out), "--n8n")
    assert result.exit_code == 0
    written = json.loads(out.read_text(encoding="utf-8"))
    assert [n["name"] for n in written["nodes"]] == ["Webhook Trigger", "HTTP Request"]
    assert "Webhook Trigger" in written["connections"]


def test_skeleton_output_validates(catalog_file, tmp_path):
    out = tmp_path / "skeleton.json"
    invoke(catalog_file, "skeleton", "webhook-trigger", "http-request", "--out", str(out))
    check = invoke(catalog_file, "validate", str(out))
    assert check.exit_code == 1
    assert [f["code"] for f in payload(check)["findings"]] == ["missing-required-property"]


def test_skeleton_with_hints(catalog_file):
    hints = json.dumps({"parameters": {"http-request": {"url": "https://x"}}})
    result = invoke(catalog_file, "skeleton", "webhook-trigger", "http-request", "--hints", hints)
    assert result.exit_code == 0
    assert payload(result)["notes"] == []


def test_catalog_stats_and_describe(catalog_file):
    stats = payload(invoke(catalog_file, "catalog"))["stats"]
    assert stats["node_count"] == len(RECORDS)
    node = payload(invoke(catalog_file, "catalog", "--type", "mailer"))["node"]
    assert node["credentials"][0] == {"name": "smtp", "required": True}


def test_catalog_refresh(catalog_file):
    body = payload(invoke(catalog_file, "catalog", "--refresh"))
    assert body["report"]["total"] == len(RECORDS)
    assert body["catalog"]["stale"] is False


def test_bad_config_file(catalog_file, tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("nonsense: 1\n", encoding="utf-8")
    result = runner.invoke(app, ["--config", str(cfg), "--catalog", str(catalog_file), "catalog"], env=ENV)
    assert result.exit_code == 2
