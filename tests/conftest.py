# tests/conftest.py

import copy

import pytest

from flowcatalog.catalog.builder import build_store
from flowcatalog.search.index import SearchIndex

MAIN_IN = {"type": "main", "required": True}
MAIN_OUT = {"type": "main"}

RECORDS = [
    {
        "name": "webhook-trigger",
        "displayName": "Webhook Trigger",
        "description": "Starts the workflow on an incoming HTTP call",
        "category": "Core",
        "triggerNode": True,
        "webhookSupport": True,
        "outputs": [MAIN_OUT],
    },
    {
        "name": "http-request",
        "displayName": "HTTP Request",
        "description": "Calls any URL and returns the response",
        "category": "Core",
        "aliases": ["api", "rest"],
        "inputs": [MAIN_IN],
        "outputs": [MAIN_OUT],
        "properties": [
            {"name": "url", "type": "string", "required": True},
            {"name": "method", "type": "options", "default": "GET", "options": ["GET", "POST"]},
            {"name": "timeout", "type": "number", "default": 1000,
             "typeOptions": {"minValue": 1, "maxValue": 60000}},
            {"name": "followRedirects", "type": "boolean", "default": True},
            {"name": "headers", "type": "collection", "default": {}},
            {"name": "tags", "type": "multiOptions", "default": [], "options": ["a", "b"]},
        ],
    },
    {
        "name": "slack-trigger",
        "displayName": "Slack Trigger",
        "description": "Starts when events occur in a workspace",
        "category": "Communication",
        "triggerNode": True,
        "aliases": ["slack"],
        "outputs": [MAIN_OUT],
        "credentials": ["slackApi"],
    },
    {
        "name": "mailer",
        "displayName": "Mailer",
        "description": "Sends mail and can forward a copy to slack channels",
        "category": "Communication",
        "inputs": [MAIN_IN],
        "outputs": [MAIN_OUT],
        "credentials": [{"name": "smtp", "required": True}, {"name": "dkim", "required": False}],
        "properties": [
            {"name": "to", "type": "string", "required": True},
            {"name": "format", "type": "options", "required": True, "default": "text",
             "options": [{"name": "Text", "value": "text"}, {"name": "HTML", "value": "html"}]},
        ],
    },
    {
        "name": "batch-loop",
        "displayName": "Batch Loop",
        "description": "Iterate over items in batches",
        "category": "Flow",
        "loopNode": True,
        "inputs": [MAIN_IN],
        "outputs": [{"type": "main", "displayName": "done"}, {"type": "main", "displayName": "loop"}],
    },
    {
        "name": "set-fields",
        "displayName": "Set Fields",
        "description": "Sets fields on every item",
        "category": "Data",
        "inputs": [{"type": "main"}],
        "outputs": [MAIN_OUT],
    },
    {
        "name": "merge",
        "displayName": "Merge",
        "description": "Joins two streams",
        "category": "Flow",
        "inputs": [MAIN_IN, MAIN_IN],
        "outputs": [MAIN_OUT],
    },
    {
        "name": "ai-agent",
        "displayName": "AI Agent",
        "description": "Plans and runs tools with a language model",
        "category": "AI",
        "inputs": [MAIN_IN, {"type": "ai_languageModel", "required": True}, {"type": "ai_tool"}],
        "outputs": [MAIN_OUT],
    },
    {
        "name": "chat-model",
        "displayName": "Chat Model",
        "description": "Language model for agents",
        "category": "AI",
        "outputs": [{"type": "ai_languageModel"}],
        "credentials": ["openAiApi"],
    },
    {
        "name": "feed-poller",
        "displayName": "Feed Poller",
        "description": "Checks a feed on a schedule",
        "category": "Core",
        "triggerNode": True,
        "polling": True,
        "outputs": [MAIN_OUT],
    },
]


@pytest.fixture
def records():
    return copy.deepcopy(RECORDS)


@pytest.fixture
def store(records):
    built, _report = build_store([("test", records)])
    return built


@pytest.fixture
def index(store):
    return SearchIndex(store)
