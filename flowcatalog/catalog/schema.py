# flowcatalog/catalog/schema.py
# Shape of one node descriptor record as produced by the catalog generator.
_PORT = {
    "type": "object",
    "required": ["type"],
    "properties": {
        # "main" or a named auxiliary channel such as "ai_languageModel"
        "type": {"type": "string", "minLength": 1},
        "displayName": {"type": "string"},
        "required": {"type": "boolean"},
    },
    "additionalProperties": True,
}

_OPTION = {
    "anyOf": [
        {
            "type": "object",
            "required": ["value"],
            "properties": {
                "name": {"type": "string"},
                "value": {"type": ["string", "number", "boolean"]},
            },
            "additionalProperties": True,
        },
        # bare literals are accepted too
        {"type": ["string", "number", "boolean"]},
    ]
}

_PROPERTY = {
    "type": "object",
    "required": ["name", "type"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "displayName": {"type": "string"},
        "type": {"type": "string", "minLength": 1},
        "required": {"type": "boolean"},
        "options": {"type": "array", "items": _OPTION},
        "typeOptions": {"type": "object"},
        "description": {"type": "string"},
    },
    "additionalProperties": True,
}

_CREDENTIAL = {
    "anyOf": [
        {"type": "string", "minLength": 1},
        {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "required": {"type": "boolean"},
            },
            "additionalProperties": True,
        },
    ]
}

DESCRIPTOR_SCHEMA = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "displayName": {"type": "string"},
        "description": {"type": "string"},
        "category": {"type": "string"},
        "subcategory": {"type": ["string", "null"]},
        "properties": {"type": "array", "items": _PROPERTY},
        "inputs": {"type": "array", "items": _PORT},
        "outputs": {"type": "array", "items": _PORT},
        "credentials": {"type": "array", "items": _CREDENTIAL},
        "triggerNode": {"type": "boolean"},
        "polling": {"type": "boolean"},
        "webhookSupport": {"type": "boolean"},
        "loopNode": {"type": "boolean"},
        "aliases": {"type": "array", "items": {"type": "string"}},
        "version": {
            "anyOf": [
                {"type": "number"},
                {"type": "array", "items": {"type": "number"}},
            ]
        },
    },
    "additionalProperties": True,
}

# A catalog file is either a bare list of records or {"nodes": [...]}.
CATALOG_SCHEMA = {
    "anyOf": [
        {"type": "array", "items": {"type": "object"}},
        {
            "type": "object",
            "required": ["nodes"],
            "properties": {"nodes": {"type": "array", "items": {"type": "object"}}},
        },
    ]
}
