# flowcatalog/graph/schema.py
_PORT_REF = {
    "anyOf": [
        # shorthand: bare instance name means its first "main" port
        {"type": "string", "minLength": 1},
        {
            "type": "object",
            "required": ["node"],
            "properties": {
                "node": {"type": "string", "minLength": 1},
                "type": {"type": "string", "minLength": 1},
                "index": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": False,
        },
    ]
}

_POSITION = {
    "type": "array",
    "items": {"type": "number"},
    "minItems": 2,
    "maxItems": 2,
}

GRAPH_SCHEMA = {
    "type": "object",
    "required": ["nodes"],
    "properties": {
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "type"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "type": {"type": "string", "minLength": 1},
                    "parameters": {"type": "object"},
                    "position": _POSITION,
                },
                "additionalProperties": True,
            },
        },
        "connections": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["source", "target"],
                "properties": {"source": _PORT_REF, "target": _PORT_REF},
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": True,
}

# n8n export format. Connections are keyed by source node name, then by
# output channel ("main", "ai_tool", ...); the outer list index is the
# output index and each hop names the target node, channel and input index.
N8N_MINIMAL_SCHEMA = {
    "type": "object",
    "required": ["nodes", "connections"],
    "properties": {
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "type"],
                "properties": {
                    "id": {
                        "type": ["string", "number"]
                    },
                    "name": {
                        "type": "string",
                        "minLength": 1
                    },
                    "type": {
                        "type": "string",
                        # package-qualified type, e.g. n8n-nodes-base.httpRequest
                        "pattern": "^[@A-Za-z0-9_/-]+\\.[A-Za-z0-9_.-]+$"
                    },
                    "parameters": {
                        "type": "object"
                    },
                    "typeVersion": {
                        "type": ["integer", "number"]
                    },
                    "position": {
                        "anyOf": [
                            _POSITION,
                            {
                                "type": "object",
                                "properties": {
                                    "x": {"type": "number"},
                                    "y": {"type": "number"}
                                },
                                "required": ["x", "y"],
                                "additionalProperties": True
                            }
                        ]
                    }
                },
                "additionalProperties": True
            }
        },

        "connections": {
            "type": "object",
            "patternProperties": {
                "^.+$": {
                    "type": "object",
                    "patternProperties": {
                        "^.+$": {
                            "type": "array",
                            "items": {
                                "anyOf": [
                                    {"type": "null"},
                                    {
                                        "type": "array",
                                        "items": {
                                            "type": "object",
                                            "required": ["node"],
                                            "properties": {
                                                "node": {"type": "string"},
                                                "type": {"type": "string"},
                                                "index": {
                                                    "type": "integer",
                                                    "minimum": 0
                                                }
                                            },
                                            "additionalProperties": True
                                        }
                                    }
                                ]
                            }
                        }
                    },
                    "additionalProperties": False
                }
            },
            "additionalProperties": False
        }
    }
}
