"""
JSON schemas for configuration validation.
"""

CLIENT_SCHEMA = {
    "type": "object",
    "properties": {
        "project_key": {"type": ["string", "null"], "pattern": "^[A-Za-z0-9_.~-]+$"},
        "base_url": {"type": "string", "pattern": "^https?://"},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "user_agent": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_requests": {"type": "boolean"},
        "log_responses": {"type": "boolean"},
        "redact_api_keys": {"type": "boolean"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "client": CLIENT_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
}
