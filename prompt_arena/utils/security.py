"""Security utilities — secret redaction and truncation for logs and error messages."""

from __future__ import annotations

import re

# Patterns that might indicate leaked secrets
SECRET_PATTERNS = [
    re.compile(r"sk-ant-[a-zA-Z0-9_-]{20,}"),  # Anthropic API key
    re.compile(r"sk-or-v1-[a-f0-9]{20,}"),  # OpenRouter API key
    re.compile(r"sk-(?:proj-)?[a-zA-Z0-9_-]{20,}"),  # OpenAI-style API key
    re.compile(r"ghp_[a-zA-Z0-9]{36}"),  # GitHub PAT
    re.compile(r"eyJ[a-zA-Z0-9_-]{50,}"),  # JWT tokens
    re.compile(r"AKIA[0-9A-Z]{16}"),  # AWS access key
    re.compile(r"(?i)bearer\s+[a-z0-9._~+/-]{16,}=*"),  # Authorization header values
]

REDACTED = "[REDACTED]"
MAX_ERROR_BODY_CHARS = 1000


def redact_secrets(text: str) -> str:
    """Replace anything that looks like a credential with a redaction marker."""
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def truncate(text: str, limit: int = MAX_ERROR_BODY_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more chars]"


def sanitise_body(text: str, limit: int = MAX_ERROR_BODY_CHARS) -> str:
    """Redact then truncate a provider response body for errors and logs."""
    return truncate(redact_secrets(text.strip()), limit)
