"""Translate execution errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from prompt_arena.core.errors import PromptArenaError

STATUS_BY_KIND = {
    "missing_variables": 422,
    "credential_missing": 400,
    "unsupported_provider": 400,
    "credential_store_unavailable": 503,
    "api_error": 502,
    "transport": 502,
    "response_shape": 502,
    "timeout": 504,
}


def to_http_exception(error: PromptArenaError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND.get(error.kind, 500), detail=error.as_dict())
