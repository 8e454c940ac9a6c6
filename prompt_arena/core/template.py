"""Template substitution — fills ``{{variable}}`` placeholders, all-or-nothing."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable, Mapping

from prompt_arena.core.errors import MissingVariablesError

if TYPE_CHECKING:
    from prompt_arena.core.models import Message

VARIABLE_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")


def find_variables(text: str) -> list[str]:
    """Return placeholder names in first-seen order, without duplicates."""
    return list(dict.fromkeys(VARIABLE_PATTERN.findall(text)))


def substitute(template: str, variables: Mapping[str, str]) -> str:
    """Replace every placeholder in ``template``.

    Raises ``MissingVariablesError`` naming every unresolved placeholder.
    Substitution is a single pass, so values containing ``{{...}}`` are
    inserted literally.
    """
    missing = [name for name in find_variables(template) if name not in variables]
    if missing:
        raise MissingVariablesError(missing)
    return VARIABLE_PATTERN.sub(lambda match: str(variables[match.group(1)]), template)


def substitute_messages(messages: Iterable[Message], variables: Mapping[str, str]) -> list[Message]:
    """Substitute every message, collecting missing names across all of them first."""
    rendered: list[Message] = []
    missing: list[str] = []
    for message in messages:
        try:
            content = substitute(message.content, variables)
        except MissingVariablesError as exc:
            missing.extend(exc.names)
            continue
        rendered.append(message.model_copy(update={"content": content}))
    if missing:
        raise MissingVariablesError(missing)
    return rendered
