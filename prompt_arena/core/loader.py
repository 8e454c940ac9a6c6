"""YAML loading for prompt runtime files and provider configuration files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from prompt_arena.core.models import PromptDefinition, ProviderConfig

MAX_FILE_BYTES = 256 * 1024


class PromptFileError(ValueError):
    """A prompt or provider file could not be read or validated."""


def _read_text(path: str | Path) -> str:
    p = Path(path)
    if not p.is_file():
        raise PromptFileError(f"File not found: {p}")
    if p.stat().st_size > MAX_FILE_BYTES:
        raise PromptFileError(f"{p} exceeds {MAX_FILE_BYTES} byte limit")
    return p.read_text(encoding="utf-8")


def _parse_yaml(text: str, source: str = "<string>") -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PromptFileError(f"YAML parse error in {source}: {e}") from e


def parse_prompt(text: str, source: str = "<string>") -> PromptDefinition:
    """Validate YAML text into a ``PromptDefinition``."""
    data = _parse_yaml(text, source)
    if not isinstance(data, dict):
        raise PromptFileError(f"{source}: expected a mapping at the top level")
    try:
        return PromptDefinition.model_validate(data)
    except ValidationError as e:
        raise PromptFileError(f"Invalid prompt in {source}: {e}") from e


def load_prompt(path: str | Path) -> PromptDefinition:
    return parse_prompt(_read_text(path), source=str(path))


def load_provider_configs(path: str | Path) -> dict[str, ProviderConfig]:
    """Read ``{providers: [...]}`` into configs keyed by name."""
    data = _parse_yaml(_read_text(path), source=str(path)) or {}
    rows = data.get("providers") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        raise PromptFileError(f"{path}: expected a 'providers' list")

    configs: dict[str, ProviderConfig] = {}
    for index, row in enumerate(rows):
        try:
            config = ProviderConfig.model_validate(row)
        except ValidationError as e:
            raise PromptFileError(f"Invalid provider #{index} in {path}: {e}") from e
        if config.name in configs:
            raise PromptFileError(f"Duplicate provider name '{config.name}' in {path}")
        configs[config.name] = config
    return configs


def default_provider(configs: dict[str, ProviderConfig]) -> ProviderConfig | None:
    for config in configs.values():
        if config.is_default:
            return config
    return next(iter(configs.values()), None)
