"""PromptArena CLI — arena command."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import click

from prompt_arena.config import Settings, get_settings
from prompt_arena.core.arena import Arena
from prompt_arena.core.credentials import DirectorySecretStore, credential_status
from prompt_arena.core.errors import PromptArenaError
from prompt_arena.core.executor import Executor, build_executor
from prompt_arena.core.loader import PromptFileError, default_provider, load_prompt, load_provider_configs
from prompt_arena.core.models import (
    DirectCredential,
    EnvCredential,
    ProviderConfig,
    ProviderKind,
    SecretStoreCredential,
)
from prompt_arena.core.pricing import PRICE_TABLE
from prompt_arena.providers.catalog import ModelCatalog
from prompt_arena.providers.dispatcher import get_route
from prompt_arena.utils.logging import setup_logging


def _format_table(rows: list[dict], columns: list[str]) -> str:
    """Simple table formatter."""
    if not rows:
        return "No results."
    widths = {c: len(c) for c in columns}
    for row in rows:
        for c in columns:
            widths[c] = max(widths[c], len(_cell(row.get(c))))

    header = "  ".join(c.upper().ljust(widths[c]) for c in columns)
    separator = "  ".join("-" * widths[c] for c in columns)
    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(_cell(row.get(c)).ljust(widths[c]) for c in columns))
    return "\n".join(lines)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.6f}"
    return str(value).replace("\n", " ")


def _output(ctx: click.Context, data: Any, columns: list[str] | None = None) -> None:
    fmt = ctx.meta.get("output_format", "table")
    if fmt == "json":
        click.echo(json.dumps(data, indent=2, default=str))
    elif isinstance(data, list) and columns:
        click.echo(_format_table(data, columns))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


def _parse_variables(pairs: tuple[str, ...]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got '{pair}'", param_hint="--var")
        variables[name.strip()] = value
    return variables


def _credential_option(api_key: str | None, api_key_env: str | None, secret: str | None):
    chosen = [v for v in (api_key, api_key_env, secret) if v is not None]
    if len(chosen) > 1:
        raise click.UsageError("Use only one of --api-key, --api-key-env and --secret")
    if api_key is not None:
        return DirectCredential(value=api_key)
    if api_key_env is not None:
        return EnvCredential(name=api_key_env)
    if secret is not None:
        return SecretStoreCredential(key=secret)
    return None


def credential_options(f):
    f = click.option("--secret", default=None, help="Secret store key holding the API key")(f)
    f = click.option("--api-key-env", default=None, help="Environment variable holding the API key")(f)
    f = click.option("--api-key", default=None, help="API key value")(f)
    return f


def _run(coro):
    try:
        return asyncio.run(coro)
    except PromptArenaError as e:
        raise click.ClickException(f"[{e.kind}] {e}")


def _load_prompt(path: str):
    try:
        return load_prompt(path)
    except PromptFileError as e:
        raise click.ClickException(str(e))


def _load_configs(path: str) -> dict[str, ProviderConfig]:
    try:
        return load_provider_configs(path)
    except PromptFileError as e:
        raise click.ClickException(str(e))


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj


@click.group()
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.option("--log-level", default="ERROR", envvar="PROMPT_ARENA_CLI_LOG_LEVEL", help="Log level")
@click.option("--secrets-dir", default=None, help="Directory secret store root")
@click.pass_context
def cli(ctx: click.Context, output_format: str, log_level: str, secrets_dir: str | None) -> None:
    """PromptArena CLI — run prompts and compare providers."""
    setup_logging(log_level, cache_loggers=False)
    settings = get_settings()
    if secrets_dir:
        settings = settings.model_copy(update={"secrets_dir": secrets_dir})
    ctx.obj = settings
    ctx.meta["output_format"] = output_format


# --- Execution ---


@cli.command()
@click.argument("prompt_file", type=click.Path(dir_okay=False))
@click.option("--var", "-v", "pairs", multiple=True, help="Template variable NAME=VALUE")
@credential_options
@click.option("--base-url", default=None, help="Override the provider base URL")
@click.option("--config", "-c", "config_file", default=None, type=click.Path(dir_okay=False))
@click.option("--provider", "-p", "target_name", default=None, help="Provider config name (default: the default one)")
@click.pass_context
def run(
    ctx: click.Context,
    prompt_file: str,
    pairs: tuple[str, ...],
    api_key: str | None,
    api_key_env: str | None,
    secret: str | None,
    base_url: str | None,
    config_file: str | None,
    target_name: str | None,
) -> None:
    """Execute a prompt file once, optionally against a named provider configuration."""
    prompt = _load_prompt(prompt_file)
    variables = _parse_variables(pairs)
    source = _credential_option(api_key, api_key_env, secret)
    executor: Executor = build_executor(_settings(ctx))

    if config_file is None:
        if target_name is not None:
            raise click.UsageError("--provider needs --config")
        result = _run(executor.execute(prompt, variables, source, base_url))
    else:
        configs = _load_configs(config_file)
        if target_name is None:
            target = default_provider(configs)
            if target is None:
                raise click.ClickException(f"No provider configs in {config_file}")
        elif target_name in configs:
            target = configs[target_name]
        else:
            raise click.ClickException(f"Unknown provider config(s): {target_name}")
        overrides: dict[str, Any] = {}
        if source is not None:
            overrides["credential"] = source
        if base_url:
            overrides["base_url"] = base_url
        if overrides:
            target = target.model_copy(update=overrides)
        result = _run(executor.execute_with_config(prompt, variables, target))
    if ctx.meta.get("output_format") == "json":
        _output(ctx, result.model_dump())
        return
    meta = result.metadata
    click.echo(result.output)
    click.echo(
        f"\n[{meta.provider}/{meta.model}] {meta.latency_ms} ms, "
        f"{meta.tokens_input} in / {meta.tokens_output} out, ${meta.cost_usd:.6f}",
        err=True,
    )


@cli.command()
@click.argument("prompt_file", type=click.Path(dir_okay=False))
@click.pass_context
def variables(ctx: click.Context, prompt_file: str) -> None:
    """List the variables a prompt file needs."""
    prompt = _load_prompt(prompt_file)
    names = prompt.extract_variables()
    if ctx.meta.get("output_format") == "json":
        _output(ctx, names)
        return
    if not names:
        click.echo("No variables.")
    for name in names:
        click.echo(name)


@cli.command()
@click.argument("prompt_file", type=click.Path(dir_okay=False))
@click.option("--config", "-c", "config_file", required=True, type=click.Path(dir_okay=False))
@click.option("--provider", "-p", "names", multiple=True, help="Provider config name (default: all)")
@click.option("--var", "-v", "pairs", multiple=True, help="Template variable NAME=VALUE")
@click.pass_context
def compare(
    ctx: click.Context,
    prompt_file: str,
    config_file: str,
    names: tuple[str, ...],
    pairs: tuple[str, ...],
) -> None:
    """Run a prompt against several provider configurations side by side."""
    settings = _settings(ctx)
    prompt = _load_prompt(prompt_file)
    variables = _parse_variables(pairs)
    configs = _load_configs(config_file)

    unknown = [n for n in names if n not in configs]
    if unknown:
        raise click.ClickException(f"Unknown provider config(s): {', '.join(unknown)}")
    targets = [configs[n] for n in names] if names else list(configs.values())

    arena = Arena(
        build_executor(settings),
        max_concurrent=settings.arena_max_concurrent,
        cost_warning_threshold=settings.cost_warning_threshold,
    )
    report = _run(arena.compare(prompt, variables, targets))

    if ctx.meta.get("output_format") == "json":
        _output(
            ctx,
            {
                "outcomes": [o.as_dict() for o in report.outcomes],
                "total_cost_usd": report.total_cost_usd,
                "cost_warning": report.cost_warning,
            },
        )
        return

    rows = []
    for o in report.outcomes:
        if o.result is not None:
            meta = o.result.metadata
            rows.append(
                {
                    "target": o.target,
                    "status": "ok",
                    "latency_ms": meta.latency_ms,
                    "tokens": f"{meta.tokens_input}/{meta.tokens_output}",
                    "cost_usd": meta.cost_usd,
                    "output": o.result.output[:60],
                }
            )
        else:
            rows.append({"target": o.target, "status": o.error.kind, "output": str(o.error)[:60]})
    _output(ctx, rows, ["target", "status", "latency_ms", "tokens", "cost_usd", "output"])
    click.echo(f"\nTotal cost: ${report.total_cost_usd:.6f}")
    if report.cost_warning:
        click.echo(
            f"Warning: total cost exceeds ${settings.cost_warning_threshold:.2f}", err=True
        )


# --- Providers ---


@cli.command()
@click.option("--config", "-c", "config_file", default=None, type=click.Path(dir_okay=False))
@click.pass_context
def providers(ctx: click.Context, config_file: str | None) -> None:
    """List provider kinds, or the named configurations in a providers file."""
    if config_file is None:
        rows = []
        for kind in ProviderKind:
            route = get_route(kind)
            rows.append(
                {
                    "provider": kind.value,
                    "supported": route.supported,
                    "base_url": route.default_base_url or "",
                    "needs_key": route.requires_credential,
                    "note": route.reason or "",
                }
            )
        _output(ctx, rows, ["provider", "supported", "base_url", "needs_key", "note"])
        return

    configs = _load_configs(config_file)
    store = DirectorySecretStore(_settings(ctx).secrets_dir)
    rows = [
        {
            "name": c.name,
            "provider": c.provider.value,
            "model": c.model,
            "source": c.credential.source if c.credential else "",
            "status": credential_status(c.credential, store),
            "default": "*" if c.is_default else "",
        }
        for c in configs.values()
    ]
    _output(ctx, rows, ["name", "provider", "model", "source", "status", "default"])


@cli.command()
@click.argument("provider", type=click.Choice([k.value for k in ProviderKind]))
@credential_options
@click.option("--base-url", default=None)
@click.option("--test", "test_only", is_flag=True, help="Only check the connection")
@click.pass_context
def models(
    ctx: click.Context,
    provider: str,
    api_key: str | None,
    api_key_env: str | None,
    secret: str | None,
    base_url: str | None,
    test_only: bool,
) -> None:
    """List the models a provider offers."""
    settings = _settings(ctx)
    kind = ProviderKind(provider)
    source = _credential_option(api_key, api_key_env, secret)
    catalog = ModelCatalog(settings)

    credential = ""
    if source is not None or test_only:
        executor = build_executor(settings)
        try:
            credential = executor.resolve_credential(kind, source)
        except PromptArenaError as e:
            raise click.ClickException(f"[{e.kind}] {e}")

    if test_only:
        click.echo(_run(catalog.test_connection(kind, credential, base_url)))
        return
    rows = [
        {"id": m.id, "name": m.name, "description": m.description or ""}
        for m in _run(catalog.list_models(kind, credential, base_url))
    ]
    _output(ctx, rows, ["id", "name", "description"])


@cli.command()
@click.pass_context
def pricing(ctx: click.Context) -> None:
    """Show the price table (USD per million tokens)."""
    rows = [
        {
            "provider": provider.value,
            "model": model,
            "input": price.input_per_million,
            "output": price.output_per_million,
        }
        for (provider, model), price in PRICE_TABLE.items()
    ]
    _output(ctx, rows, ["provider", "model", "input", "output"])


if __name__ == "__main__":
    cli()
