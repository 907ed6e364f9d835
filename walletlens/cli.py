"""Click CLI entry point for walletlens.

All commands are thin orchestration wrappers — business logic lives in
config, providers, analyzer, risk, network and output modules.

Exit codes:
  0 — success
  1 — generic error
  2 — provider error
  3 — network error
  4 — all providers failed
  5 — config error
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Any

import click

from walletlens import __version__
from walletlens.analyzer import WalletAnalyzer
from walletlens.config import (
    VALID_LOG_LEVELS,
    WalletlensConfig,
    get_default_config_path,
    load_config,
    save_config,
)
from walletlens.exceptions import WalletlensError
from walletlens.models import AggregatedWalletData, ApiStatus
from walletlens.output import format_output, mask_secret

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ── Error handler ─────────────────────────────────────────────────────────────


def _output_error(err: WalletlensError | Exception) -> None:
    """Write error JSON to stderr."""
    if isinstance(err, WalletlensError):
        payload = err.to_dict()
        exit_code = err.exit_code
    else:
        payload = {"error": "unknown_error", "message": str(err), "details": {}}
        exit_code = 1
    sys.stderr.write(json.dumps(payload) + "\n")
    sys.stderr.flush()
    sys.exit(exit_code)


def _require_config(ctx: click.Context) -> WalletlensConfig:
    """Return the loaded config, or exit if loading it failed."""
    error = ctx.obj.get("config_error")
    if error is not None:
        _output_error(error)
    return ctx.obj["config"]


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    envvar="WALLETLENS_CONFIG",
    default=None,
    help="Config file path (default: ~/.walletlens/config.toml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default=None,
    help="Output format (overrides config default)",
)
@click.option(
    "--log-level",
    type=click.Choice(sorted(VALID_LOG_LEVELS), case_sensitive=False),
    default=None,
    help="Log level for stderr diagnostics (overrides config)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    output_format: str | None,
    log_level: str | None,
) -> None:
    """walletlens — multi-provider Bitcoin wallet analysis."""
    ctx.ensure_object(dict)
    config_error: WalletlensError | None = None
    try:
        config = load_config(config_path)
    except WalletlensError as e:
        # Fall back to defaults so `config init --force` can repair the file
        config = WalletlensConfig()
        config_error = e

    logging.basicConfig(
        level=(log_level or config.logging.level).upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    ctx.obj["config"] = config
    ctx.obj["config_error"] = config_error
    ctx.obj["format"] = output_format or config.output.default_format
    ctx.obj["config_path"] = config_path


# ── Analysis commands ─────────────────────────────────────────────────────────


@cli.command("analyze")
@click.argument("address")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "table"]),
    default=None,
)
@click.option("--no-price", is_flag=True, help="Skip the BTC/USD price lookup")
@click.pass_context
def analyze_command(ctx: click.Context, address: str, fmt: str | None, no_price: bool) -> None:
    """Analyze a Bitcoin ADDRESS across all enabled providers."""
    config = _require_config(ctx)
    fmt = fmt or ctx.obj.get("format", "json")
    if no_price:
        config.providers.price_lookup = False

    async def _run() -> AggregatedWalletData:
        async with WalletAnalyzer.from_config(config) as analyzer:
            return await analyzer.analyze_wallet(address)

    try:
        result = asyncio.run(_run())
    except WalletlensError as e:
        _output_error(e)
        return

    click.echo(format_output(result.to_dict(), fmt, color=config.output.color))


@cli.command("status")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "table"]),
    default=None,
)
@click.pass_context
def status_command(ctx: click.Context, fmt: str | None) -> None:
    """Show the request budget of every enabled provider."""
    config = _require_config(ctx)
    fmt = fmt or ctx.obj.get("format", "json")

    async def _run() -> list[ApiStatus]:
        async with WalletAnalyzer.from_config(config) as analyzer:
            return analyzer.get_api_status()

    try:
        statuses = asyncio.run(_run())
    except WalletlensError as e:
        _output_error(e)
        return

    result = {"providers": [s.to_dict() for s in statuses]}
    click.echo(format_output(result, fmt, color=config.output.color))


# ── Config commands ───────────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Manage walletlens configuration."""


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing config")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Initialize default config at ~/.walletlens/config.toml."""
    provided = ctx.obj.get("config_path")
    config_path = Path(provided) if provided else get_default_config_path()

    if config_path.exists() and not force:
        click.echo(
            json.dumps(
                {
                    "status": "already_exists",
                    "config_path": str(config_path),
                    "hint": "Use --force to reinitialize",
                }
            )
        )
        return

    status = "initialized"
    backup = None

    if config_path.exists() and force:
        backup = str(config_path) + ".bak"
        shutil.copy2(config_path, backup)
        status = "reinitialized"

    save_config(WalletlensConfig(), str(config_path))

    result: dict[str, Any] = {
        "status": status,
        "config_path": str(config_path),
    }
    if backup:
        result["backup"] = backup
    click.echo(json.dumps(result))


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration (credentials masked)."""
    config = _require_config(ctx)
    provided = ctx.obj.get("config_path")
    config_path = Path(provided) if provided else get_default_config_path()

    result = {
        "config_path": str(config_path),
        "api": {
            "blockcypher_token": mask_secret(config.api.blockcypher_token),
            "blockchair_key": mask_secret(config.api.blockchair_key),
        },
        "providers": {
            "enabled": list(config.providers.enabled),
            "timeout_seconds": config.providers.timeout_seconds,
            "request_timeout_seconds": config.providers.request_timeout_seconds,
            "price_lookup": config.providers.price_lookup,
        },
        "rate_limits": {
            "window_seconds": config.rate_limits.window_seconds,
            "limits": dict(config.rate_limits.limits),
        },
        "cache": {
            "ttl_seconds": config.cache.ttl_seconds,
            "sweep_interval_seconds": config.cache.sweep_interval_seconds,
            "max_entries": config.cache.max_entries,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
        "logging": {
            "level": config.logging.level,
        },
    }

    click.echo(format_output(result, "json"))


if __name__ == "__main__":
    cli()
