"""Tests for walletlens/cli.py — Click CLI entry point."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from walletlens.analyzer import WalletAnalyzer
from walletlens.cli import cli
from walletlens.exceptions import AllProvidersFailedError
from walletlens.models import AggregatedWalletData, NetworkAnalysis

ADDRESS = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def make_result() -> AggregatedWalletData:
    return AggregatedWalletData(
        address=ADDRESS,
        balance=Decimal("2.0"),
        transaction_count=60,
        first_seen=None,
        last_seen=datetime(2024, 1, 1, tzinfo=timezone.utc),
        total_received=Decimal("3.0"),
        total_sent=Decimal("1.0"),
        risk_score=25,
        risk_factors=["Suspicious round number transactions"],
        confidence=75,
        data_quality="high",
        api_sources=["blockchain.info", "blockcypher", "blockstream"],
        transactions=[],
        network_analysis=NetworkAnalysis(),
        provider_errors={"blockchair": "HTTP 500: Internal Server Error"},
        analyzed_at="2024-01-01T00:00:00+00:00",
    )


# ── version / help ────────────────────────────────────────────────────────────


def test_cli_version(runner: CliRunner) -> None:
    """--version flag should output version string."""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_cli_help(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("analyze", "status", "config"):
        assert command in result.output


# ── analyze ───────────────────────────────────────────────────────────────────


@patch.object(WalletAnalyzer, "analyze_wallet", new_callable=AsyncMock)
def test_analyze_json(mock_analyze: AsyncMock, runner: CliRunner) -> None:
    mock_analyze.return_value = make_result()

    result = runner.invoke(cli, ["analyze", ADDRESS])

    assert result.exit_code == 0, result.stderr
    mock_analyze.assert_awaited_once_with(ADDRESS)
    output = json.loads(result.stdout)
    assert output["balance"] == 2.0
    assert output["confidence"] == 75
    assert output["provider_errors"] == {"blockchair": "HTTP 500: Internal Server Error"}


@patch.object(WalletAnalyzer, "analyze_wallet", new_callable=AsyncMock)
def test_analyze_table(mock_analyze: AsyncMock, runner: CliRunner) -> None:
    mock_analyze.return_value = make_result()

    result = runner.invoke(cli, ["analyze", ADDRESS, "--format", "table"])

    assert result.exit_code == 0
    assert "Balance (BTC)" in result.stdout
    assert "25 (low)" in result.stdout


@patch.object(WalletAnalyzer, "analyze_wallet", new_callable=AsyncMock)
def test_analyze_all_providers_failed(mock_analyze: AsyncMock, runner: CliRunner) -> None:
    mock_analyze.side_effect = AllProvidersFailedError(
        "All 4 providers failed", {"blockstream": "HTTP 500: Internal Server Error"}
    )

    result = runner.invoke(cli, ["analyze", ADDRESS])

    assert result.exit_code == 4
    error = json.loads(result.stderr)
    assert error["error"] == "all_providers_failed"
    assert error["details"]["providers"]["blockstream"] == "HTTP 500: Internal Server Error"


@patch.object(WalletAnalyzer, "analyze_wallet", new_callable=AsyncMock)
def test_analyze_no_price_disables_lookup(
    mock_analyze: AsyncMock, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    mock_analyze.return_value = make_result()
    seen: list[bool] = []
    original = WalletAnalyzer.from_config

    def spy(config):
        seen.append(config.providers.price_lookup)
        return original(config)

    monkeypatch.setattr(WalletAnalyzer, "from_config", staticmethod(spy))

    result = runner.invoke(cli, ["analyze", ADDRESS, "--no-price"])

    assert result.exit_code == 0
    assert seen == [False]


def test_analyze_with_invalid_config(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('[output]\ndefault_format = "xml"\n')

    result = runner.invoke(cli, ["--config", str(config_path), "analyze", ADDRESS])

    assert result.exit_code == 5
    assert json.loads(result.stderr)["error"] == "config_invalid"


# ── status ────────────────────────────────────────────────────────────────────


def test_status_json(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 0
    providers = json.loads(result.stdout)["providers"]
    names = [p["name"] for p in providers]
    assert names == ["blockchain.info", "blockcypher", "blockstream", "blockchair", "bitcoin-price"]
    assert all(p["status"] == "healthy" for p in providers)
    assert providers[0]["remaining"] == 300


def test_status_table(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--format", "table", "status"])
    assert result.exit_code == 0
    assert "Provider Rate Limits" in result.stdout


# ── config commands ───────────────────────────────────────────────────────────


def test_config_init(runner: CliRunner, tmp_path: Path) -> None:
    """config init should create config file."""
    config_path = tmp_path / "config.toml"
    result = runner.invoke(cli, ["--config", str(config_path), "config", "init"])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["status"] == "initialized"
    assert config_path.exists()
    assert "[providers]" in config_path.read_text()


def test_config_init_already_exists(runner: CliRunner, tmp_path: Path) -> None:
    """config init without --force should not overwrite existing config."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("[api]\n")

    result = runner.invoke(cli, ["--config", str(config_path), "config", "init"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["status"] == "already_exists"
    assert config_path.read_text() == "[api]\n"


def test_config_init_force_repairs_broken_file(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("not = [valid")

    result = runner.invoke(cli, ["--config", str(config_path), "config", "init", "--force"])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["status"] == "reinitialized"
    assert Path(output["backup"]).read_text() == "not = [valid"


def test_config_show_masks_credentials(runner: CliRunner, tmp_path: Path) -> None:
    """config show should output JSON with masked credentials."""
    config_path = tmp_path / "config.toml"
    config_path.write_text('[api]\nblockcypher_token = "secret_token_12345"\n')

    result = runner.invoke(cli, ["--config", str(config_path), "config", "show"])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["api"]["blockcypher_token"] == "secr****"
    assert output["api"]["blockchair_key"] == "****"
    assert output["config_path"] == str(config_path)
    assert "secret_token_12345" not in result.stdout
