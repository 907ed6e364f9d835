"""Output format routing for walletlens.

Converts result dicts to the requested format: json or table.

Design rules:
- JSON: 2-space indent, deterministic key order, utf-8, Decimals as numbers
- Table: Rich-formatted, risk score colored by band (red=high, yellow=medium)

All functions return strings. The caller writes to stdout.
"""

from __future__ import annotations

import io
import json
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from walletlens.risk import score_to_severity

VALID_FORMATS = {"json", "table"}

MAX_TABLE_TRANSACTIONS = 10


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal values."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def format_output(data: Any, fmt: str, color: bool = True) -> str:
    """
    Format data for stdout output.

    Args:
        data: Result dict, list, or any JSON-serialisable value.
        fmt: "json" | "table"
        color: Emit ANSI styling in table output.

    Returns:
        Formatted string ready to write to stdout.

    Raises:
        ValueError: If fmt is not a recognised format.
    """
    fmt = fmt.lower()
    if fmt not in VALID_FORMATS:
        raise ValueError(f"Unknown format {fmt!r}. Valid: {sorted(VALID_FORMATS)}")

    if fmt == "table":
        return format_table(data, color=color)
    return format_json(data)


# ── JSON ─────────────────────────────────────────────────────────────────────


def format_json(data: Any) -> str:
    """Pretty-print data as JSON (2-space indent)."""
    return json.dumps(data, indent=2, cls=DecimalEncoder, ensure_ascii=False)


# ── Table ────────────────────────────────────────────────────────────────────


def format_table(data: Any, color: bool = True) -> str:
    """
    Format as a Rich terminal table.

    Handles:
    - Wallet analysis (dict with 'risk_score')
    - API status (dict with 'providers')
    - Generic fallback (pretty JSON)
    """
    buf = io.StringIO()
    console = Console(
        file=buf,
        highlight=False,
        markup=True,
        width=120,
        force_terminal=color,
        no_color=not color,
    )

    if isinstance(data, dict) and "risk_score" in data:
        _render_analysis(console, data)
    elif isinstance(data, dict) and "providers" in data:
        _render_status_table(console, data)
    else:
        console.print_json(json.dumps(data, cls=DecimalEncoder))

    return buf.getvalue()


def _severity_color(severity: str) -> str:
    if severity == "high":
        return "bold red"
    elif severity == "medium":
        return "yellow"
    return "green"


def _short(address: str | None) -> str:
    if not address:
        return "—"
    return f"{address[:8]}…{address[-6:]}" if len(address) > 16 else address


def _btc(value: Any) -> str:
    if value is None:
        return "—"
    return f"{Decimal(str(value)):,.8f}"


def _render_analysis(console: Console, data: dict[str, Any]) -> None:
    score = data.get("risk_score", 0)
    severity = score_to_severity(score)

    summary = Table(
        title=f"Wallet {data.get('address', '')}",
        show_header=False,
        header_style="bold blue",
    )
    summary.add_column("Field", style="bold")
    summary.add_column("Value")
    summary.add_row("Balance (BTC)", _btc(data.get("balance")))
    if data.get("balance_usd") is not None:
        summary.add_row("Balance (USD)", f"${Decimal(str(data['balance_usd'])):,.2f}")
    summary.add_row("Transactions", str(data.get("transaction_count", 0)))
    summary.add_row("Total received", _btc(data.get("total_received")))
    summary.add_row("Total sent", _btc(data.get("total_sent")))
    summary.add_row("First seen", str(data.get("first_seen") or "—")[:19])
    summary.add_row("Last seen", str(data.get("last_seen") or "—")[:19])
    summary.add_row(
        "Risk score", Text(f"{score} ({severity})", style=_severity_color(severity))
    )
    summary.add_row("Confidence", f"{data.get('confidence', 0)}%")
    summary.add_row("Data quality", data.get("data_quality", ""))
    network = data.get("network_analysis") or {}
    summary.add_row("Cluster size", str(network.get("cluster_size", 0)))
    console.print(summary)

    factors = data.get("risk_factors") or []
    if factors:
        console.print("[bold]Risk factors[/bold]")
        for factor in factors:
            console.print(f"  • {factor}")

    for pattern in network.get("patterns") or []:
        console.print(
            f"[yellow]Pattern:[/yellow] {pattern.get('type', '')}: {pattern.get('description', '')}"
        )

    providers = Table(title="Providers", header_style="bold blue")
    providers.add_column("Provider")
    providers.add_column("Result", justify="center")
    providers.add_column("Error")
    for name in data.get("api_sources") or []:
        providers.add_row(name, Text("ok", style="green"), "")
    for name, error in (data.get("provider_errors") or {}).items():
        providers.add_row(name, Text("failed", style="red"), error)
    console.print(providers)

    txns = (data.get("transactions") or [])[:MAX_TABLE_TRANSACTIONS]
    if txns:
        tx_table = Table(title="Recent Transactions", header_style="bold blue")
        tx_table.add_column("Hash", style="cyan", no_wrap=True)
        tx_table.add_column("Time")
        tx_table.add_column("Value (BTC)", justify="right")
        tx_table.add_column("Fee (BTC)", justify="right")
        tx_table.add_column("Source")
        tx_table.add_column("Flags")
        for tx in txns:
            tx_table.add_row(
                _short(tx.get("hash")),
                str(tx.get("timestamp", ""))[:19],
                _btc(tx.get("value")),
                _btc(tx.get("fee")),
                tx.get("source", ""),
                ", ".join(tx.get("risk_flags") or []) or "—",
            )
        console.print(tx_table)


def _render_status_table(console: Console, data: dict[str, Any]) -> None:
    table = Table(title="Provider Rate Limits", header_style="bold blue")
    table.add_column("Provider")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Resets In", justify="right")
    table.add_column("Status", justify="center")
    for p in data.get("providers", []):
        status = p.get("status", "")
        limit = p.get("max_requests")
        table.add_row(
            p.get("name", ""),
            str(p.get("remaining", 0)),
            "unlimited" if limit is None else str(limit),
            f"{p.get('reset_in_seconds', 0)}s",
            Text(status, style="green" if status == "healthy" else "red"),
        )
    console.print(table)


# ── Utility ──────────────────────────────────────────────────────────────────


def mask_secret(value: str) -> str:
    """
    Mask a token or key for safe display.

    'abcdefg123' → 'abcd****'
    '' → '****'
    """
    if not value or len(value) <= 4:
        return "****"
    return value[:4] + "****"
