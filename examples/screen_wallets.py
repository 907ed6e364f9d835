"""Agent integration example for walletlens.

Shows how a script or agent can drive the `walletlens` CLI and act on its
JSON output: flag counterparties whose risk score crosses a threshold.
"""

import json
import subprocess
from typing import Any, Dict, List

RISK_THRESHOLD = 50


def analyze(address: str) -> Dict[str, Any]:
    """Run `walletlens analyze` and return the parsed result.

    Raises:
        RuntimeError: If the analysis fails (error JSON is on stderr).
    """
    result = subprocess.run(
        ["walletlens", "analyze", address, "--format", "json", "--no-price"],
        capture_output=True,
        text=True,
    )

    if result.returncode != 0:
        raise RuntimeError(f"walletlens analyze failed ({result.returncode}): {result.stderr}")

    return json.loads(result.stdout)


def screen(addresses: List[str]) -> List[Dict[str, Any]]:
    """Return the analyses that look risky enough for manual review."""
    flagged = []
    for address in addresses:
        try:
            data = analyze(address)
        except RuntimeError as e:
            print(f"⚠️  {address[:12]}…: {e}")
            continue

        if data["confidence"] < 50:
            print(f"… {address[:12]}…: only {data['confidence']}% of providers answered, skipping")
            continue

        if data["risk_score"] >= RISK_THRESHOLD:
            flagged.append(data)
            print(f"🚩 {address[:12]}…  score {data['risk_score']}: {', '.join(data['risk_factors'])}")
        else:
            print(f"✓  {address[:12]}…  score {data['risk_score']}")

    return flagged


if __name__ == "__main__":
    screen([
        "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh",
        "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
    ])
