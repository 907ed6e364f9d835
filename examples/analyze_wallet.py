"""Library usage example for walletlens.

Analyzes a few addresses with one long-lived analyzer so repeated lookups
are served from the shared cache and rate budget.
"""

import asyncio
import sys

from walletlens import AllProvidersFailedError, WalletAnalyzer
from walletlens.config import load_config

ADDRESSES = [
    "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh",
    "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
]


async def main(addresses):
    config = load_config()
    async with WalletAnalyzer.from_config(config) as analyzer:
        for address in addresses:
            try:
                data = await analyzer.analyze_wallet(address)
            except AllProvidersFailedError as e:
                print(f"{address}: no data ({e.provider_errors})")
                continue

            print(f"{address}")
            print(f"  Balance:    {data.balance} BTC")
            print(f"  Txns:       {data.transaction_count}")
            print(f"  Risk:       {data.risk_score}/100 {data.risk_factors}")
            print(f"  Confidence: {data.confidence}% ({data.data_quality})")
            print(f"  Cluster:    {data.network_analysis.cluster_size} addresses")

        print("\nRemaining budget:")
        for status in analyzer.get_api_status():
            print(f"  {status.name}: {status.remaining} ({status.status})")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:] or ADDRESSES))
