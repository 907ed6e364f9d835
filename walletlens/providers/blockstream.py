"""
Blockstream (Esplora) adapter.

Needs two lookups, the address summary and the transaction list, issued
concurrently and joined before the adapter reports. Both must succeed.

Response fields used:
- /address/{addr}: chain_stats.{funded_txo_sum, spent_txo_sum, tx_count}
- /address/{addr}/txs: txid, fee, status.{confirmed, block_time},
  vin[].prevout.{scriptpubkey_address, value}, vout[].{scriptpubkey_address, value}

Unconfirmed transactions have no block_time; they are stamped with the
current time so they sort as most recent.
"""

from __future__ import annotations

import asyncio
import time
from decimal import Decimal
from typing import Any

from walletlens.models import AddressSnapshot, Transaction, TxIO
from walletlens.providers.base import (
    TX_LIMIT,
    AddressProvider,
    history_bounds,
    sats_to_btc,
)

BLOCKSTREAM_BASE = "https://blockstream.info/api"


class BlockstreamAdapter(AddressProvider):
    name = "blockstream"

    async def _request(self, address: str) -> Any:
        summary_task = asyncio.create_task(
            self._get_json(f"{BLOCKSTREAM_BASE}/address/{address}")
        )
        txs_task = asyncio.create_task(
            self._get_json(f"{BLOCKSTREAM_BASE}/address/{address}/txs")
        )
        try:
            summary, txs = await asyncio.gather(summary_task, txs_task)
        except BaseException:
            # Cancel the sibling request
            for task in (summary_task, txs_task):
                task.cancel()
            await asyncio.gather(summary_task, txs_task, return_exceptions=True)
            raise

        return {
            "address": summary,
            "transactions": txs[:TX_LIMIT] if isinstance(txs, list) else [],
        }

    def normalize(self, payload: Any) -> AddressSnapshot:
        stats = payload["address"].get("chain_stats") or {}
        funded = sats_to_btc(stats.get("funded_txo_sum"))
        spent = sats_to_btc(stats.get("spent_txo_sum"))
        tx_count = int(stats.get("tx_count") or 0)

        transactions, counterparties = self._parse_transactions(
            payload.get("transactions") or [], self._parse_tx
        )
        first_seen, last_seen = history_bounds(transactions, tx_count)

        return AddressSnapshot(
            balance=max(funded - spent, Decimal(0)),
            transaction_count=tx_count,
            total_received=funded,
            total_sent=spent,
            first_seen=first_seen,
            last_seen=last_seen,
            transactions=transactions,
            counterparties=counterparties,
        )

    @staticmethod
    def _parse_tx(raw: dict[str, Any]) -> Transaction:
        status = raw.get("status") or {}
        block_time = status.get("block_time")
        vout = raw.get("vout") or []
        return Transaction(
            hash=raw["txid"],
            time=int(block_time) if block_time else int(time.time()),
            value=sum((sats_to_btc(o.get("value")) for o in vout), Decimal(0)),
            fee=sats_to_btc(raw.get("fee")),
            confirmations=1 if status.get("confirmed") else 0,
            inputs=[
                TxIO(
                    address=(i.get("prevout") or {}).get("scriptpubkey_address"),
                    value=sats_to_btc((i.get("prevout") or {}).get("value")),
                )
                for i in raw.get("vin") or []
            ],
            outputs=[
                TxIO(address=o.get("scriptpubkey_address"), value=sats_to_btc(o.get("value")))
                for o in vout
            ],
        )
