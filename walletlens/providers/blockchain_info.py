"""
Blockchain.info adapter — /rawaddr endpoint.

One request returns both the address summary and its most recent
transactions. No API key required.

Response fields used:
- final_balance, n_tx, total_received, total_sent (satoshis)
- txs[]: hash, time (unix s), result (net effect on address), fee,
  inputs[].prev_out.{addr,value}, out[].{addr,value}
"""

from __future__ import annotations

from typing import Any

from walletlens.models import AddressSnapshot, Transaction, TxIO
from walletlens.providers.base import (
    TX_LIMIT,
    AddressProvider,
    history_bounds,
    sats_to_btc,
)

BLOCKCHAIN_INFO_BASE = "https://blockchain.info"


class BlockchainInfoAdapter(AddressProvider):
    name = "blockchain.info"

    async def _request(self, address: str) -> Any:
        return await self._get_json(
            f"{BLOCKCHAIN_INFO_BASE}/rawaddr/{address}",
            params={"limit": TX_LIMIT},
        )

    def normalize(self, payload: Any) -> AddressSnapshot:
        transactions, counterparties = self._parse_transactions(
            payload.get("txs") or [], self._parse_tx
        )
        n_tx = int(payload.get("n_tx") or 0)
        first_seen, last_seen = history_bounds(transactions, n_tx)

        return AddressSnapshot(
            balance=sats_to_btc(payload.get("final_balance")),
            transaction_count=n_tx,
            total_received=sats_to_btc(payload.get("total_received")),
            total_sent=sats_to_btc(payload.get("total_sent")),
            first_seen=first_seen,
            last_seen=last_seen,
            transactions=transactions,
            counterparties=counterparties,
        )

    @staticmethod
    def _parse_tx(raw: dict[str, Any]) -> Transaction:
        return Transaction(
            hash=raw["hash"],
            time=int(raw["time"]),
            value=sats_to_btc(raw.get("result")),
            fee=sats_to_btc(raw.get("fee")),
            confirmations=int(raw.get("confirmations") or 0),
            inputs=[
                TxIO(
                    address=(i.get("prev_out") or {}).get("addr"),
                    value=sats_to_btc((i.get("prev_out") or {}).get("value")),
                )
                for i in raw.get("inputs") or []
            ],
            outputs=[
                TxIO(address=o.get("addr"), value=sats_to_btc(o.get("value")))
                for o in raw.get("out") or []
            ],
        )
