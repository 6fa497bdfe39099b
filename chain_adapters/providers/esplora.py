"""
Esplora REST Adapter - btc, ltc via Blockstream-style explorers.

Keyless alternative to a bitcoind node. Output values are integers
in satoshi already.

Endpoints:
- GET /blocks/tip/height          (text)
- GET /block-height/{height}      (text block hash)
- GET /block/{hash}
- GET /block/{hash}/txs/{start}   (pages of 25)
- GET /tx/{txid}                  (404 = unknown)
"""

import logging
from collections import OrderedDict
from typing import Any

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp


logger = logging.getLogger(__name__)


class EsploraAdapter(BaseChainAdapter):
    """Adapter for Esplora-compatible REST explorers."""

    PAGE_SIZE = 25

    @property
    def provider_name(self) -> str:
        return "esplora"

    async def get_tip(self) -> int:
        return int(await self._rest("GET", "/blocks/tip/height", as_text=True))

    async def get_block(self, height: int) -> BlockData:
        block_hash = await self._rest("GET", f"/block-height/{height}", as_text=True)
        block = await self._rest("GET", f"/block/{block_hash}")
        if not isinstance(block, dict):
            raise self._malformed(f"Block {height} not available", raw=block)

        tx_count = int(block.get("tx_count") or 0)
        transfers: list[Transfer] = []
        for start in range(0, tx_count, self.PAGE_SIZE):
            page = await self._rest("GET", f"/block/{block_hash}/txs/{start}")
            if not isinstance(page, list):
                raise self._malformed("Unexpected txs page", raw=page)
            for tx in page:
                transfers.extend(self._tx_transfers(tx))

        return BlockData(
            height=height,
            timestamp=utc_from_timestamp(block.get("timestamp")),
            transfers=transfers,
        )

    async def get_transaction(self, tx_id: str) -> TxLookup:
        tx = await self._rest("GET", f"/tx/{tx_id}", not_found_ok=True)
        if tx is None:
            return TxLookup.not_found(tx_id)
        if not isinstance(tx, dict):
            raise self._malformed("Unexpected transaction payload", raw=tx)

        status = tx.get("status") or {}
        transfers = self._tx_transfers(tx)
        if not status.get("confirmed"):
            return TxLookup.pending(tx_id, transfers=transfers)

        height = status.get("block_height")
        return TxLookup(
            tx_id=tx_id,
            status=TxStatus.FOUND,
            transfers=transfers,
            block_time=utc_from_timestamp(status.get("block_time")),
            height=height,
            confirmations=await self._confirmations_at(height),
        )

    @staticmethod
    def _tx_transfers(tx: dict[str, Any]) -> list[Transfer]:
        tx_id = str(tx.get("txid", "")).lower()
        totals: "OrderedDict[str, int]" = OrderedDict()
        for vout in tx.get("vout") or []:
            address = vout.get("scriptpubkey_address")
            value = int(vout.get("value") or 0)
            if not address or value <= 0:
                continue
            totals[address] = totals.get(address, 0) + value
        return [
            Transfer(tx_id=tx_id, destination=address, native_amount=amount)
            for address, amount in totals.items()
        ]
