"""
Cardano Blockfrost Adapter.

Blockfrost-compatible REST (Blockfrost itself or the NOWNodes proxy);
endpoints are the API root, e.g. https://ada-blockfrost.nownodes.io/api/v0.
Only the `lovelace` unit of each output is counted. Collateral
outputs are skipped, and a transaction whose scripts failed
(valid_contract false) credits nothing.

Endpoints:
- GET /blocks/latest
- GET /blocks/{height}
- GET /blocks/{height}/txs?count=100&page=N   (list of tx hashes)
- GET /txs/{hash}                             (404 = unknown)
- GET /txs/{hash}/utxos
"""

import logging
from collections import OrderedDict
from typing import Any

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp


logger = logging.getLogger(__name__)


LOVELACE = "lovelace"


class BlockfrostAdapter(BaseChainAdapter):
    """Adapter for Blockfrost-style Cardano REST."""

    PAGE_SIZE = 100

    @property
    def provider_name(self) -> str:
        return "blockfrost"

    async def get_tip(self) -> int:
        latest = await self._rest("GET", "/blocks/latest")
        if not isinstance(latest, dict) or latest.get("height") is None:
            raise self._malformed("Latest block has no height", raw=latest, field_name="height")
        return int(latest["height"])

    async def get_block(self, height: int) -> BlockData:
        block = await self._rest("GET", f"/blocks/{height}")
        if not isinstance(block, dict):
            raise self._malformed(f"Block {height} not available", raw=block)

        tx_count = int(block.get("tx_count") or 0)
        transfers: list[Transfer] = []
        page_count = (tx_count + self.PAGE_SIZE - 1) // self.PAGE_SIZE
        for page in range(1, page_count + 1):
            hashes = await self._rest(
                "GET",
                f"/blocks/{height}/txs",
                params={"count": self.PAGE_SIZE, "page": page},
            )
            if not isinstance(hashes, list):
                raise self._malformed(f"Block {height}: unexpected txs page", raw=hashes)
            for tx_hash in hashes:
                utxos = await self._rest("GET", f"/txs/{tx_hash}/utxos")
                transfers.extend(self._outputs_to_transfers(str(tx_hash), utxos))

        return BlockData(
            height=height,
            timestamp=utc_from_timestamp(block.get("time")),
            transfers=transfers,
        )

    async def filter_successful(self, transfers: list[Transfer]) -> list[Transfer]:
        """Drop transfers of transactions whose scripts failed."""
        valid: dict[str, bool] = {}
        for transfer in transfers:
            if transfer.tx_id in valid:
                continue
            tx = await self._rest("GET", f"/txs/{transfer.tx_id}")
            if not isinstance(tx, dict):
                raise self._malformed(f"Transaction {transfer.tx_id} not available", raw=tx)
            valid[transfer.tx_id] = tx.get("valid_contract", True) is not False
            if not valid[transfer.tx_id]:
                logger.info(f"[{self.name}] Skipping tx {transfer.tx_id} with failed scripts")
        return [t for t in transfers if valid.get(t.tx_id)]

    async def get_transaction(self, tx_id: str) -> TxLookup:
        tx = await self._rest("GET", f"/txs/{tx_id}", not_found_ok=True)
        if tx is None:
            return TxLookup.not_found(tx_id)
        if not isinstance(tx, dict):
            raise self._malformed("Unexpected transaction payload", raw=tx)

        utxos = await self._rest("GET", f"/txs/{tx_id}/utxos")
        transfers = self._outputs_to_transfers(tx_id, utxos)
        height = tx.get("block_height")
        status = TxStatus.FOUND if tx.get("valid_contract", True) is not False else TxStatus.FAILED
        return TxLookup(
            tx_id=tx_id,
            status=status,
            transfers=transfers,
            block_time=utc_from_timestamp(tx.get("block_time")),
            height=height,
            confirmations=await self._confirmations_at(height),
        )

    # ─────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────

    def _outputs_to_transfers(self, tx_hash: str, utxos: Any) -> list[Transfer]:
        if not isinstance(utxos, dict):
            raise self._malformed(f"Unexpected utxos payload for {tx_hash}", raw=utxos)

        totals: "OrderedDict[str, int]" = OrderedDict()
        for output in utxos.get("outputs") or []:
            address = output.get("address")
            if not address or output.get("collateral"):
                continue
            for amount in output.get("amount") or []:
                if amount.get("unit") != LOVELACE:
                    continue
                try:
                    quantity = int(str(amount.get("quantity")))
                except ValueError as e:
                    raise self._malformed(
                        "Bad lovelace quantity", raw=output, field_name="quantity"
                    ) from e
                if quantity > 0:
                    totals[address] = totals.get(address, 0) + quantity

        tx_id = tx_hash.lower()
        return [
            Transfer(tx_id=tx_id, destination=address, native_amount=amount)
            for address, amount in totals.items()
        ]
