"""
UTXO JSON-RPC Adapter - btc, ltc, doge via bitcoind-compatible nodes.

Output values arrive as JSON decimals in whole coins; the router
parses them as Decimal so conversion to satoshi stays exact.

RPC methods:
- getblockcount
- getblockhash(height)
- getblock(hash, 2)
- getrawtransaction(txid, 1)
- getblockheader(hash)
"""

import logging
from collections import OrderedDict
from typing import Any

from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import RpcResponseError
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp
from core.amounts import to_native
from core.exceptions import InvalidAmountError


logger = logging.getLogger(__name__)


# RPC_INVALID_ADDRESS_OR_KEY: "No such mempool or blockchain transaction"
RPC_TX_NOT_FOUND = -5


def output_addresses(vout: dict[str, Any]) -> list[str]:
    """Addresses an output pays to (newer nodes: address, older: addresses)."""
    spk = vout.get("scriptPubKey") or {}
    if spk.get("address"):
        return [spk["address"]]
    return list(spk.get("addresses") or [])


class UtxoRpcAdapter(BaseChainAdapter):
    """Adapter for bitcoind-style JSON-RPC nodes."""

    @property
    def provider_name(self) -> str:
        return "utxo_rpc"

    async def get_tip(self) -> int:
        return int(await self._rpc("getblockcount"))

    async def get_block(self, height: int) -> BlockData:
        block_hash = await self._rpc("getblockhash", [height])
        block = await self._rpc("getblock", [block_hash, 2])
        if not isinstance(block, dict):
            raise self._malformed(f"Block {height} not available", raw=block)

        transfers: list[Transfer] = []
        for tx in block.get("tx") or []:
            if not isinstance(tx, dict):
                raise self._malformed("getblock returned txids, verbosity 2 unsupported", raw=tx)
            transfers.extend(self._tx_transfers(tx))

        return BlockData(
            height=height,
            timestamp=utc_from_timestamp(block.get("time")),
            transfers=transfers,
        )

    async def get_transaction(self, tx_id: str) -> TxLookup:
        try:
            tx = await self._rpc(
                "getrawtransaction", [tx_id, 1], passthrough_codes=(RPC_TX_NOT_FOUND,)
            )
        except RpcResponseError:
            return TxLookup.not_found(tx_id)

        if not isinstance(tx, dict):
            raise self._malformed("Unexpected transaction payload", raw=tx)

        confirmations = int(tx.get("confirmations") or 0)
        block_hash = tx.get("blockhash")
        if not block_hash or confirmations <= 0:
            return TxLookup.pending(tx_id, transfers=self._tx_transfers(tx))

        header = await self._rpc("getblockheader", [block_hash])
        height = int(header["height"]) if isinstance(header, dict) and "height" in header else None
        block_time = tx.get("blocktime") or (header.get("time") if isinstance(header, dict) else None)

        return TxLookup(
            tx_id=tx_id,
            status=TxStatus.FOUND,
            transfers=self._tx_transfers(tx),
            block_time=utc_from_timestamp(block_time),
            height=height,
            confirmations=confirmations,
        )

    def _tx_transfers(self, tx: dict[str, Any]) -> list[Transfer]:
        """One Transfer per paid address, summing repeated outputs."""
        tx_id = str(tx.get("txid", "")).lower()
        totals: "OrderedDict[str, int]" = OrderedDict()
        for vout in tx.get("vout") or []:
            addresses = output_addresses(vout)
            # Bare multisig outputs are not attributable to one wallet.
            if len(addresses) != 1:
                continue
            try:
                sats = to_native(vout.get("value", 0), self.profile.decimals)
            except InvalidAmountError as e:
                raise self._malformed(f"Bad output value in {tx_id}", raw=vout, field_name="value") from e
            if sats <= 0:
                continue
            totals[addresses[0]] = totals.get(addresses[0], 0) + sats

        return [
            Transfer(tx_id=tx_id, destination=address, native_amount=amount)
            for address, amount in totals.items()
        ]
