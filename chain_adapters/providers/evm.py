"""
EVM JSON-RPC Adapter - eth, arb, avax, op, pol, bsc.

Native value transfers only: a transaction counts when its `to`
is a watched address and `value` > 0. Contract-internal transfers
and tokens are not tracked.

RPC methods:
- eth_chainId (health check: endpoint serves the expected network)
- eth_blockNumber
- eth_getBlockByNumber(height, true)
- eth_getTransactionByHash
- eth_getTransactionReceipt (status 0x0 = reverted)
"""

import logging
from typing import Any, Optional

from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import ChainAdapterError
from chain_adapters.models import AdapterHealth, BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp
from core.chains import ChainSlug


logger = logging.getLogger(__name__)


# EIP-155 chain ids
EXPECTED_CHAIN_IDS: dict[ChainSlug, int] = {
    ChainSlug.ETH: 1,
    ChainSlug.ARB: 42161,
    ChainSlug.AVAX: 43114,
    ChainSlug.OP: 10,
    ChainSlug.POL: 137,
    ChainSlug.BSC: 56,
}


def _hex_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    return int(str(value), 16)


class EvmRpcAdapter(BaseChainAdapter):
    """Adapter for Ethereum-compatible JSON-RPC nodes."""

    @property
    def provider_name(self) -> str:
        return "evm_rpc"

    async def get_chain_id(self) -> int:
        return _hex_int(await self._rpc("eth_chainId"))

    async def get_tip(self) -> int:
        return _hex_int(await self._rpc("eth_blockNumber"))

    async def get_block(self, height: int) -> BlockData:
        block = await self._rpc("eth_getBlockByNumber", [hex(height), True])
        if not isinstance(block, dict):
            raise self._malformed(f"Block {height} not available", raw=block)

        transfers = [
            transfer
            for transfer in (self._to_transfer(tx) for tx in block.get("transactions") or [])
            if transfer is not None
        ]
        return BlockData(
            height=height,
            timestamp=utc_from_timestamp(_hex_int(block.get("timestamp"))),
            transfers=transfers,
        )

    async def filter_successful(self, transfers: list[Transfer]) -> list[Transfer]:
        """Keep transfers whose receipt reports success."""
        succeeded: dict[str, bool] = {}
        for transfer in transfers:
            if transfer.tx_id in succeeded:
                continue
            receipt = await self._rpc("eth_getTransactionReceipt", [transfer.tx_id])
            if not isinstance(receipt, dict):
                raise self._malformed(f"Receipt missing for {transfer.tx_id}", raw=receipt)
            succeeded[transfer.tx_id] = self._receipt_ok(receipt)
            if not succeeded[transfer.tx_id]:
                logger.info(f"[{self.name}] Skipping reverted tx {transfer.tx_id}")
        return [t for t in transfers if succeeded.get(t.tx_id)]

    async def get_transaction(self, tx_id: str) -> TxLookup:
        tx = await self._rpc("eth_getTransactionByHash", [tx_id])
        if tx is None:
            return TxLookup.not_found(tx_id)
        if not isinstance(tx, dict):
            raise self._malformed("Unexpected transaction payload", raw=tx)
        if tx.get("blockNumber") is None:
            return TxLookup.pending(tx_id)

        receipt = await self._rpc("eth_getTransactionReceipt", [tx_id])
        if receipt is None:
            return TxLookup.pending(tx_id)

        height = _hex_int(tx["blockNumber"])
        block = await self._rpc("eth_getBlockByNumber", [hex(height), False])
        block_time = utc_from_timestamp(_hex_int(block.get("timestamp"))) if isinstance(block, dict) else None
        confirmations = await self._confirmations_at(height)

        transfer = self._to_transfer(tx)
        transfers = [transfer] if transfer else []

        status = TxStatus.FOUND if self._receipt_ok(receipt) else TxStatus.FAILED
        return TxLookup(
            tx_id=tx_id,
            status=status,
            transfers=transfers,
            block_time=block_time,
            height=height,
            confirmations=confirmations,
        )

    async def health_check(self) -> AdapterHealth:
        """Tip check plus a chain id check against the configured network."""
        health = await super().health_check()
        expected = EXPECTED_CHAIN_IDS.get(self.chain)
        if expected is None:
            return health
        try:
            chain_id = await self.get_chain_id()
        except ChainAdapterError as e:
            logger.warning(f"[{self.name}] eth_chainId failed: {e.message}")
            return health
        if chain_id != expected:
            health.last_error = f"endpoint serves chain id {chain_id}, expected {expected}"
            logger.error(f"[{self.name}] {health.last_error}")
        return health

    # ─────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _to_transfer(tx: dict[str, Any]) -> Optional[Transfer]:
        to = tx.get("to")
        if not to:
            return None
        value = _hex_int(tx.get("value"))
        if value <= 0:
            return None
        return Transfer(
            tx_id=str(tx.get("hash", "")).lower(),
            destination=str(to).lower(),
            native_amount=value,
        )

    @staticmethod
    def _receipt_ok(receipt: dict[str, Any]) -> bool:
        # Pre-Byzantium receipts carry no status field.
        status = receipt.get("status")
        if status is None:
            return True
        return _hex_int(status) == 1
