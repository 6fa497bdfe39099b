"""
Solana JSON-RPC Adapter.

Heights are slots at finalized commitment. A transfer is any
positive lamport balance delta of an account key; this covers
system transfers and account creation alike. Skipped slots are
returned as empty blocks.
"""

import logging
from typing import Any

from chain_adapters.base import BaseChainAdapter
from chain_adapters.exceptions import RpcResponseError
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp


logger = logging.getLogger(__name__)


# Slot was skipped / missing in long-term storage
SKIPPED_SLOT_CODES = (-32007, -32009)

FINALIZED = {"commitment": "finalized"}


def account_key(entry: Any) -> str:
    """jsonParsed keys are objects; json keys are plain strings."""
    if isinstance(entry, dict):
        return str(entry.get("pubkey", ""))
    return str(entry)


def balance_credits(tx: dict[str, Any]) -> list[tuple[str, int]]:
    """(account, lamports) for every account whose balance increased."""
    meta = tx.get("meta") or {}
    message = (tx.get("transaction") or {}).get("message") or {}
    keys = [account_key(k) for k in message.get("accountKeys") or []]
    loaded = meta.get("loadedAddresses") or {}
    # Plain json encoding lists lookup-table keys separately.
    if keys and not isinstance((message.get("accountKeys") or [None])[0], dict):
        keys += list(loaded.get("writable") or []) + list(loaded.get("readonly") or [])

    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []
    credits = []
    for index, key in enumerate(keys):
        if index >= len(pre) or index >= len(post):
            break
        delta = int(post[index]) - int(pre[index])
        if delta > 0:
            credits.append((key, delta))
    return credits


class SolanaAdapter(BaseChainAdapter):
    """Adapter for Solana JSON-RPC."""

    @property
    def provider_name(self) -> str:
        return "solana_rpc"

    async def get_tip(self) -> int:
        return int(await self._rpc("getSlot", [FINALIZED]))

    async def get_block(self, height: int) -> BlockData:
        try:
            block = await self._rpc(
                "getBlock",
                [
                    height,
                    {
                        **FINALIZED,
                        "encoding": "jsonParsed",
                        "transactionDetails": "full",
                        "rewards": False,
                        "maxSupportedTransactionVersion": 0,
                    },
                ],
                passthrough_codes=SKIPPED_SLOT_CODES,
            )
        except RpcResponseError as e:
            logger.debug(f"[{self.name}] Slot {height} skipped ({e.rpc_code})")
            return BlockData(height=height, timestamp=None, transfers=[])

        if block is None:
            return BlockData(height=height, timestamp=None, transfers=[])
        if not isinstance(block, dict):
            raise self._malformed(f"Slot {height}: unexpected block", raw=block)

        transfers = []
        for tx in block.get("transactions") or []:
            transfers.extend(self._tx_transfers(tx))
        return BlockData(
            height=height,
            timestamp=utc_from_timestamp(block.get("blockTime")),
            transfers=transfers,
        )

    async def get_transaction(self, tx_id: str) -> TxLookup:
        tx = await self._rpc(
            "getTransaction",
            [
                tx_id,
                {**FINALIZED, "encoding": "jsonParsed", "maxSupportedTransactionVersion": 0},
            ],
        )
        if tx is None:
            return await self._unfinalized(tx_id)
        if not isinstance(tx, dict):
            raise self._malformed("Unexpected transaction payload", raw=tx)

        meta = tx.get("meta") or {}
        status = TxStatus.FAILED if meta.get("err") is not None else TxStatus.FOUND
        return TxLookup(
            tx_id=tx_id,
            status=status,
            transfers=self._tx_transfers(tx, tx_id),
            block_time=utc_from_timestamp(tx.get("blockTime")),
            height=tx.get("slot"),
        )

    async def _unfinalized(self, tx_id: str) -> TxLookup:
        """Tell a not-yet-finalized signature apart from an unknown one."""
        result = await self._rpc(
            "getSignatureStatuses", [[tx_id], {"searchTransactionHistory": True}]
        )
        values = (result or {}).get("value") or [None]
        if values[0] is None:
            return TxLookup.not_found(tx_id)
        return TxLookup.pending(tx_id, height=values[0].get("slot"))

    @staticmethod
    def _tx_transfers(tx: dict[str, Any], tx_id: str = "") -> list[Transfer]:
        signatures = (tx.get("transaction") or {}).get("signatures") or []
        signature = tx_id or (signatures[0] if signatures else "")
        success = (tx.get("meta") or {}).get("err") is None
        return [
            Transfer(tx_id=signature, destination=key, native_amount=lamports, success=success)
            for key, lamports in balance_credits(tx)
        ]
