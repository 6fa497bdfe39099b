"""
XRP Ledger Adapter - rippled JSON-RPC.

Heights are validated ledger indexes, so the profile scans with
min_confirmations=0. Only native-XRP Payments count; IOU amounts
(objects instead of drop strings) are ignored. delivered_amount is
preferred over Amount so partial payments credit what arrived.

rippled reports method errors inside "result" ({"error": "txnNotFound"}).
"""

import logging
from typing import Any, Optional

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp


logger = logging.getLogger(__name__)


RIPPLE_EPOCH_OFFSET = 946684800


def ripple_time(seconds: Any):
    if seconds is None:
        return None
    return utc_from_timestamp(int(seconds) + RIPPLE_EPOCH_OFFSET)


class XrpLedgerAdapter(BaseChainAdapter):
    """Adapter for rippled / Clio JSON-RPC."""

    @property
    def provider_name(self) -> str:
        return "xrpl_rpc"

    async def get_tip(self) -> int:
        result = await self._rpc("ledger", [{"ledger_index": "validated"}])
        self._check_result(result, "ledger")
        index = result.get("ledger_index") or (result.get("ledger") or {}).get("ledger_index")
        return int(index)

    async def get_block(self, height: int) -> BlockData:
        result = await self._rpc(
            "ledger",
            [{"ledger_index": height, "transactions": True, "expand": True}],
        )
        self._check_result(result, "ledger")
        ledger = result.get("ledger") or {}

        transfers = []
        for item in ledger.get("transactions") or []:
            transfer = self._to_transfer(item)
            if transfer is not None:
                transfers.append(transfer)

        return BlockData(
            height=height,
            timestamp=ripple_time(ledger.get("close_time")),
            transfers=transfers,
        )

    async def get_transaction(self, tx_id: str) -> TxLookup:
        result = await self._rpc("tx", [{"transaction": tx_id, "binary": False}])
        if isinstance(result, dict) and result.get("error") == "txnNotFound":
            return TxLookup.not_found(tx_id)
        self._check_result(result, "tx")

        transfer = self._to_transfer(result)
        transfers = [transfer] if transfer else []
        if not result.get("validated"):
            return TxLookup.pending(tx_id, transfers=transfers)

        tx = result.get("tx_json") or result
        meta = result.get("meta") or result.get("metaData") or {}
        status = TxStatus.FOUND if meta.get("TransactionResult") == "tesSUCCESS" else TxStatus.FAILED
        return TxLookup(
            tx_id=tx_id,
            status=status,
            transfers=transfers,
            block_time=ripple_time(tx.get("date") or result.get("date")),
            height=result.get("ledger_index") or tx.get("ledger_index"),
        )

    # ─────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────

    def _check_result(self, result: Any, method: str) -> None:
        if not isinstance(result, dict):
            raise self._malformed(f"{method}: unexpected result", raw=result)
        if result.get("error"):
            raise self._malformed(f"{method}: {result.get('error')}", raw=result)

    @staticmethod
    def _to_transfer(item: dict[str, Any]) -> Optional[Transfer]:
        # API v1 inlines tx fields; API v2 nests them under tx_json.
        tx = item.get("tx_json") or item
        meta = item.get("meta") or item.get("metaData") or {}
        if tx.get("TransactionType") != "Payment":
            return None

        amount = meta.get("delivered_amount", tx.get("DeliverMax", tx.get("Amount")))
        if not isinstance(amount, str) or not amount.isdigit():
            return None
        drops = int(amount)
        destination = tx.get("Destination")
        if drops <= 0 or not destination:
            return None

        tx_hash = item.get("hash") or tx.get("hash") or ""
        return Transfer(
            tx_id=str(tx_hash).upper(),
            destination=destination,
            native_amount=drops,
            success=meta.get("TransactionResult") == "tesSUCCESS",
        )
