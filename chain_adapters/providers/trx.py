"""
Tron HTTP API Adapter (java-tron / TronGrid wallet endpoints).

Only TransferContract (native TRX) counts. Node payloads carry hex
addresses (41-prefixed); they are converted to base58check so they
compare against the wallet directory.

Endpoints (all POST):
- /wallet/getnowblock
- /wallet/getblockbynum            {"num": height}
- /wallet/gettransactionbyid       {"value": txid}
- /wallet/gettransactioninfobyid   {"value": txid}
"""

import logging
from typing import Any, Optional

import base58

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, utc_from_timestamp


logger = logging.getLogger(__name__)


def tron_hex_to_base58(address: str) -> str:
    """41-prefixed hex address to its T... base58check form."""
    raw = bytes.fromhex(address[2:] if address.lower().startswith("0x") else address)
    return base58.b58encode_check(raw).decode("ascii")


def _ms_to_datetime(ms: Any):
    return utc_from_timestamp(int(ms) // 1000) if ms else None


class TronAdapter(BaseChainAdapter):
    """Adapter for the Tron full-node HTTP API."""

    @property
    def provider_name(self) -> str:
        return "tron_http"

    async def get_tip(self) -> int:
        block = await self._rest("POST", "/wallet/getnowblock", json_body={})
        return int(self._header(block)["number"])

    async def get_block(self, height: int) -> BlockData:
        block = await self._rest("POST", "/wallet/getblockbynum", json_body={"num": height})
        if not isinstance(block, dict):
            raise self._malformed(f"Block {height} not available", raw=block)
        if not block:
            raise self._malformed(f"Block {height} not yet produced", raw=block)

        transfers = []
        for tx in block.get("transactions") or []:
            transfer = self._to_transfer(tx)
            if transfer is not None:
                transfers.append(transfer)

        return BlockData(
            height=height,
            timestamp=_ms_to_datetime(self._header(block).get("timestamp")),
            transfers=transfers,
        )

    async def get_transaction(self, tx_id: str) -> TxLookup:
        tx = await self._rest("POST", "/wallet/gettransactionbyid", json_body={"value": tx_id})
        if not tx:
            return TxLookup.not_found(tx_id)

        transfer = self._to_transfer(tx)
        transfers = [transfer] if transfer else []

        info = await self._rest("POST", "/wallet/gettransactioninfobyid", json_body={"value": tx_id})
        if not info or info.get("blockNumber") is None:
            return TxLookup.pending(tx_id, transfers=transfers)

        height = int(info["blockNumber"])
        ok = transfer.success if transfer else self._contract_ok(tx)
        receipt_result = (info.get("receipt") or {}).get("result")
        if receipt_result and receipt_result != "SUCCESS":
            ok = False

        return TxLookup(
            tx_id=tx_id,
            status=TxStatus.FOUND if ok else TxStatus.FAILED,
            transfers=transfers,
            block_time=_ms_to_datetime(info.get("blockTimeStamp")),
            height=height,
            confirmations=await self._confirmations_at(height),
        )

    # ─────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────

    def _header(self, block: Any) -> dict[str, Any]:
        try:
            return block["block_header"]["raw_data"]
        except (KeyError, TypeError) as e:
            raise self._malformed("Missing block_header.raw_data", raw=block) from e

    @staticmethod
    def _contract_ok(tx: dict[str, Any]) -> bool:
        ret = tx.get("ret") or [{}]
        return ret[0].get("contractRet", "SUCCESS") == "SUCCESS"

    def _to_transfer(self, tx: dict[str, Any]) -> Optional[Transfer]:
        contracts = (tx.get("raw_data") or {}).get("contract") or []
        if not contracts or contracts[0].get("type") != "TransferContract":
            return None
        value = (contracts[0].get("parameter") or {}).get("value") or {}
        to_hex = value.get("to_address")
        amount = int(value.get("amount") or 0)
        if not to_hex or amount <= 0:
            return None
        try:
            destination = tron_hex_to_base58(to_hex)
        except ValueError as e:
            raise self._malformed("Bad to_address", raw=value, field_name="to_address") from e
        return Transfer(
            tx_id=str(tx.get("txID", "")).lower(),
            destination=destination,
            native_amount=amount,
            success=self._contract_ok(tx),
        )
