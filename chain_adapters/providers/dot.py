"""
Polkadot Sidecar Adapter.

Reads finalized blocks from substrate-api-sidecar and credits every
balances.Transfer event, which covers transfer, transferKeepAlive,
transferAll and transfers nested in utility batches. Sidecar has no
lookup by extrinsic hash, so claims are not supported on this chain.
"""

import logging
from typing import Any, Optional

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, utc_from_timestamp


logger = logging.getLogger(__name__)


def _address(value: Any) -> Optional[str]:
    # Sidecar renders MultiAddress either as a string or {"id": "..."}
    if isinstance(value, dict):
        value = value.get("id")
    return str(value) if value else None


class PolkadotSidecarAdapter(BaseChainAdapter):
    """Adapter for substrate-api-sidecar REST."""

    SUPPORTS_TX_LOOKUP = False

    @property
    def provider_name(self) -> str:
        return "sidecar"

    async def get_tip(self) -> int:
        head = await self._rest("GET", "/blocks/head", params={"finalized": "true"})
        try:
            return int(head["number"])
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("Missing head number", raw=head) from e

    async def get_block(self, height: int) -> BlockData:
        block = await self._rest("GET", f"/blocks/{height}")
        if not isinstance(block, dict):
            raise self._malformed(f"Block {height} not available", raw=block)

        timestamp = None
        transfers: list[Transfer] = []
        for extrinsic in block.get("extrinsics") or []:
            method = extrinsic.get("method") or {}
            if method.get("pallet") == "timestamp" and method.get("method") == "set":
                now_ms = (extrinsic.get("args") or {}).get("now")
                timestamp = utc_from_timestamp(int(now_ms) // 1000) if now_ms else None
                continue

            success = bool(extrinsic.get("success", False))
            tx_id = str(extrinsic.get("hash", "")).lower()
            for event in extrinsic.get("events") or []:
                event_method = event.get("method") or {}
                if event_method.get("pallet") != "balances" or event_method.get("method") != "Transfer":
                    continue
                data = event.get("data") or []
                if len(data) < 3:
                    continue
                destination = _address(data[1])
                amount = int(data[2] or 0)
                if destination and amount > 0:
                    transfers.append(Transfer(
                        tx_id=tx_id,
                        destination=destination,
                        native_amount=amount,
                        success=success,
                    ))

        return BlockData(height=height, timestamp=timestamp, transfers=transfers)
