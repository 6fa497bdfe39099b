"""
Cosmos Hub LCD Adapter.

Native ATOM transfers are bank MsgSend / MsgMultiSend messages with
uatom coins. A non-zero tx `code` means the tx failed. Block time is
taken from the tx responses of the height, so empty heights cost a
single request.
"""

import logging
from collections import OrderedDict
from typing import Any, Optional

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, parse_iso_datetime


logger = logging.getLogger(__name__)


NATIVE_DENOM = "uatom"
MSG_SEND = "/cosmos.bank.v1beta1.MsgSend"
MSG_MULTI_SEND = "/cosmos.bank.v1beta1.MsgMultiSend"


def _uatom(coins: Any) -> int:
    return sum(
        int(coin.get("amount") or 0)
        for coin in coins or []
        if isinstance(coin, dict) and coin.get("denom") == NATIVE_DENOM
    )


class CosmosLcdAdapter(BaseChainAdapter):
    """Adapter for Cosmos SDK REST (LCD) endpoints."""

    PAGE_LIMIT = 100

    @property
    def provider_name(self) -> str:
        return "cosmos_lcd"

    async def get_tip(self) -> int:
        data = await self._rest("GET", "/cosmos/base/tendermint/v1beta1/blocks/latest")
        try:
            return int(data["block"]["header"]["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("Missing block.header.height", raw=data) from e

    async def get_block(self, height: int) -> BlockData:
        transfers: list[Transfer] = []
        timestamp = None
        offset = 0
        while True:
            page = await self._rest(
                "GET",
                "/cosmos/tx/v1beta1/txs",
                params={
                    "events": f"tx.height={height}",
                    "pagination.limit": self.PAGE_LIMIT,
                    "pagination.offset": offset,
                },
            )
            if not isinstance(page, dict):
                raise self._malformed(f"Height {height}: unexpected txs page", raw=page)

            responses = page.get("tx_responses") or []
            for response in responses:
                timestamp = timestamp or parse_iso_datetime(response.get("timestamp"))
                transfers.extend(self._tx_transfers(response))

            offset += len(responses)
            total = int((page.get("pagination") or {}).get("total") or 0)
            if not responses or offset >= total:
                break

        return BlockData(height=height, timestamp=timestamp, transfers=transfers)

    async def get_transaction(self, tx_id: str) -> TxLookup:
        data = await self._rest("GET", f"/cosmos/tx/v1beta1/txs/{tx_id}", not_found_ok=True)
        if data is None:
            return TxLookup.not_found(tx_id)
        response = data.get("tx_response") if isinstance(data, dict) else None
        if not isinstance(response, dict):
            raise self._malformed("Missing tx_response", raw=data)

        height = int(response.get("height") or 0) or None
        status = TxStatus.FOUND if int(response.get("code") or 0) == 0 else TxStatus.FAILED
        return TxLookup(
            tx_id=tx_id,
            status=status,
            transfers=self._tx_transfers(response),
            block_time=parse_iso_datetime(response.get("timestamp")),
            height=height,
            confirmations=await self._confirmations_at(height),
        )

    @staticmethod
    def _tx_transfers(response: dict[str, Any]) -> list[Transfer]:
        tx_id = str(response.get("txhash", "")).upper()
        success = int(response.get("code") or 0) == 0
        messages = (((response.get("tx") or {}).get("body") or {}).get("messages")) or []

        totals: "OrderedDict[str, int]" = OrderedDict()

        def credit(address: Optional[str], amount: int) -> None:
            if address and amount > 0:
                totals[address] = totals.get(address, 0) + amount

        for msg in messages:
            msg_type = msg.get("@type")
            if msg_type == MSG_SEND:
                credit(msg.get("to_address"), _uatom(msg.get("amount")))
            elif msg_type == MSG_MULTI_SEND:
                for output in msg.get("outputs") or []:
                    credit(output.get("address"), _uatom(output.get("coins")))

        return [
            Transfer(tx_id=tx_id, destination=address, native_amount=amount, success=success)
            for address, amount in totals.items()
        ]
