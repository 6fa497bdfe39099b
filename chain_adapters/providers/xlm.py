"""
Stellar Horizon Adapter.

Heights are closed ledger sequences. Native XLM arrives either as a
`payment` with asset_type native or as the starting balance of a
`create_account`; amounts are 7-decimal strings.
"""

from typing import Any, Optional

from chain_adapters.base import BaseChainAdapter
from chain_adapters.models import BlockData, Transfer, TxLookup, TxStatus, parse_iso_datetime
from core.amounts import to_native
from core.exceptions import InvalidAmountError


class StellarHorizonAdapter(BaseChainAdapter):
    """Adapter for Horizon REST."""

    PAGE_LIMIT = 200
    MAX_PAGES = 50

    @property
    def provider_name(self) -> str:
        return "horizon"

    async def get_tip(self) -> int:
        data = await self._rest("GET", "/ledgers", params={"order": "desc", "limit": 1})
        records = self._records(data)
        if not records:
            raise self._malformed("No ledgers returned", raw=data)
        return int(records[0]["sequence"])

    async def get_block(self, height: int) -> BlockData:
        ledger = await self._rest("GET", f"/ledgers/{height}")
        if not isinstance(ledger, dict):
            raise self._malformed(f"Ledger {height} not available", raw=ledger)

        transfers: list[Transfer] = []
        cursor: Optional[str] = None
        for _ in range(self.MAX_PAGES):
            params: dict[str, Any] = {"limit": self.PAGE_LIMIT, "include_failed": "true"}
            if cursor:
                params["cursor"] = cursor
            page = await self._rest("GET", f"/ledgers/{height}/payments", params=params)
            records = self._records(page)
            for op in records:
                transfer = self._to_transfer(op)
                if transfer is not None:
                    transfers.append(transfer)
            if len(records) < self.PAGE_LIMIT:
                break
            cursor = records[-1].get("paging_token")
        else:
            raise self._malformed(
                f"Ledger {height} has more than {self.MAX_PAGES} pages of payments",
                raw={"cursor": cursor},
            )

        return BlockData(
            height=height,
            timestamp=parse_iso_datetime(ledger.get("closed_at")),
            transfers=transfers,
        )

    async def get_transaction(self, tx_id: str) -> TxLookup:
        tx = await self._rest("GET", f"/transactions/{tx_id}", not_found_ok=True)
        if tx is None:
            return TxLookup.not_found(tx_id)
        if not isinstance(tx, dict):
            raise self._malformed("Unexpected transaction payload", raw=tx)

        ops = await self._rest(
            "GET", f"/transactions/{tx_id}/operations", params={"limit": self.PAGE_LIMIT}
        )
        transfers = [
            t for t in (self._to_transfer(op, tx_id) for op in self._records(ops)) if t is not None
        ]
        status = TxStatus.FOUND if tx.get("successful", True) else TxStatus.FAILED
        return TxLookup(
            tx_id=tx_id,
            status=status,
            transfers=transfers,
            block_time=parse_iso_datetime(tx.get("closed_at") or tx.get("created_at")),
            height=tx.get("ledger"),
        )

    # ─────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _records(data: Any) -> list[dict[str, Any]]:
        if not isinstance(data, dict):
            return []
        return list((data.get("_embedded") or {}).get("records") or [])

    def _to_transfer(self, op: dict[str, Any], tx_id: Optional[str] = None) -> Optional[Transfer]:
        op_type = op.get("type")
        if op_type == "payment" and op.get("asset_type") == "native":
            destination, amount = op.get("to"), op.get("amount")
        elif op_type == "create_account":
            destination, amount = op.get("account"), op.get("starting_balance")
        else:
            return None
        if not destination or amount is None:
            return None

        try:
            stroops = to_native(amount, self.profile.decimals)
        except InvalidAmountError as e:
            raise self._malformed("Bad payment amount", raw=op, field_name="amount") from e
        if stroops <= 0:
            return None

        return Transfer(
            tx_id=str(tx_id or op.get("transaction_hash", "")).lower(),
            destination=destination,
            native_amount=stroops,
            success=bool(op.get("transaction_successful", True)),
        )
