"""
Wallet Repository.

Read side of the wallet directory plus the operator helpers used by
the bootstrap script.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from storage.models.contributions import Wallet
from storage.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Repository for project-owned wallets."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, Wallet, "WalletRepository")

    def list_active(self) -> List[Wallet]:
        """All active wallets, any chain spelling."""
        stmt = select(Wallet).where(Wallet.is_active.is_(True)).order_by(Wallet.chain, Wallet.address)
        return self._execute_query(stmt)

    def list_all(self) -> List[Wallet]:
        return self._execute_query(select(Wallet).order_by(Wallet.chain, Wallet.address))

    def get_by_id(self, wallet_id: str) -> Optional[Wallet]:
        return self._get_by_id(wallet_id)

    def find(self, chain: str, address: str) -> Optional[Wallet]:
        stmt = select(Wallet).where(Wallet.chain == chain, Wallet.address == address)
        return self._execute_scalar(stmt)

    def create(
        self,
        chain: str,
        address: str,
        is_active: bool = True,
        label: Optional[str] = None,
        wallet_id: Optional[str] = None,
    ) -> Wallet:
        """
        Insert a wallet.

        Raises:
            DuplicateRecordError: (chain, address) already present
        """
        wallet = Wallet(chain=chain, address=address, is_active=is_active, label=label)
        if wallet_id:
            wallet.id = wallet_id
        return self._add(
            wallet,
            unique_field="address",
            context={"chain": chain, "address": address},
        )

    def set_active(self, wallet_id: str, is_active: bool) -> Wallet:
        wallet = self._get_by_id_or_raise(wallet_id)
        wallet.is_active = is_active
        self._flush("set_active", {"id": wallet_id})
        return wallet
