"""
Scan Cursor Repository.

One row per canonical chain holding the last fully committed
height. advance() never moves a cursor backwards; only reset() can.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from storage.models.contributions import ScanCursor
from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import DuplicateRecordError


class CursorRepository(BaseRepository[ScanCursor]):
    """Repository for per-chain scan cursors."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, ScanCursor, "CursorRepository")

    def get(self, chain: str) -> Optional[int]:
        """Last committed height, or None before the first run."""
        cursor = self._get_by_id(chain)
        return cursor.last_scanned_height if cursor else None

    def list_all(self) -> List[ScanCursor]:
        return self._execute_query(select(ScanCursor).order_by(ScanCursor.chain))

    def advance(self, chain: str, height: int) -> int:
        """
        Move the cursor to max(current, height).

        Returns:
            The stored height after the call
        """
        cursor = self._get_by_id(chain)
        if cursor is None:
            try:
                self._add(
                    ScanCursor(chain=chain, last_scanned_height=height),
                    unique_field="chain",
                    context={"chain": chain},
                )
                return height
            except DuplicateRecordError:
                # Another writer created it first; fall through to the update.
                cursor = self._get_by_id_or_raise(chain, id_field="chain")

        if height > cursor.last_scanned_height:
            cursor.last_scanned_height = height
            self._flush("advance", {"chain": chain, "height": height})
        else:
            self._logger.debug(
                f"Cursor {chain} stays at {cursor.last_scanned_height} (offered {height})"
            )
        return cursor.last_scanned_height

    def reset(self, chain: str, height: int) -> int:
        """Set the cursor to height, backwards if needed (operator action)."""
        cursor = self._get_by_id(chain)
        if cursor is None:
            self._add(ScanCursor(chain=chain, last_scanned_height=height), unique_field="chain")
        else:
            cursor.last_scanned_height = height
            self._flush("reset", {"chain": chain, "height": height})
        self._logger.warning(f"Cursor {chain} reset to {height}")
        return height
