"""
Chain Adapter Data Models - Normalized block and transaction views.

Every provider maps its native payload onto these types so the
scanner and claim verifier never see chain-specific JSON.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class AdapterStatus(Enum):
    """Health status of a chain adapter."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class TxStatus(Enum):
    """Outcome of a single-transaction lookup."""
    FOUND = "found"
    PENDING = "pending"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Transfer:
    """
    One native-asset credit to a destination address.

    native_amount is an integer in the chain's smallest unit.
    """
    tx_id: str
    destination: str
    native_amount: int
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "destination": self.destination,
            "native_amount": str(self.native_amount),
            "success": self.success,
        }


@dataclass
class BlockData:
    """A block (or ledger/slot) with its native transfers."""
    height: int
    timestamp: Optional[datetime]
    transfers: list[Transfer] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "transfers": [t.to_dict() for t in self.transfers],
        }


@dataclass
class TxLookup:
    """Result of fetching one transaction by id."""
    tx_id: str
    status: TxStatus
    transfers: list[Transfer] = field(default_factory=list)
    block_time: Optional[datetime] = None
    height: Optional[int] = None
    confirmations: Optional[int] = None

    @classmethod
    def not_found(cls, tx_id: str) -> "TxLookup":
        return cls(tx_id=tx_id, status=TxStatus.NOT_FOUND)

    @classmethod
    def pending(cls, tx_id: str, **kwargs: Any) -> "TxLookup":
        return cls(tx_id=tx_id, status=TxStatus.PENDING, **kwargs)

    @classmethod
    def failed(cls, tx_id: str, **kwargs: Any) -> "TxLookup":
        return cls(tx_id=tx_id, status=TxStatus.FAILED, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "status": self.status.value,
            "transfers": [t.to_dict() for t in self.transfers],
            "block_time": self.block_time.isoformat() if self.block_time else None,
            "height": self.height,
            "confirmations": self.confirmations,
        }


@dataclass
class AdapterHealth:
    """
    Rolling health of one adapter.

    Status follows consecutive failures: DEGRADED after a few,
    UNAVAILABLE after more, HEALTHY again on the next success.
    """
    status: AdapterStatus = AdapterStatus.UNKNOWN
    consecutive_failures: int = 0
    total_failures: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None
    last_endpoint: Optional[str] = None
    tip_height: Optional[int] = None
    latency_ms: Optional[float] = None
    checked_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "last_error": self.last_error,
            "last_error_at": self.last_error_at.isoformat() if self.last_error_at else None,
            "last_endpoint": self.last_endpoint,
            "tip_height": self.tip_height,
            "latency_ms": self.latency_ms,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }


def utc_from_timestamp(seconds: Any) -> Optional[datetime]:
    """Timezone-aware UTC datetime from unix seconds, None if absent."""
    if seconds is None:
        return None
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse provider ISO-8601 timestamps (with trailing Z) to aware UTC."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Cosmos reports nanoseconds; fromisoformat accepts at most micro.
    if "." in text:
        head, _, tail = text.partition(".")
        digits = ""
        rest = ""
        for i, ch in enumerate(tail):
            if ch.isdigit():
                digits += ch
            else:
                rest = tail[i:]
                break
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
