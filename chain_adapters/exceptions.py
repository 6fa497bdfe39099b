"""
Chain Adapter Exceptions.

Only transport trouble and unreadable provider payloads are raised.
A transaction that is unknown, pending or failed on-chain is a
normal TxLookup result, not an exception.

Every class carries a stable `code` that ends up in scan summaries
and claim outcomes.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class ChainAdapterError(Exception):
    """Base for everything a chain adapter or RPC router raises."""

    code = "adapter_error"

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        chain: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.adapter_name = adapter_name
        self.chain = chain
        self.original_error = original_error
        self.context = context or {}
        self.raised_at = datetime.now(timezone.utc)

    def _details(self) -> dict[str, Any]:
        """Subclass fields merged into to_dict()."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        data = {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "chain": self.chain,
            "adapter_name": self.adapter_name,
            "cause": repr(self.original_error) if self.original_error else None,
            "context": self.context,
            "raised_at": self.raised_at.isoformat(),
        }
        data.update(self._details())
        return data

    def __str__(self) -> str:
        where = "/".join(p for p in (self.chain, self.adapter_name) if p)
        text = f"[{where}] {self.message}" if where else self.message
        if self.original_error:
            text += f" ({self.original_error!r})"
        return text


# ============================================================
# REQUEST ATTEMPTS
# ============================================================

class FetchError(ChainAdapterError):
    """
    One (endpoint, auth variant) attempt failed.

    The router catches these and moves on; callers only ever see
    RpcUnavailableError once every attempt is used up. status_code
    is None when the endpoint could not be reached at all.
    """

    code = "fetch_error"

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, "rpc_router", chain, original_error)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def _details(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "request_url": self.request_url,
            "response_body": self.response_body,
        }


class RateLimitError(FetchError):
    """HTTP 429 from one endpoint."""

    code = "rate_limited"

    def __init__(self, message: str, chain: Optional[str] = None, request_url: Optional[str] = None) -> None:
        super().__init__(message, chain, status_code=429, request_url=request_url)


class RpcResponseError(ChainAdapterError):
    """
    JSON-RPC error the adapter explicitly asked to receive, such as
    a skipped Solana slot or bitcoind's "No such transaction" (-5).

    The node is healthy, so this is not retried elsewhere.
    """

    code = "rpc_response_error"

    def __init__(
        self,
        message: str,
        rpc_code: Optional[int] = None,
        rpc_method: Optional[str] = None,
        adapter_name: Optional[str] = None,
        chain: Optional[str] = None,
    ) -> None:
        super().__init__(message, adapter_name, chain)
        self.rpc_code = rpc_code
        self.rpc_method = rpc_method

    def _details(self) -> dict[str, Any]:
        return {"rpc_code": self.rpc_code, "rpc_method": self.rpc_method}


# ============================================================
# ADAPTER OUTCOMES
# ============================================================

class RpcUnavailableError(ChainAdapterError):
    """Every endpoint and auth variant failed on every pass."""

    code = "rpc_unavailable"

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        attempts: Optional[list[dict[str, Any]]] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, "rpc_router", chain, original_error)
        self.attempts = attempts or []

    def _details(self) -> dict[str, Any]:
        return {"attempts": self.attempts[-20:]}


class NormalizationError(ChainAdapterError):
    """Provider answered, but not in a shape the adapter understands."""

    code = "normalization_error"

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        chain: Optional[str] = None,
        raw_data: Optional[Any] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(message, adapter_name, chain)
        self.raw_data = raw_data
        self.field_name = field_name

    def _details(self) -> dict[str, Any]:
        raw = None if self.raw_data is None else str(self.raw_data)[:500]
        return {"field_name": self.field_name, "raw_data": raw}


class TxLookupNotSupportedError(ChainAdapterError):
    """Provider has no lookup of a single transaction by id."""

    code = "unsupported_chain"


class ChainNotSupportedError(ChainAdapterError):
    """Known chain, but no endpoints configured for it."""

    code = "unsupported_chain"

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        configured_chains: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, None, chain)
        self.configured_chains = configured_chains or []

    def _details(self) -> dict[str, Any]:
        return {"configured_chains": self.configured_chains}
