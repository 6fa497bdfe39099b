"""
RPC Fallback Router - Endpoint pool with auth variants and retry passes.

============================================================
RESPONSIBILITY
============================================================
Sends one logical request (JSON-RPC or REST) to a pool of
equivalent endpoints and returns the first well-formed answer.

- Endpoints are tried in pool order
- For each endpoint, every auth strategy is tried in order
- After a failed pass, extra passes run with exponential backoff
- Exhaustion raises RpcUnavailableError with the attempt log

============================================================
DESIGN PRINCIPLES
============================================================
- No side effects besides network calls
- Per-attempt timeout on every request
- Definitive answers from a healthy node are not retried:
  REST 404 (when the caller asks) and selected JSON-RPC error codes
- The last working (endpoint, strategy) pair is tried first next time

============================================================
USAGE
============================================================
    router = RpcRouter("eth", ["https://a.example", "https://b.example"], api_key=key)
    height_hex = await router.call("eth_blockNumber")
    tx = await router.request("GET", "/tx/abc", not_found_ok=True)

============================================================
"""

import asyncio
import json
import logging
import time
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Optional
from urllib.parse import urlsplit

import aiohttp

from chain_adapters.auth import AuthStrategy, strategies_for
from chain_adapters.exceptions import (
    FetchError,
    RateLimitError,
    RpcResponseError,
    RpcUnavailableError,
)
from core.config import RouterConfig, parse_endpoint_pool
from core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


AttemptFn = Callable[[str, AuthStrategy], Awaitable[Any]]


def redact_endpoint(endpoint: str) -> str:
    """scheme://host only; pool URLs may embed credentials in the path."""
    parts = urlsplit(endpoint)
    if not parts.scheme:
        return endpoint
    return f"{parts.scheme}://{parts.hostname or ''}"


class RpcRouter:
    """
    Fallback router over an ordered endpoint pool.

    One router per chain. Safe to share between concurrent tasks.
    """

    DEFAULT_TIMEOUT = 20.0
    MAX_ATTEMPT_LOG = 200
    USER_AGENT = "ContributionEngine/1.0"

    def __init__(
        self,
        chain: str,
        endpoints: Iterable[str],
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        extra_passes: int = 2,
        backoff_seconds: float = 0.4,
        variant_pause_seconds: float = 0.2,
        strategies: Optional[tuple[AuthStrategy, ...]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        parse_float_as_decimal: bool = False,
    ) -> None:
        self._chain = chain
        self._endpoints = parse_endpoint_pool(*endpoints)
        if not self._endpoints:
            raise ConfigurationError(
                f"No RPC endpoints configured for {chain}",
                config_key=f"{chain.upper()}_RPC_POOL",
            )
        self._api_key = api_key
        self._strategies = strategies_for(api_key, strategies)
        self._timeout = timeout
        self._extra_passes = max(0, extra_passes)
        self._backoff_seconds = backoff_seconds
        self._variant_pause = variant_pause_seconds
        self._session = session
        self._owns_session = session is None
        self._preferred: Optional[tuple[str, AuthStrategy]] = None
        self._request_id = 0
        self._attempts: list[dict[str, Any]] = []
        if parse_float_as_decimal:
            self._loads: Callable[[str], Any] = lambda text: json.loads(text, parse_float=Decimal)
        else:
            self._loads = json.loads

    @classmethod
    def from_config(
        cls,
        chain: str,
        endpoints: Iterable[str],
        config: RouterConfig,
        timeout: float,
        **kwargs: Any,
    ) -> "RpcRouter":
        return cls(
            chain,
            endpoints,
            api_key=config.api_key,
            timeout=timeout,
            extra_passes=config.extra_passes,
            backoff_seconds=config.backoff_seconds,
            variant_pause_seconds=config.variant_pause_seconds,
            **kwargs,
        )

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def endpoints(self) -> list[str]:
        return list(self._endpoints)

    @property
    def strategies(self) -> tuple[AuthStrategy, ...]:
        return self._strategies

    @property
    def last_used(self) -> Optional[dict[str, str]]:
        """The (endpoint, strategy) pair that last answered."""
        if self._preferred is None:
            return None
        endpoint, strategy = self._preferred
        return {"endpoint": redact_endpoint(endpoint), "auth": strategy.name}

    def get_attempts(self, limit: int = 20) -> list[dict[str, Any]]:
        return self._attempts[-limit:]

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def call(
        self,
        method: str,
        params: Optional[list[Any]] = None,
        passthrough_codes: Iterable[int] = (),
    ) -> Any:
        """
        JSON-RPC 2.0 call.

        Args:
            method: RPC method name
            params: Positional params
            passthrough_codes: JSON-RPC error codes that are definitive
                answers; raised as RpcResponseError without fallback

        Returns:
            The "result" member of the response

        Raises:
            RpcResponseError: Node answered with a passthrough error code
            RpcUnavailableError: Every attempt failed
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params if params is not None else [],
        }
        definitive = frozenset(passthrough_codes)

        async def attempt(endpoint: str, strategy: AuthStrategy) -> Any:
            headers, query = strategy.apply(self._api_key, {}, {})
            status, text = await self._send("POST", endpoint, headers, query, json_body=payload)
            data = self._parse(text)

            error = data.get("error") if isinstance(data, dict) else None
            if error:
                rpc_code = error.get("code") if isinstance(error, dict) else None
                rpc_message = error.get("message") if isinstance(error, dict) else str(error)
                if rpc_code in definitive:
                    raise RpcResponseError(
                        message=str(rpc_message),
                        rpc_code=rpc_code,
                        rpc_method=method,
                        adapter_name="rpc_router",
                        chain=self._chain,
                    )
                raise FetchError(
                    message=f"RPC error {rpc_code}: {rpc_message}",
                    chain=self._chain,
                    status_code=status,
                    request_url=redact_endpoint(endpoint),
                )
            self._raise_for_status(status, endpoint, data)
            if not isinstance(data, dict) or "result" not in data:
                raise FetchError(
                    message="Malformed JSON-RPC response",
                    chain=self._chain,
                    status_code=status,
                    request_url=redact_endpoint(endpoint),
                )
            return data["result"]

        return await self._dispatch(method, attempt)

    async def request(
        self,
        http_method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        not_found_ok: bool = False,
        as_text: bool = False,
    ) -> Any:
        """
        REST call relative to each endpoint base URL.

        Returns:
            Parsed JSON body (stripped text when as_text), or None for
            a 404 when not_found_ok

        Raises:
            RpcUnavailableError: Every attempt failed
        """
        suffix = path if path.startswith("/") else f"/{path}"
        base_params = {k: str(v) for k, v in (params or {}).items()}

        async def attempt(endpoint: str, strategy: AuthStrategy) -> Any:
            req_headers, query = strategy.apply(self._api_key, {}, base_params)
            status, text = await self._send(
                http_method, endpoint + suffix, req_headers, query, json_body=json_body
            )
            if status == 404 and not_found_ok:
                return None
            self._raise_for_status(status, endpoint, text)
            data = text.strip() if as_text else self._parse(text)
            if data is None or data == "":
                raise FetchError(
                    message="Empty or non-JSON response",
                    chain=self._chain,
                    status_code=status,
                    request_url=redact_endpoint(endpoint),
                )
            return data

        return await self._dispatch(f"{http_method} {path}", attempt)

    # ─────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────

    def _attempt_order(self) -> list[tuple[str, AuthStrategy]]:
        order = [(e, s) for e in self._endpoints for s in self._strategies]
        if self._preferred in order:
            order.remove(self._preferred)
            order.insert(0, self._preferred)
        return order

    async def _dispatch(self, label: str, attempt: AttemptFn) -> Any:
        last_error: Optional[Exception] = None
        total_passes = 1 + self._extra_passes

        for pass_no in range(total_passes):
            if pass_no > 0:
                delay = self._backoff_seconds * (2 ** (pass_no - 1))
                logger.warning(
                    f"[{self._chain}] {label}: pass {pass_no}/{total_passes - 1} "
                    f"failed, retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)

            unreachable: set[str] = set()
            first = True
            for endpoint, strategy in self._attempt_order():
                if endpoint in unreachable:
                    continue
                if not first and self._variant_pause > 0:
                    await asyncio.sleep(self._variant_pause)
                first = False

                started = time.monotonic()
                try:
                    result = await attempt(endpoint, strategy)
                except RpcResponseError:
                    self._preferred = (endpoint, strategy)
                    self._record_attempt(endpoint, strategy, label, started, ok=True)
                    raise
                except FetchError as e:
                    last_error = e
                    self._record_attempt(endpoint, strategy, label, started, ok=False, error=e)
                    logger.debug(
                        f"[{self._chain}] {label} via {redact_endpoint(endpoint)} "
                        f"({strategy.name}) failed: {e.message}"
                    )
                    if e.status_code is None:
                        unreachable.add(endpoint)
                    continue

                if self._preferred != (endpoint, strategy):
                    logger.debug(
                        f"[{self._chain}] Using {redact_endpoint(endpoint)} ({strategy.name})"
                    )
                self._preferred = (endpoint, strategy)
                self._record_attempt(endpoint, strategy, label, started, ok=True)
                return result

        logger.warning(f"[{self._chain}] {label}: all endpoints exhausted")
        raise RpcUnavailableError(
            message=f"All RPC endpoints failed for {label}",
            chain=self._chain,
            attempts=self.get_attempts(limit=len(self._endpoints) * len(self._strategies) * total_passes),
            original_error=last_error,
        )

    async def _send(
        self,
        http_method: str,
        url: str,
        headers: dict[str, str],
        params: dict[str, str],
        json_body: Optional[Any] = None,
    ) -> tuple[int, str]:
        """One HTTP attempt. Returns (status, body text)."""
        session = await self._get_session()
        try:
            async with session.request(
                http_method,
                url,
                headers=headers,
                params=params or None,
                json=json_body,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                text = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            raise FetchError(
                message=f"Timeout after {self._timeout}s",
                chain=self._chain,
                request_url=redact_endpoint(url),
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                chain=self._chain,
                request_url=redact_endpoint(url),
                original_error=e,
            ) from e

        if status == 429:
            raise RateLimitError(
                message="Rate limit exceeded",
                chain=self._chain,
                request_url=redact_endpoint(url),
            )

        return status, text

    def _parse(self, text: str) -> Any:
        """Parsed JSON body, None when empty or not JSON."""
        if not text or not text.strip():
            return None
        try:
            return self._loads(text)
        except ValueError:
            return None

    def _raise_for_status(self, status: int, endpoint: str, data: Any) -> None:
        if status >= 400:
            raise FetchError(
                message=f"HTTP {status}",
                chain=self._chain,
                status_code=status,
                response_body=str(data)[:500] if data is not None else None,
                request_url=redact_endpoint(endpoint),
            )

    def _record_attempt(
        self,
        endpoint: str,
        strategy: AuthStrategy,
        label: str,
        started: float,
        ok: bool,
        error: Optional[FetchError] = None,
    ) -> None:
        self._attempts.append({
            "endpoint": redact_endpoint(endpoint),
            "auth": strategy.name,
            "call": label,
            "ok": ok,
            "status": error.status_code if error else None,
            "error": error.message if error else None,
            "elapsed_ms": round((time.monotonic() - started) * 1000, 1),
        })
        if len(self._attempts) > self.MAX_ATTEMPT_LOG:
            self._attempts = self._attempts[-self.MAX_ATTEMPT_LOG:]

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json", "User-Agent": self.USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "RpcRouter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<RpcRouter(chain={self._chain}, endpoints={len(self._endpoints)})>"
