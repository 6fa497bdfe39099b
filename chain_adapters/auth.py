"""
RPC Authentication Strategies.

Node providers disagree on where a shared API key goes. The router
walks this ordered list per endpoint until one variant answers.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthStrategy:
    """
    How to attach the credential to one request.

    Exactly one of header / query_param is set, except for the
    no-key strategy which attaches nothing.
    """
    name: str
    header: Optional[str] = None
    query_param: Optional[str] = None
    bearer: bool = False

    def apply(
        self,
        api_key: Optional[str],
        headers: dict[str, str],
        params: dict[str, str],
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Return new header/param dicts with the credential attached."""
        headers = dict(headers)
        params = dict(params)
        if not api_key:
            return headers, params
        if self.header:
            headers[self.header] = f"Bearer {api_key}" if self.bearer else api_key
        elif self.query_param:
            params[self.query_param] = api_key
        return headers, params


NO_KEY = AuthStrategy(name="no-key")

DEFAULT_AUTH_STRATEGIES: tuple[AuthStrategy, ...] = (
    AuthStrategy(name="header:api-key", header="api-key"),
    AuthStrategy(name="header:x-api-key", header="x-api-key"),
    AuthStrategy(name="header:X-API-KEY", header="X-API-KEY"),
    AuthStrategy(name="header:bearer", header="Authorization", bearer=True),
    AuthStrategy(name="query:apikey", query_param="apikey"),
    AuthStrategy(name="query:api_key", query_param="api_key"),
    AuthStrategy(name="query:apiKey", query_param="apiKey"),
)


def strategies_for(
    api_key: Optional[str],
    strategies: Optional[tuple[AuthStrategy, ...]] = None,
) -> tuple[AuthStrategy, ...]:
    """Ordered strategies to try; a single no-key attempt without a key."""
    if not api_key:
        return (NO_KEY,)
    return strategies or DEFAULT_AUTH_STRATEGIES
