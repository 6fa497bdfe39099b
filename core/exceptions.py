"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Engine-wide error types. Each carries a stable `code` that the
API, scan summaries and claim outcomes report verbatim.

- InputError: bad chain, tx id or amount; raised before any
  network or store access
- StoreError: the database failed mid-operation; the caller's
  unit of work is abandoned and may be retried
- ConfigurationError: the engine cannot start as configured

============================================================
EXCEPTION HIERARCHY
============================================================
ContributionEngineError
├── ConfigurationError
├── InputError
│   ├── InvalidChainError      (unsupported_chain)
│   ├── InvalidTxIdError       (code = the rejection reason)
│   └── InvalidAmountError     (invalid_amount)
├── StoreError                 (store_error, transient)
└── pricing.PricingError       (pricing_error, transient)

Adapter errors live in chain_adapters.exceptions, repository
errors in storage.repositories.exceptions.

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorClassification(Enum):
    """Whether a later attempt can succeed without changes."""

    TRANSIENT = "transient"
    NON_RECOVERABLE = "non_recoverable"


class ContributionEngineError(Exception):
    """
    Base exception for engine errors.

    Subclasses set default_code / default_classification; a
    `cause` is folded into the context for structured logs.
    """

    default_code: str = "engine_error"
    default_classification: ErrorClassification = ErrorClassification.NON_RECOVERABLE

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.classification = classification or self.default_classification
        self.cause = cause
        self.context = dict(context or {})
        if cause is not None:
            self.context.setdefault("cause", f"{type(cause).__name__}: {cause}")
        self.raised_at = datetime.now(timezone.utc)

    @property
    def is_transient(self) -> bool:
        return self.classification is ErrorClassification.TRANSIENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "transient": self.is_transient,
            "context": self.context,
            "raised_at": self.raised_at.isoformat(),
        }


class ConfigurationError(ContributionEngineError):
    """Missing or contradictory settings, e.g. an empty endpoint pool."""

    default_code = "configuration_error"

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or {}
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key


# ============================================================
# INPUT ERRORS
# ============================================================

class InputError(ContributionEngineError):
    """The caller sent something the engine cannot act on."""

    default_code = "invalid_payload"


class InvalidChainError(InputError):
    """Name is neither a chain slug nor a known alias."""

    default_code = "unsupported_chain"

    def __init__(self, chain: Any):
        super().__init__(f"Unsupported chain: {chain!r}", context={"chain": str(chain)})
        self.chain = chain


class InvalidTxIdError(InputError):
    """Transaction id has the wrong shape for its chain; code is the reason."""

    def __init__(self, chain: str, tx_id: Any, reason: str):
        super().__init__(
            f"Invalid transaction id for {chain}: {reason}",
            code=reason,
            context={"chain": chain, "tx_id": str(tx_id)[:120]},
        )
        self.chain = chain
        self.tx_id = tx_id
        self.reason = reason


class InvalidAmountError(InputError):
    """Amount cannot be represented exactly in the chain's smallest unit."""

    default_code = "invalid_amount"

    def __init__(self, value: Any, reason: str = "amount must be a positive integer"):
        super().__init__(f"Invalid amount {value!r}: {reason}", context={"value": str(value)[:100]})
        self.value = value


# ============================================================
# STORE ERRORS
# ============================================================

class StoreError(ContributionEngineError):
    """A repository error other than a unique-key hit escaped."""

    default_code = "store_error"
    default_classification = ErrorClassification.TRANSIENT
