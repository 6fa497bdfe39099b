"""
Claims Package.

Verification of user-submitted transactions.
"""

from claims.verifier import (
    OUTCOME_MESSAGES,
    ClaimOutcome,
    ClaimResult,
    ClaimState,
    ClaimVerifier,
)


__all__ = [
    "OUTCOME_MESSAGES",
    "ClaimOutcome",
    "ClaimResult",
    "ClaimState",
    "ClaimVerifier",
]
