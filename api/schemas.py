"""
Pydantic Schemas for the Contribution API.

Request and response models for ingestion, claims and cursors.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ClaimCodeEnum(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    TX_NOT_FOUND = "tx_not_found"
    TX_PENDING = "tx_pending"
    NOT_PROJECT_WALLET = "not_project_wallet"
    INVALID_PAYLOAD = "invalid_payload"
    RPC_ERROR = "rpc_error"
    DB_ERROR = "db_error"


class ClaimRequest(BaseModel):
    """Schema for a user-submitted claim."""
    chain: str = Field(..., description="Chain slug or alias, e.g. 'eth' or 'ethereum'")
    tx: str = Field(..., description="Transaction hash or signature")
    note: Optional[str] = Field(None, description="Optional note, at most 280 characters")


class ClaimRowSchema(BaseModel):
    wallet_id: str
    address: str
    amount: Optional[str] = None
    status: str


class ClaimResponse(BaseModel):
    """Schema for claim verification result."""
    ok: bool
    code: ClaimCodeEnum
    message: str
    reason: Optional[str] = None
    chain: Optional[str] = None
    tx: Optional[str] = None
    rows: List[ClaimRowSchema] = Field(default_factory=list)


class ScanResponse(BaseModel):
    """Schema for one ingestion run."""
    chain: str
    reason: str
    tip: Optional[int] = None
    safe_tip: Optional[int] = None
    start: Optional[int] = None
    end: Optional[int] = None
    scanned: int = 0
    matched: int = 0
    inserted: int = 0
    duplicates: int = 0
    rejected: int = 0
    last_committed_height: Optional[int] = None
    aborted: bool = False
    budget_exhausted: bool = False
    error: Optional[str] = None
    error_detail: Optional[str] = None
    started_at: datetime
    duration_ms: float = 0.0


class CursorResponse(BaseModel):
    chain: str
    last_scanned_height: int
    updated_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None
