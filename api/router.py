"""
FastAPI Router for Contribution Endpoints.

Provides REST API for:
- Triggering a chain scan
- Verifying a claimed transaction
- Inspecting scan cursors
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from api.schemas import ClaimRequest, ClaimResponse, CursorResponse, ScanResponse
from chain_adapters.exceptions import ChainNotSupportedError
from claims.verifier import ClaimOutcome
from core.config import EngineConfig
from core.exceptions import InvalidChainError, StoreError
from ingestion.scanner import ScanResult
from ingestion.service import SCAN_IN_PROGRESS, IngestionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contributions"])


CLAIM_STATUS_CODES: dict[ClaimOutcome, int] = {
    ClaimOutcome.INSERTED: 200,
    ClaimOutcome.DUPLICATE: 200,
    ClaimOutcome.NOT_PROJECT_WALLET: 200,
    ClaimOutcome.INVALID_PAYLOAD: 400,
    ClaimOutcome.TX_NOT_FOUND: 404,
    ClaimOutcome.TX_PENDING: 409,
    ClaimOutcome.RPC_UNAVAILABLE: 502,
    ClaimOutcome.STORE_ERROR: 500,
}


# =============================================================
# HELPER: Service dependency
# =============================================================

_service: Optional[IngestionService] = None


def get_service() -> IngestionService:
    """Process-wide service built from the environment."""
    global _service
    if _service is None:
        _service = IngestionService.from_config(EngineConfig.from_env())
    return _service


async def shutdown_service() -> None:
    global _service
    if _service is not None:
        await _service.close()
    _service = None


def scan_status_code(result: ScanResult) -> int:
    if result.error == SCAN_IN_PROGRESS:
        return 409
    if result.error == "store_error":
        return 500
    if result.aborted:
        return 502
    return 200


# =============================================================
# INGESTION ENDPOINTS
# =============================================================

@router.post("/ingest/{chain}", response_model=ScanResponse)
async def run_ingestion(
    chain: str,
    since_height: Optional[int] = Query(None, ge=0),
    since_hours: Optional[float] = Query(None, gt=0),
    overlap: Optional[int] = Query(None, ge=1),
    max_blocks: Optional[int] = Query(None, ge=1),
    min_confirmations: Optional[int] = Query(None, ge=0),
    service: IngestionService = Depends(get_service),
):
    """
    Scan one chain for contributions.

    Returns the run summary. 409 when a scan of the same chain is
    already running, 502 when the chain provider failed.
    """
    try:
        result = await service.run_ingestion(
            chain,
            since_height=since_height,
            since_hours=since_hours,
            overlap=overlap,
            max_blocks=max_blocks,
            min_confirmations=min_confirmations,
        )
    except InvalidChainError:
        raise HTTPException(status_code=400, detail=f"Unsupported chain: {chain}")
    except ChainNotSupportedError as e:
        raise HTTPException(status_code=400, detail=e.message)

    body = ScanResponse(**result.to_dict())
    return JSONResponse(status_code=scan_status_code(result), content=body.model_dump(mode="json"))


# =============================================================
# CLAIM ENDPOINTS
# =============================================================

@router.post("/claim", response_model=ClaimResponse)
async def verify_claim(
    request: ClaimRequest,
    service: IngestionService = Depends(get_service),
):
    """
    Verify a claimed transaction and record it if it pays a project wallet.

    The body always carries the outcome code and message; the HTTP
    status follows the outcome.
    """
    result = await service.verify_and_record(request.chain, request.tx, request.note)
    body = ClaimResponse(**result.to_dict())
    return JSONResponse(
        status_code=CLAIM_STATUS_CODES[result.outcome],
        content=body.model_dump(mode="json"),
    )


# =============================================================
# DIAGNOSTIC ENDPOINTS
# =============================================================

@router.get("/cursors", response_model=List[CursorResponse])
def list_cursors(service: IngestionService = Depends(get_service)):
    """Current scan cursor per chain."""
    try:
        return [CursorResponse(**c) for c in service.list_cursors()]
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.get("/health")
def health(service: IngestionService = Depends(get_service)):
    """Adapter health and scanner states."""
    return {
        "status": "ok",
        "adapters": service.registry.get_status_summary(),
        "scanners": service.scanner_states(),
    }
