"""
Discovery and Health Router

Endpoints:
    GET /        - Service discovery (points at the claim endpoint)
    GET /healthz - Health check
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from apps.services.claim_server.challenge_ledger import ChallengeLedger
from apps.services.claim_server.dependencies import get_challenge_ledger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["discovery"])


@router.get("/")
async def index() -> Dict[str, Any]:
    return {"ok": True, "message": "X402 claim API", "claim": "POST /api/claim"}


@router.get("/healthz")
async def healthz(
    ledger: Optional[ChallengeLedger] = Depends(get_challenge_ledger),
) -> Dict[str, Any]:
    """
    Health check.

    Returns:
        Status dict; includes ledger counters when the ledger is enabled
    """
    status: Dict[str, Any] = {"status": "healthy", "ledger_enabled": ledger is not None}
    if ledger is not None:
        status["ledger"] = ledger.stats()
    return status
