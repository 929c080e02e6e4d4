"""
Claim Router

The x402 claim endpoint. Each POST is evaluated on its own: reject an
invalid proof, challenge a request without payment evidence, grant the
reward otherwise.

Endpoints:
    POST    /api/claim - Submit a claim ({proof, paymentResolved?})
    GET     /api/claim - 405, use POST
    OPTIONS /api/claim - CORS preflight (204)

The trailing-slash form /api/claim/ is served identically.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from apps.services.claim_server.challenge_ledger import ChallengeLedger, apply_ledger
from apps.services.claim_server.dependencies import get_challenge_ledger, get_server_settings
from libs.core.config import ClaimServerSettings
from libs.core.logging_config import log_claim_decision
from libs.x402.headers import (
    CORS_ALLOWED_HEADERS,
    CORS_ALLOWED_METHODS,
    PAYMENT_HEADER,
    PAYMENT_RESOLVED_HEADER,
)
from libs.x402.validation import decide_claim

logger = logging.getLogger(__name__)

router = APIRouter(tags=["claim"])


def _parse_body(raw: bytes) -> Any:
    """Decode a JSON body; anything unparseable becomes None (an invalid proof)."""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError, RecursionError):
        logger.info("[Claim] Unparseable request body")
        return None


@router.options("/api/claim")
@router.options("/api/claim/")
async def claim_preflight(
    request: Request,
    settings: ClaimServerSettings = Depends(get_server_settings),
) -> Response:
    """CORS preflight for the claim endpoint."""
    origin = request.headers.get("origin") or settings.cors_default_origin
    return Response(
        status_code=204,
        headers={
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": CORS_ALLOWED_METHODS,
            "Access-Control-Allow-Headers": CORS_ALLOWED_HEADERS,
        },
    )


@router.get("/api/claim")
@router.get("/api/claim/")
async def claim_wrong_method() -> JSONResponse:
    return JSONResponse({"error": "Method Not Allowed", "use": "POST"}, status_code=405)


@router.post("/api/claim")
@router.post("/api/claim/")
async def claim(
    request: Request,
    settings: ClaimServerSettings = Depends(get_server_settings),
    ledger: Optional[ChallengeLedger] = Depends(get_challenge_ledger),
) -> JSONResponse:
    """
    Evaluate a claim attempt.

    Returns:
        400 for a missing/invalid proof, 402 with an x402-payment-request
        header when payment evidence is missing, 200 with the reward
        otherwise (409 for a replayed proof when the ledger is enabled)
    """
    body = _parse_body(await request.body())
    headers = request.headers

    proof_present = isinstance(body, dict) and bool(body.get("proof"))
    logger.info(
        f"[POST /api/claim] proof={'yes' if proof_present else 'no'}, "
        f"{PAYMENT_HEADER}={'yes' if headers.get(PAYMENT_HEADER) else 'no'}, "
        f"{PAYMENT_RESOLVED_HEADER}={headers.get(PAYMENT_RESOLVED_HEADER) or '(none)'}"
    )

    decision = decide_claim(
        body,
        headers,
        challenge_token=settings.challenge_token,
        reward_label=settings.reward_label,
    )
    if ledger is not None:
        decision = apply_ledger(decision, body, ledger)

    log_claim_decision(
        logger,
        decision.kind.value,
        decision.status_code,
        "ledger" if ledger is not None else "",
    )
    return JSONResponse(decision.body, status_code=decision.status_code, headers=decision.headers)
