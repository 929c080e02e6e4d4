"""
Claim validation - attestation check, payment evidence check, and the
three-way claim decision built on top of them.

Everything in this module is pure: no I/O, no logging, no state. The claim
server turns a ClaimDecision into an HTTP response.

Decision order (first match wins):
    1. invalid or missing proof       -> REJECT    (400)
    2. no payment evidence            -> CHALLENGE (402 + x402-payment-request)
    3. otherwise                      -> GRANT     (200 + reward)
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from libs.core.models import ClaimDecisionKind
from libs.x402.headers import (
    CHALLENGE_HEADER,
    PAYMENT_HEADER,
    PAYMENT_RESOLVED_HEADER,
)

INVALID_PROOF_ERROR = "Missing or invalid EZKL proof in body"
PAYMENT_REQUIRED_ERROR = "Payment Required"
PAYMENT_REQUIRED_MESSAGE = f"{PAYMENT_HEADER} header required to complete claim"


@dataclass(frozen=True)
class ClaimDecision:
    """Outcome of evaluating one inbound claim."""

    kind: ClaimDecisionKind
    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


def is_valid_attestation(body: Any) -> bool:
    """
    Check that a claim body carries an acceptable proof shape.

    The body must be a mapping with a nested ``proof`` mapping, and the proof
    must have ``verified`` set to exactly True, or a populated ``proofId``,
    or a populated ``classification``.
    """
    if not isinstance(body, Mapping):
        return False
    proof = body.get("proof")
    if not isinstance(proof, Mapping):
        return False
    return (
        proof.get("verified") is True
        or bool(proof.get("proofId"))
        or bool(proof.get("classification"))
    )


def get_header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    """Case-insensitive header lookup that works for plain dicts too."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def has_payment_evidence(headers: Optional[Mapping[str, str]]) -> bool:
    """
    Check whether a request already carries payment evidence.

    Either a signed credential (X-PAYMENT) or a resolution marker
    (X-Payment-Resolved) is enough. The content is not verified here.
    """
    for name in (PAYMENT_HEADER, PAYMENT_RESOLVED_HEADER):
        value = get_header(headers, name)
        if value and value.strip():
            return True
    return False


def proof_identity(proof: Mapping[str, Any]) -> str:
    """Stable key for a proof: its proofId, else a digest of its canonical JSON."""
    proof_id = proof.get("proofId")
    if proof_id:
        return f"id:{proof_id}"
    canonical = json.dumps(proof, sort_keys=True, separators=(",", ":"), default=str)
    return "sha256:" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# =============================================================================
# Decisions
# =============================================================================


def reject_decision() -> ClaimDecision:
    return ClaimDecision(
        kind=ClaimDecisionKind.REJECT,
        status_code=400,
        body={"error": INVALID_PROOF_ERROR},
    )


def challenge_decision(challenge_token: str) -> ClaimDecision:
    return ClaimDecision(
        kind=ClaimDecisionKind.CHALLENGE,
        status_code=402,
        body={"error": PAYMENT_REQUIRED_ERROR, "message": PAYMENT_REQUIRED_MESSAGE},
        headers={CHALLENGE_HEADER: challenge_token},
    )


def grant_decision(reward_label: str) -> ClaimDecision:
    return ClaimDecision(
        kind=ClaimDecisionKind.GRANT,
        status_code=200,
        body={"success": True, "reward": reward_label},
    )


def decide_claim(
    body: Any,
    headers: Optional[Mapping[str, str]],
    challenge_token: str,
    reward_label: str,
) -> ClaimDecision:
    """
    Evaluate a claim attempt.

    The proof check runs first so pre-supplied payment evidence can never
    bypass an invalid proof.

    Args:
        body: Parsed request body (anything; non-mappings are rejected)
        headers: Request headers
        challenge_token: Token to hand out with a 402
        reward_label: Reward string for a grant, e.g. "1.0 PRP"

    Returns:
        ClaimDecision with status, JSON body and extra headers
    """
    if not is_valid_attestation(body):
        return reject_decision()
    if not has_payment_evidence(headers):
        return challenge_decision(challenge_token)
    return grant_decision(reward_label)
