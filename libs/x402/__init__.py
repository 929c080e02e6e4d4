"""x402 claim negotiation: validation, payment resolution and the claim agent."""

from libs.x402.agent import ClaimAgent, ClaimAttempt
from libs.x402.headers import CHALLENGE_HEADER, PAYMENT_HEADER, PAYMENT_RESOLVED_HEADER
from libs.x402.resolver import PaymentResolver, ShieldedTransfer, parse_amount
from libs.x402.trace import NegotiationTrace
from libs.x402.validation import (
    ClaimDecision,
    decide_claim,
    has_payment_evidence,
    is_valid_attestation,
    proof_identity,
)

__all__ = [
    # Agent
    "ClaimAgent",
    "ClaimAttempt",
    "NegotiationTrace",
    # Resolver
    "PaymentResolver",
    "ShieldedTransfer",
    "parse_amount",
    # Validation
    "ClaimDecision",
    "decide_claim",
    "has_payment_evidence",
    "is_valid_attestation",
    "proof_identity",
    # Headers
    "CHALLENGE_HEADER",
    "PAYMENT_HEADER",
    "PAYMENT_RESOLVED_HEADER",
]
