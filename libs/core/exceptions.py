"""Custom exceptions for the x402 claim flow."""

from typing import Any, Optional


class ClaimError(Exception):
    """Base exception for claim negotiation."""

    kind = "claim"

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ClaimError):
    """Attestation missing or malformed (never retried)."""

    kind = "validation"


class PaymentRequired(ClaimError):
    """Server issued a 402 challenge. Expected, not a failure."""

    kind = "payment_required"

    def __init__(
        self,
        challenge: Optional[str],
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(f"Payment required (challenge={challenge or 'none'})", context)
        self.challenge = challenge


class ResolutionError(ClaimError):
    """Signer or transfer capability failed."""

    kind = "resolution"


class TransportError(ClaimError):
    """Network failure while talking to the claim server."""

    kind = "transport"

    def __init__(
        self,
        message: str,
        connectivity: bool = False,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.connectivity = connectivity


class UnexpectedStatus(ClaimError):
    """Server answered with a status the current state cannot handle."""

    kind = "unexpected_status"

    def __init__(
        self,
        status_code: int,
        body: str,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(body or f"HTTP {status_code}", context)
        self.status_code = status_code
        self.body = body


class UnresolvedChallenge(ClaimError):
    """A 402 arrived but no signer or transfer capability could answer it."""

    kind = "unresolved_challenge"
