"""Pydantic models for the x402 claim flow."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class AgentState(str, Enum):
    """Claim agent states. SUCCEEDED and FAILED are terminal."""

    START = "start"
    REQUESTING = "requesting"
    CHALLENGE_RECEIVED = "challenge_received"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AgentState.SUCCEEDED, AgentState.FAILED)


class ClaimDecisionKind(str, Enum):
    """Three-way claim server decision."""

    REJECT = "reject"
    CHALLENGE = "challenge"
    GRANT = "grant"


# =============================================================================
# Claim Payloads
# =============================================================================

class AttestationProof(BaseModel):
    """Opaque attestation for an externally computed classification.

    Only `verified` is interpreted, and only an exact `True` counts. The
    other fields are carried as given, whatever their type, and everything
    the prover attached is sent back verbatim.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    verified: Any = None
    proof_id: Any = Field(default=None, alias="proofId")
    classification: Any = None

    @property
    def is_verified(self) -> bool:
        return self.verified is True

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class ClaimRequest(BaseModel):
    """Body of POST /api/claim."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    proof: AttestationProof
    payment_resolved: Optional[bool] = Field(default=None, alias="paymentResolved")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"proof": self.proof.to_payload()}
        if self.payment_resolved is not None:
            payload["paymentResolved"] = self.payment_resolved
        return payload


class TransferResult(BaseModel):
    """Completion report of an out-of-band funds transfer."""

    success: bool
    error: Optional[str] = None


class ClaimOutcome(BaseModel):
    """Terminal result of one claim attempt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    reward: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = Field(default=None, alias="errorKind")
    degraded: bool = False

    @classmethod
    def granted(cls, reward: Optional[str] = None) -> "ClaimOutcome":
        return cls(success=True, reward=reward)

    @classmethod
    def failed(cls, error: str, kind: Optional[str] = None) -> "ClaimOutcome":
        return cls(success=False, error=error, error_kind=kind)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
