"""
Unit tests for claim validation.

Tests the attestation check, the payment evidence check and the three-way
claim decision from libs/x402/validation.py
"""

import pytest

from libs.core.models import ClaimDecisionKind
from libs.x402.validation import (
    INVALID_PROOF_ERROR,
    decide_claim,
    get_header,
    has_payment_evidence,
    is_valid_attestation,
    proof_identity,
)

TOKEN = "monad-testnet-0x123"
REWARD = "1.0 PRP"


class TestIsValidAttestation:
    """Test the proof shape predicate."""

    @pytest.mark.parametrize(
        "body",
        [
            {"proof": {"verified": True}},
            {"proof": {"proofId": "abc"}},
            {"proof": {"classification": "calm"}},
            {"proof": {"verified": False, "proofId": "abc"}},
            {"proof": {"verified": True, "extra": [1, 2]}, "paymentResolved": True},
        ],
    )
    def test_accepts_any_populated_field(self, body):
        assert is_valid_attestation(body) is True

    @pytest.mark.parametrize(
        "body",
        [
            None,
            {},
            [],
            "proof",
            42,
            {"proof": None},
            {"proof": "abc"},
            {"proof": ["verified"]},
            {"proof": {}},
            {"proof": {"verified": False}},
            {"proof": {"verified": "true"}},
            {"proof": {"verified": 1}},
            {"proof": {"proofId": ""}},
            {"proof": {"classification": ""}},
            {"proof": {"proofId": None, "classification": None}},
        ],
    )
    def test_rejects_everything_else(self, body):
        assert is_valid_attestation(body) is False


class TestHasPaymentEvidence:
    """Test detection of payment headers."""

    def test_signed_credential(self):
        assert has_payment_evidence({"X-PAYMENT": "sig123"}) is True

    def test_resolution_marker(self):
        assert has_payment_evidence({"X-Payment-Resolved": "shielded"}) is True

    def test_header_names_are_case_insensitive(self):
        assert has_payment_evidence({"x-payment": "sig"}) is True
        assert has_payment_evidence({"X-PAYMENT-RESOLVED": "shielded"}) is True

    def test_content_is_not_validated(self):
        assert has_payment_evidence({"X-PAYMENT": "definitely-not-a-signature"}) is True

    @pytest.mark.parametrize(
        "headers",
        [
            None,
            {},
            {"X-PAYMENT": ""},
            {"X-Payment-Resolved": "   "},
            {"Authorization": "Bearer x"},
        ],
    )
    def test_absent_or_empty(self, headers):
        assert has_payment_evidence(headers) is False

    def test_get_header_missing(self):
        assert get_header({"a": "1"}, "b") is None


class TestDecideClaim:
    """Test the reject / challenge / grant decision order."""

    def test_missing_body_is_rejected(self):
        decision = decide_claim({}, {}, TOKEN, REWARD)
        assert decision.kind is ClaimDecisionKind.REJECT
        assert decision.status_code == 400
        assert decision.body == {"error": INVALID_PROOF_ERROR}
        assert decision.headers == {}

    def test_invalid_proof_cannot_be_bought(self):
        decision = decide_claim({"proof": {}}, {"X-PAYMENT": "sig123"}, TOKEN, REWARD)
        assert decision.status_code == 400

    def test_valid_proof_without_payment_is_challenged(self):
        decision = decide_claim({"proof": {"verified": True}}, {}, TOKEN, REWARD)
        assert decision.kind is ClaimDecisionKind.CHALLENGE
        assert decision.status_code == 402
        assert decision.headers == {"x402-payment-request": TOKEN}
        assert decision.body == {
            "error": "Payment Required",
            "message": "X-PAYMENT header required to complete claim",
        }

    def test_valid_proof_with_payment_is_granted(self):
        decision = decide_claim({"proof": {"proofId": "abc"}}, {"X-PAYMENT": "sig123"}, TOKEN, REWARD)
        assert decision.kind is ClaimDecisionKind.GRANT
        assert decision.status_code == 200
        assert decision.body == {"success": True, "reward": REWARD}


class TestProofIdentity:
    def test_uses_proof_id(self):
        assert proof_identity({"proofId": "abc", "verified": True}) == "id:abc"

    def test_digest_ignores_key_order(self):
        a = proof_identity({"verified": True, "classification": "calm"})
        b = proof_identity({"classification": "calm", "verified": True})
        assert a == b
        assert a.startswith("sha256:")

    def test_digest_differs_per_content(self):
        assert proof_identity({"classification": "calm"}) != proof_identity({"classification": "stressed"})
