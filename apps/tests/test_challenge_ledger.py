"""
Tests for the opt-in challenge ledger (single-use, time-bounded challenges).
"""

import pytest

from apps.services.claim_server.challenge_ledger import (
    ALREADY_CLAIMED_ERROR,
    ChallengeLedger,
    RedeemVerdict,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return ChallengeLedger(base_token="monad-testnet-0x123", ttl_seconds=60, clock=clock)


class TestChallengeLedger:
    def test_issued_tokens_are_unique_and_prefixed(self, ledger):
        first = ledger.issue("id:a")
        second = ledger.issue("id:a")
        assert first != second
        assert first.startswith("monad-testnet-0x123-")

    def test_redeem_requires_outstanding_challenge(self, ledger):
        assert ledger.redeem("id:a") is RedeemVerdict.NO_CHALLENGE

    def test_challenge_is_single_use(self, ledger):
        ledger.issue("id:a")
        assert ledger.redeem("id:a") is RedeemVerdict.GRANTED
        assert ledger.redeem("id:a") is RedeemVerdict.ALREADY_CLAIMED

    def test_challenges_expire(self, ledger, clock):
        ledger.issue("id:a")
        clock.now += 61
        assert ledger.redeem("id:a") is RedeemVerdict.NO_CHALLENGE

    def test_grant_record_expires(self, ledger, clock):
        ledger.issue("id:a")
        ledger.redeem("id:a")
        clock.now += 61
        ledger.issue("id:a")
        assert ledger.redeem("id:a") is RedeemVerdict.GRANTED

    def test_proofs_are_independent(self, ledger):
        ledger.issue("id:a")
        ledger.issue("id:b")
        assert ledger.redeem("id:a") is RedeemVerdict.GRANTED
        assert ledger.redeem("id:b") is RedeemVerdict.GRANTED

    def test_stats(self, ledger, clock):
        ledger.issue("id:a")
        ledger.issue("id:b")
        ledger.redeem("id:a")
        assert ledger.stats() == {"outstanding_challenges": 1, "recent_grants": 1}
        clock.now += 61
        assert ledger.stats() == {"outstanding_challenges": 0, "recent_grants": 0}


class TestLedgerEndpoint:
    def test_full_handshake_then_replay(self, ledger_client):
        body = {"proof": {"verified": True, "proofId": "p-1"}}

        challenged = ledger_client.post("/api/claim", json=body)
        assert challenged.status_code == 402
        token = challenged.headers["x402-payment-request"]
        assert token.startswith("monad-testnet-0x123-")

        granted = ledger_client.post("/api/claim", json=body, headers={"X-PAYMENT": f"sig:{token}"})
        assert granted.status_code == 200
        assert granted.json() == {"success": True, "reward": "1.0 PRP"}

        replayed = ledger_client.post("/api/claim", json=body, headers={"X-PAYMENT": f"sig:{token}"})
        assert replayed.status_code == 409
        assert replayed.json() == {"error": ALREADY_CLAIMED_ERROR}

    def test_payment_without_challenge_is_challenged(self, ledger_client):
        response = ledger_client.post(
            "/api/claim",
            json={"proof": {"classification": "calm"}},
            headers={"X-Payment-Resolved": "shielded"},
        )
        assert response.status_code == 402
        assert "x402-payment-request" in response.headers

    def test_invalid_proof_still_rejected_first(self, ledger_client):
        response = ledger_client.post("/api/claim", json={"proof": {}}, headers={"X-PAYMENT": "s"})
        assert response.status_code == 400

    def test_healthz_reports_ledger(self, ledger_client):
        ledger_client.post("/api/claim", json={"proof": {"proofId": "x"}})
        response = ledger_client.get("/healthz")
        assert response.json() == {
            "status": "healthy",
            "ledger_enabled": True,
            "ledger": {"outstanding_challenges": 1, "recent_grants": 0},
        }
