"""
Challenge Ledger

Opt-in replay protection for the claim server (CHALLENGE_LEDGER_ENABLED=true).
Without it the server is stateless and will grant any number of rewards for
the same proof, which is the documented default behavior.

Rules, per proof identity (proofId, or a digest of the proof JSON):
- A 402 records a fresh single-use challenge token "<base>-<hex>".
- A paid request is granted only while an unexpired challenge is outstanding.
  The challenge is consumed by the grant.
- A paid request with no outstanding challenge gets a fresh 402.
- A second grant within the TTL is refused with 409.

Entries older than the TTL are dropped lazily.
"""

import logging
import threading
import time
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Tuple

from libs.core.models import ClaimDecisionKind
from libs.x402.validation import ClaimDecision, challenge_decision, proof_identity

logger = logging.getLogger(__name__)

ALREADY_CLAIMED_ERROR = "Reward already claimed"


class RedeemVerdict(Enum):
    """Result of presenting payment for a proof."""
    GRANTED = "granted"
    NO_CHALLENGE = "no_challenge"
    ALREADY_CLAIMED = "already_claimed"


class ChallengeLedger:
    """
    In-memory, time-bounded, single-use challenge ledger.

    Thread-safe; one instance per server process.
    """

    def __init__(
        self,
        base_token: str,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            base_token: Prefix of issued challenge tokens
            ttl_seconds: Lifetime of challenges and of granted-claim records
            clock: Time source (seconds), injectable for tests
        """
        self.base_token = base_token
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._challenges: Dict[str, Tuple[str, float]] = {}
        self._grants: Dict[str, float] = {}

    def _prune(self, now: float) -> None:
        cutoff = now - self.ttl_seconds
        for key in [k for k, (_, issued) in self._challenges.items() if issued <= cutoff]:
            del self._challenges[key]
        for key in [k for k, granted in self._grants.items() if granted <= cutoff]:
            del self._grants[key]

    def issue(self, proof_key: str) -> str:
        """Record a new challenge for a proof, replacing any outstanding one."""
        token = f"{self.base_token}-{uuid.uuid4().hex[:16]}"
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._challenges[proof_key] = (token, now)
        logger.info(f"[ChallengeLedger] Issued {token} for {proof_key}")
        return token

    def redeem(self, proof_key: str) -> RedeemVerdict:
        """Consume the outstanding challenge for a proof, if any."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if proof_key in self._grants:
                logger.warning(f"[ChallengeLedger] Replay refused for {proof_key}")
                return RedeemVerdict.ALREADY_CLAIMED
            if self._challenges.pop(proof_key, None) is None:
                return RedeemVerdict.NO_CHALLENGE
            self._grants[proof_key] = now
        logger.info(f"[ChallengeLedger] Challenge redeemed for {proof_key}")
        return RedeemVerdict.GRANTED

    def stats(self) -> Dict[str, int]:
        with self._lock:
            self._prune(self._clock())
            return {
                "outstanding_challenges": len(self._challenges),
                "recent_grants": len(self._grants),
            }


def apply_ledger(decision: ClaimDecision, body: Any, ledger: ChallengeLedger) -> ClaimDecision:
    """
    Rewrite a stateless claim decision through the ledger.

    Rejections pass through untouched; challenges get a recorded token;
    grants must redeem an outstanding challenge.
    """
    if decision.kind is ClaimDecisionKind.REJECT:
        return decision

    proof: Mapping[str, Any] = body["proof"]
    key = proof_identity(proof)

    if decision.kind is ClaimDecisionKind.CHALLENGE:
        return challenge_decision(ledger.issue(key))

    verdict = ledger.redeem(key)
    if verdict is RedeemVerdict.GRANTED:
        return decision
    if verdict is RedeemVerdict.ALREADY_CLAIMED:
        return ClaimDecision(
            kind=ClaimDecisionKind.REJECT,
            status_code=409,
            body={"error": ALREADY_CLAIMED_ERROR},
        )
    return challenge_decision(ledger.issue(key))
