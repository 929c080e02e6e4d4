"""
Claim Agent - drives one reward claim through the x402 handshake.

State machine (one ClaimAttempt per run):

    START --(proof not verified)--------------------------------> FAILED
    START -> REQUESTING
    REQUESTING --200--> SUCCEEDED
    REQUESTING --402--> CHALLENGE_RECEIVED
    REQUESTING --other status / transport error--> FAILED
    CHALLENGE_RECEIVED --signer(token)--> RETRYING (X-PAYMENT)
    CHALLENGE_RECEIVED --transfer()-----> RETRYING (X-Payment-Resolved)
    CHALLENGE_RECEIVED --resolver failed / no resolver--> FAILED
    RETRYING --200--> SUCCEEDED
    RETRYING --anything else--> FAILED

Suspend points: the initial POST, the resolver call, the retry POST. There is
at most one retry and no transport-level retry or backoff. Callers that want
a deadline wrap the whole ``run`` in ``asyncio.wait_for``.

Every transition appends exactly one line to the attempt's NegotiationTrace.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from libs.core.config import ClaimAgentSettings, UnresolvedChallengePolicy
from libs.core.exceptions import (
    ClaimError,
    PaymentRequired,
    ResolutionError,
    TransportError,
    UnexpectedStatus,
    UnresolvedChallenge,
    ValidationError,
)
from libs.core.logging_config import attempt_logger, log_transition
from libs.core.models import AgentState, AttestationProof, ClaimOutcome, ClaimRequest
from libs.x402.headers import CHALLENGE_HEADER, PAYMENT_HEADER, PAYMENT_RESOLVED_HEADER
from libs.x402.resolver import PaymentResolver
from libs.x402.trace import NegotiationTrace

logger = logging.getLogger(__name__)

INVALID_PROOF_RESULT = "Invalid proof result"
NO_RESOLVER_ERROR = "No payment resolver available for challenge"
CONNECTION_FAILED_HINT = (
    "Connection failed. Is the claim server running? "
    "Start it in a separate terminal: python -m apps.services.claim_server"
)


class ClaimAttempt:
    """
    A single run of the negotiation, from initial request to terminal outcome.

    Not reusable: ``execute`` may be awaited once.
    """

    def __init__(
        self,
        agent: "ClaimAgent",
        proof: AttestationProof,
        on_log: Optional[Callable[[str], None]] = None,
    ):
        self.agent = agent
        self.proof = proof
        self.attempt_id = uuid.uuid4().hex[:8]
        self.state = AgentState.START
        self.trace = NegotiationTrace(on_log)
        self.requests_sent = 0
        self.challenge: Optional[str] = None
        self.outcome: Optional[ClaimOutcome] = None
        self.log = attempt_logger(logger, self.attempt_id)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition(self, target: AgentState, message: str) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Attempt {self.attempt_id} already finished in {self.state.value}")
        log_transition(self.log, self.state.value, target.value)
        self.state = target
        self.trace.log(message)

    def _succeed(self, response: httpx.Response) -> ClaimOutcome:
        reward = _read_reward(response)
        suffix = f" Reward granted: {reward}." if reward else ""
        self._transition(AgentState.SUCCEEDED, f"200 Success. Payout confirmed.{suffix}")
        self.outcome = ClaimOutcome.granted(reward)
        return self.outcome

    def _fail(self, error: ClaimError) -> ClaimOutcome:
        if isinstance(error, TransportError) and error.connectivity:
            line = CONNECTION_FAILED_HINT
        elif isinstance(error, TransportError):
            line = f"Error: {error.message}"
        elif isinstance(error, ResolutionError):
            line = f"Payment resolution failed: {error.message}"
        elif isinstance(error, UnexpectedStatus):
            line = f"Claim failed: {error.status_code} {error.body}".rstrip()
        else:
            line = f"Claim failed: {error.message}"
        self.log.warning(f"Claim failed ({error.kind}): {error.message}")
        self._transition(AgentState.FAILED, line)
        self.outcome = ClaimOutcome.failed(error.message, error.kind)
        return self.outcome

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def execute(self, client: httpx.AsyncClient) -> ClaimOutcome:
        if self.outcome is not None or self.state is not AgentState.START:
            raise RuntimeError(f"Attempt {self.attempt_id} has already been executed")

        if not self.proof.is_verified:
            self._transition(AgentState.FAILED, f"Claim aborted: {INVALID_PROOF_RESULT}")
            self.outcome = ClaimOutcome.failed(INVALID_PROOF_RESULT, "invalid_proof")
            return self.outcome

        try:
            self._transition(AgentState.REQUESTING, "EZKL Proof detected. Initializing X402 handshake...")
            response = await self._post(client, ClaimRequest(proof=self.proof))
            try:
                _expect_granted(response)
                return self._succeed(response)
            except PaymentRequired as payment_required:
                self.challenge = payment_required.challenge

            self._transition(AgentState.CHALLENGE_RECEIVED, "402 Challenge Received. Agent resolving payment...")

            retry = await self._resolve_challenge()
            if retry is None:
                # Unresolved challenge acknowledged by explicit policy
                self._transition(
                    AgentState.SUCCEEDED,
                    "402 Challenge acknowledged but unresolved. No payment was made.",
                )
                self.outcome = ClaimOutcome(success=True, degraded=True)
                return self.outcome

            request, headers = retry
            self._transition(AgentState.RETRYING, "402 Challenge resolved. Retrying with payment header...")
            response = await self._post(client, request, headers)
            if response.status_code == 200:
                return self._succeed(response)
            raise _status_error(response)
        except ClaimError as e:
            return self._fail(e)

    async def _resolve_challenge(self):
        """
        Answer the 402 with the resolver.

        Returns:
            (retry request, payment headers), or None when the policy
            acknowledges an unresolvable challenge

        Raises:
            ResolutionError: signer or transfer failed
            UnresolvedChallenge: nothing can answer the challenge
        """
        resolver = self.agent.resolver
        if resolver.can_sign(self.challenge):
            self.log.info(f"Signing challenge {self.challenge}")
            credential = await resolver.sign(self.challenge)
            return ClaimRequest(proof=self.proof), {PAYMENT_HEADER: credential}

        if resolver.can_transfer():
            self.log.info("No signer for challenge, running transfer")
            await resolver.run_transfer()
            marker = self.agent.settings.resolution_marker
            return (
                ClaimRequest(proof=self.proof, payment_resolved=True),
                {PAYMENT_RESOLVED_HEADER: marker},
            )

        if self.agent.unresolved_policy is UnresolvedChallengePolicy.ACKNOWLEDGE:
            self.log.warning("Challenge left unresolved by policy")
            return None
        raise UnresolvedChallenge(NO_RESOLVER_ERROR, {"challenge": self.challenge})

    async def _post(
        self,
        client: httpx.AsyncClient,
        request: ClaimRequest,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        self.requests_sent += 1
        url = self.agent.claim_url
        try:
            return await client.post(url, json=request.to_payload(), headers=headers or {})
        except httpx.ConnectError as e:
            raise TransportError(f"Connection failed: {e}", connectivity=True, context={"url": url}) from e
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request timed out after {self.agent.settings.request_timeout}s",
                context={"url": url},
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Request error: {e}", context={"url": url}) from e
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid claim URL: {e}", context={"url": url}) from e


class ClaimAgent:
    """
    Runs claim attempts against a claim server.

    The agent itself holds no per-attempt state, so one agent may run any
    number of attempts, sequentially or concurrently.

    Usage:
        agent = ClaimAgent(resolver=PaymentResolver(signer=my_signer))
        outcome = await agent.run(proof, on_log=print)
    """

    def __init__(
        self,
        claim_url: Optional[str] = None,
        resolver: Optional[PaymentResolver] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[ClaimAgentSettings] = None,
        unresolved_policy: Optional[UnresolvedChallengePolicy] = None,
    ):
        self.settings = settings or ClaimAgentSettings()
        self.claim_url = claim_url or self.settings.claim_url
        self.resolver = resolver or PaymentResolver()
        self.unresolved_policy = unresolved_policy or self.settings.unresolved_policy
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
            yield client

    async def attempt(
        self,
        proof: Union[AttestationProof, Mapping[str, Any], None],
        on_log: Optional[Callable[[str], None]] = None,
    ) -> ClaimAttempt:
        """Run one claim attempt and return it with its trace and outcome."""
        attempt = ClaimAttempt(self, _coerce_proof(proof), on_log)
        async with self._session() as client:
            await attempt.execute(client)
        attempt.log.info(
            f"Attempt finished: {attempt.state.value} after {attempt.requests_sent} request(s)"
        )
        return attempt

    async def run(
        self,
        proof: Union[AttestationProof, Mapping[str, Any], None],
        on_log: Optional[Callable[[str], None]] = None,
    ) -> ClaimOutcome:
        """Run one claim attempt and return its terminal outcome."""
        attempt = await self.attempt(proof, on_log)
        return attempt.outcome


# =============================================================================
# Helpers
# =============================================================================


def _coerce_proof(proof: Union[AttestationProof, Mapping[str, Any], None]) -> AttestationProof:
    if isinstance(proof, AttestationProof):
        return proof
    if isinstance(proof, Mapping):
        try:
            return AttestationProof.model_validate(dict(proof))
        except PydanticValidationError as e:
            logger.warning(f"[ClaimAgent] Unusable proof payload: {e}")
    # Unusable proofs fail at START without touching the network
    return AttestationProof()


def _read_reward(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("reward"), str):
        return data["reward"]
    return None


def _expect_granted(response: httpx.Response) -> None:
    """
    Raises:
        PaymentRequired: on a 402, carrying the challenge token
        ValidationError / UnexpectedStatus: on any other non-200 status
    """
    if response.status_code == 200:
        return
    if response.status_code == 402:
        raise PaymentRequired(response.headers.get(CHALLENGE_HEADER))
    raise _status_error(response)


def _status_error(response: httpx.Response) -> ClaimError:
    body = response.text
    if response.status_code == 400:
        return ValidationError(body or f"HTTP {response.status_code}", {"status_code": 400})
    return UnexpectedStatus(response.status_code, body)
