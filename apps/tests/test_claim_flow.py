"""
End-to-end claim flow: the real claim agent against the real claim server,
wired together in-process through httpx.ASGITransport.
"""

import httpx
import pytest

from apps.services.claim_server.app import create_app
from libs.core.config import ClaimAgentSettings
from libs.core.models import AgentState, TransferResult
from libs.x402.agent import ClaimAgent
from libs.x402.resolver import PaymentResolver

CLAIM_URL = "http://testserver/api/claim"


def in_process_agent(app, resolver=None) -> ClaimAgent:
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    return ClaimAgent(claim_url=CLAIM_URL, resolver=resolver, client=client, settings=ClaimAgentSettings())


@pytest.mark.asyncio
async def test_signed_claim_end_to_end(settings):
    tokens = []

    def signer(token):
        tokens.append(token)
        return f"sig:{token}"

    lines = []
    agent = in_process_agent(create_app(settings), PaymentResolver(signer=signer))
    attempt = await agent.attempt({"verified": True, "proofId": "p-1"}, on_log=lines.append)

    assert attempt.outcome.success is True
    assert attempt.outcome.reward == "1.0 PRP"
    assert tokens == ["monad-testnet-0x123"]
    assert attempt.requests_sent == 2
    assert attempt.state is AgentState.SUCCEEDED
    assert lines[0] == "[Agent]: EZKL Proof detected. Initializing X402 handshake..."
    assert lines[-1] == "[Agent]: 200 Success. Payout confirmed. Reward granted: 1.0 PRP."


@pytest.mark.asyncio
async def test_transfer_claim_end_to_end(settings):
    resolver = PaymentResolver(transfer=lambda: TransferResult(success=True), has_transfer_target=True)
    outcome = await in_process_agent(create_app(settings), resolver).run({"verified": True})

    assert outcome.success is True
    assert outcome.reward == "1.0 PRP"


@pytest.mark.asyncio
async def test_unresolved_challenge_end_to_end(settings):
    outcome = await in_process_agent(create_app(settings)).run({"verified": True})

    assert outcome.success is False
    assert outcome.error_kind == "unresolved_challenge"


@pytest.mark.asyncio
async def test_ledger_refuses_second_attempt_with_same_proof(ledger_settings):
    app = create_app(ledger_settings)
    agent = in_process_agent(app, PaymentResolver(signer=lambda token: f"sig:{token}"))
    proof = {"verified": True, "proofId": "p-2"}

    first = await agent.run(proof)
    second = await agent.run(proof)

    assert first.success is True
    # Second attempt: fresh 402, signed retry, then 409 from the ledger
    assert second.success is False
    assert second.error_kind == "unexpected_status"
    assert "Reward already claimed" in second.error


@pytest.mark.asyncio
async def test_server_unreachable():
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
    agent = ClaimAgent(claim_url=CLAIM_URL, client=client, settings=ClaimAgentSettings())
    outcome = await agent.run({"verified": True})

    assert outcome.success is False
    assert outcome.error_kind == "transport"
