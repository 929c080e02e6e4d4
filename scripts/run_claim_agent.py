#!/usr/bin/env python
"""
Run one x402 claim attempt against a claim server.

Usage:
    python scripts/run_claim_agent.py                                # verified proof, transfer fallback
    python scripts/run_claim_agent.py --sign                          # sign the challenge instead
    python scripts/run_claim_agent.py --proof '{"verified": true, "proofId": "abc"}'
    python scripts/run_claim_agent.py --url http://127.0.0.1:5000/api/claim --no-resolver

The signer and transfer used here are local simulations: the signer returns
"sig:<challenge>", the transfer reports success without moving funds.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from libs.core.config import UnresolvedChallengePolicy, get_settings
from libs.core.logging_config import configure_logging
from libs.core.models import TransferResult
from libs.x402 import ClaimAgent, PaymentResolver


def simulated_signer(challenge: str) -> str:
    return f"sig:{challenge}"


def simulated_transfer() -> TransferResult:
    return TransferResult(success=True)


def build_resolver(args) -> PaymentResolver:
    if args.no_resolver:
        return PaymentResolver()
    if args.sign:
        return PaymentResolver(signer=simulated_signer)
    return PaymentResolver(transfer=simulated_transfer, has_transfer_target=True)


def main():
    parser = argparse.ArgumentParser(description="Run one x402 claim attempt")
    parser.add_argument("--url", "-u", help="Claim endpoint (default: CLAIM_URL)")
    parser.add_argument(
        "--proof",
        "-p",
        default='{"verified": true}',
        help="Attestation proof as JSON (default: %(default)s)",
    )
    parser.add_argument("--sign", action="store_true", help="Answer the 402 with the signer")
    parser.add_argument("--no-resolver", action="store_true", help="Run without any payment resolver")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in UnresolvedChallengePolicy],
        help="What to do with an unresolvable challenge (default: UNRESOLVED_CHALLENGE_POLICY)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Also print service logs")
    args = parser.parse_args()

    try:
        proof = json.loads(args.proof)
    except json.JSONDecodeError as e:
        print(f"Invalid --proof JSON: {e}", file=sys.stderr)
        return 2

    settings = get_settings()
    configure_logging(settings, service_name="claim_agent", log_to_console=args.verbose)

    agent = ClaimAgent(
        claim_url=args.url,
        resolver=build_resolver(args),
        settings=settings.agent,
        unresolved_policy=UnresolvedChallengePolicy(args.policy) if args.policy else None,
    )

    print("=" * 60)
    print(f"X402 claim attempt -> {agent.claim_url}")
    print("=" * 60)
    outcome = asyncio.run(agent.run(proof, on_log=print))
    print("=" * 60)
    print(json.dumps(outcome.to_dict(), indent=2))

    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
