"""
Claim Server Dependencies

Process-scoped objects live on ``app.state`` and are handed to routes
through FastAPI ``Depends``:

    app.state.settings          - Settings
    app.state.challenge_ledger  - ChallengeLedger, or None when disabled
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request

from apps.services.claim_server.challenge_ledger import ChallengeLedger
from libs.core.config import ClaimServerSettings, Settings

logger = logging.getLogger(__name__)


def initialize_state(app: FastAPI, settings: Settings) -> None:
    """Attach settings and the optional challenge ledger to the app."""
    app.state.settings = settings
    server = settings.server
    if server.ledger_enabled:
        app.state.challenge_ledger = ChallengeLedger(
            base_token=server.challenge_token,
            ttl_seconds=server.challenge_ttl_seconds,
        )
        logger.info(f"[Dependencies] Challenge ledger enabled (ttl={server.challenge_ttl_seconds}s)")
    else:
        app.state.challenge_ledger = None


def get_server_settings(request: Request) -> ClaimServerSettings:
    return request.app.state.settings.server


def get_challenge_ledger(request: Request) -> Optional[ChallengeLedger]:
    return request.app.state.challenge_ledger
