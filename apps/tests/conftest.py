# conftest.py
# Ensure the repository root is on sys.path so pytest can import both
# top-level packages (apps, libs) consistently, and provide claim server
# fixtures shared by the service tests.

import sys
from pathlib import Path

import pytest

# conftest is at: apps/tests/conftest.py
# Walk up two levels to reach the repository root.
ROOT = Path(__file__).resolve().parents[2]
ROOT_STR = str(ROOT)

if ROOT_STR not in sys.path:
    # Insert at front so repo root takes precedence during imports
    sys.path.insert(0, ROOT_STR)

from fastapi.testclient import TestClient  # noqa: E402

from apps.services.claim_server.app import create_app  # noqa: E402
from libs.core.config import ClaimServerSettings, Settings  # noqa: E402


@pytest.fixture
def settings():
    """Stateless server settings with file logging off."""
    return Settings(log_to_file=False, server=ClaimServerSettings())


@pytest.fixture
def ledger_settings():
    """Server settings with the challenge ledger enabled."""
    return Settings(log_to_file=False, server=ClaimServerSettings(ledger_enabled=True, challenge_ttl_seconds=60))


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


@pytest.fixture
def ledger_client(ledger_settings):
    return TestClient(create_app(ledger_settings))
