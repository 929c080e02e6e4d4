"""
Claim Server Router Modules

Router Organization:
    - discovery: Root discovery document and health check
    - claim: The x402 claim endpoint
"""

from apps.services.claim_server.routers.claim import router as claim_router
from apps.services.claim_server.routers.discovery import router as discovery_router

__all__ = [
    "claim_router",
    "discovery_router",
]
