"""
Claim Server FastAPI Application - x402 reward claim endpoint

Structure:
    - dependencies.py: Process-scoped state (settings, challenge ledger)
    - lifespan.py: Application startup/shutdown handlers
    - challenge_ledger.py: Opt-in single-use challenge ledger
    - routers/: discovery/health and the claim endpoint

Run with:
    python -m apps.services.claim_server
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.services.claim_server.dependencies import initialize_state
from apps.services.claim_server.lifespan import lifespan
from apps.services.claim_server.routers import claim_router, discovery_router
from libs.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the claim server application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
    """
    app = FastAPI(
        title="X402 Claim Server",
        description="Proof-gated reward claims negotiated over HTTP 402",
        version="1.0.0",
        lifespan=lifespan,
    )
    initialize_state(app, settings or get_settings())

    # =========================================================================
    # Middleware
    # =========================================================================

    @app.middleware("http")
    async def log_and_reflect_origin(request: Request, call_next):
        logger.info(f"[{request.method}] {request.url.path}")
        response = await call_next(request)
        # Any origin is allowed; echo it back like a permissive CORS policy
        origin = request.headers.get("origin")
        if origin and "access-control-allow-origin" not in response.headers:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        return response

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unmatched routes and unregistered methods both read as Not Found
        if exc.status_code in (404, 405):
            return JSONResponse(
                {"error": "Not Found", "path": request.url.path},
                status_code=404,
            )
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    # =========================================================================
    # Routers
    # =========================================================================

    app.include_router(discovery_router)
    app.include_router(claim_router)

    return app


app = create_app()
