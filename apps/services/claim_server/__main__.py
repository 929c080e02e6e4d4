"""Run the claim server: python -m apps.services.claim_server"""

import uvicorn

from libs.core.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "apps.services.claim_server.app:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
