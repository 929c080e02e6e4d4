"""
Logging for the x402 claim service

The claim server and the claim agent each get their own rotating log file
when file logging is on:

    logs/x402/claim_server.log - server decisions, startup banner, requests
    logs/x402/claim_agent.log  - agent transitions and failures

Usage:
    from libs.core.logging_config import configure_logging, attempt_logger

    # Once, at service or CLI startup
    configure_logging(get_settings(), service_name="claim_server")

    # Per claim attempt
    log = attempt_logger(logger, attempt.attempt_id)
    log.info("Signing challenge")   # -> "[3f9a21c0] Signing challenge"

Debugging:
    tail -f logs/x402/claim_server.log
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

# =============================================================================
# Configuration
# =============================================================================

LOG_DIR = Path("logs/x402")
MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB per file
BACKUP_COUNT = 3

DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-20s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

# Libraries whose INFO output drowns the claim flow
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")

# =============================================================================
# Global State
# =============================================================================

_configured_service: Optional[str] = None
_log_path: Optional[Path] = None
_installed_handlers: List[logging.Handler] = []


def service_log_path(service_name: str, log_dir: Path = LOG_DIR) -> Path:
    """Log file used by a service when file logging is enabled."""
    return log_dir / f"{service_name}.log"


def setup_logging(
    level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    service_name: str = "x402",
    log_dir: Path = LOG_DIR,
) -> Optional[Path]:
    """
    Install console and file handlers on the root logger.

    Only the first call in a process takes effect; later calls return the
    log file chosen by that first call. Handlers installed by anything else
    (uvicorn, pytest) are left alone.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Defaults to LOG_LEVEL or INFO.
        log_to_console: Also log to stdout
        log_to_file: Write to ``<log_dir>/<service_name>.log``
        service_name: Names the log file and the banner logger
        log_dir: Directory for the log file

    Returns:
        Path of the log file, or None when file logging is off
    """
    global _configured_service, _log_path

    if _configured_service is not None:
        return _log_path

    if level is None:
        level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    log_path = None
    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = service_log_path(service_name, log_dir)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        _install(root_logger, file_handler, log_level)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT))
        _install(root_logger, console_handler, log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured_service = service_name
    _log_path = log_path

    logger = logging.getLogger(service_name)
    logger.info(f"Logging initialized for {service_name} at {level.upper()}")
    if log_path is not None:
        logger.info(f"Log file: {log_path.absolute()}")
    return log_path


def configure_logging(settings, service_name: str, log_to_console: bool = True) -> Optional[Path]:
    """setup_logging driven by the LOG_LEVEL / LOG_TO_FILE settings."""
    return setup_logging(
        level=settings.log_level,
        log_to_console=log_to_console,
        log_to_file=settings.log_to_file,
        service_name=service_name,
    )


def reset_logging() -> None:
    """Remove the handlers installed by setup_logging so it can run again."""
    global _configured_service, _log_path

    root_logger = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()
    _configured_service = None
    _log_path = None


def _install(root_logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    root_logger.addHandler(handler)
    _installed_handlers.append(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# =============================================================================
# Claim Flow Helpers
# =============================================================================


class AttemptLogger(logging.LoggerAdapter):
    """Prefixes every record with the claim attempt id."""

    def process(self, msg, kwargs):
        return f"[{self.extra['attempt_id']}] {msg}", kwargs


def attempt_logger(logger: logging.Logger, attempt_id: str) -> AttemptLogger:
    return AttemptLogger(logger, {"attempt_id": attempt_id})


def log_claim_decision(logger: logging.Logger, decision: str, status_code: int, detail: str = ""):
    """Log a claim server decision with standard format."""
    suffix = f" | {detail}" if detail else ""
    logger.info(f"CLAIM | {decision} | status={status_code}{suffix}")


def log_transition(logger, source: str, target: str):
    """Log a claim agent state transition with standard format."""
    logger.info(f"STATE | {source} -> {target}")
