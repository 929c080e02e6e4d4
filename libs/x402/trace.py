"""Negotiation trace - the human-readable running log of one claim attempt."""

import logging
from typing import Callable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

TRACE_PREFIX = "[Agent]: "


class NegotiationTrace:
    """
    Append-only list of trace lines for a single claim attempt.

    Each line is pushed to ``on_log`` as soon as it is appended. A sink that
    raises is logged and skipped so a broken UI callback cannot abort the
    attempt.
    """

    def __init__(self, on_log: Optional[Callable[[str], None]] = None):
        self._lines: List[str] = []
        self._on_log = on_log

    def log(self, message: str) -> str:
        line = f"{TRACE_PREFIX}{message}"
        self._lines.append(line)
        if self._on_log is not None:
            try:
                self._on_log(line)
            except Exception as e:
                logger.warning(f"[Trace] on_log sink raised: {e}")
        return line

    @property
    def lines(self) -> Tuple[str, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._lines))
