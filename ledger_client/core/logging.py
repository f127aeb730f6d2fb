from __future__ import annotations

import logging
import sys
from typing import Final, Optional

from ledger_client.settings import get_settings


_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure console logging once.

    - Default level: INFO
    - Override with the function argument, or `Settings.log_level` (LOG_LEVEL env var)
    - Host applications that already installed handlers keep them
    """

    resolved_level = (level or get_settings().log_level or "INFO").upper()

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(getattr(logging, resolved_level, logging.INFO))
    else:
        logging.basicConfig(
            level=getattr(logging, resolved_level, logging.INFO),
            format=_DEFAULT_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=[logging.StreamHandler(sys.stdout)],
        )

    # httpx logs every request line at INFO; the client logs its own attempts.
    for noisy in ["httpx", "httpcore"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def redact_token(token: str | None) -> str:
    """Loggable stand-in for a credential: presence only, never the value."""

    return "set" if token else "missing"
