"""
Logging setup for the backend process.

The flowgraph library only creates module loggers; the process that hosts
it decides the format and level here.
"""

import logging
import sys
from typing import Optional


def setup_logging(level: str = "INFO", log_format: Optional[str] = None):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format or "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        stream=sys.stdout,
        force=True,
    )

    # Per-request access lines drown out graph mutations
    for noisy in ("uvicorn.access", "httpx", "websockets"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
