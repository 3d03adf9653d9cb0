"""
lfsauth Logging

structlog setup for the command line tool. Logs go to stderr: stdout is
reserved for the JSON payload git-lfs reads.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

import structlog

DEBUG_ENV_VAR = "GIT_LFS_AUTHENTICATE_DEBUG"


def configure_logging(verbose: bool = False, stream: Optional[IO[str]] = None) -> None:
    """
    Route structlog output to stderr.

    Args:
        verbose: Log everything down to DEBUG (default WARNING and above)
        stream: Output stream (default sys.stderr)
    """
    level = logging.DEBUG if verbose else logging.WARNING

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )
