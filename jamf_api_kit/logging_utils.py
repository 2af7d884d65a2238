"""
Logging setup for the jamf-api-kit CLI and for scripts using the library.

Library modules only log under ``jamf_api_kit.*``; handlers are configured
here, never on import.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

PACKAGE_LOGGER = "jamf_api_kit"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_SECRET_PATTERNS = (
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+"), r"\1****"),
    (re.compile(r"((?:client_secret|password)=)[^&\s]+"), r"\1****"),
    (re.compile(r"(https://[^:/\s]+:)[^@\s]+(@)"), r"\1****\2"),
)


class RedactSecretsFilter(logging.Filter):
    """Masks bearer tokens and credentials before a record is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern, replacement in _SECRET_PATTERNS:
            redacted = pattern.sub(replacement, redacted)
        if redacted != message:
            record.msg, record.args = redacted, None
        return True


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    logger_name: Optional[str] = None,
    http_debug: bool = False,
) -> logging.Logger:
    """
    Configure logging for a run.

    Parameters
    ----------
    verbose: bool
        DEBUG level, including each API request.
    quiet: bool
        WARNING level. Given together with verbose, they cancel out.
    logger_name: Optional[str]
        Logger to return; defaults to root.
    http_debug: bool
        Also show urllib3's connection-level messages.
    """
    if verbose and quiet:
        level = logging.INFO
    elif verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(flt, RedactSecretsFilter) for flt in handler.filters):
            handler.addFilter(RedactSecretsFilter())

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    logging.getLogger("urllib3").setLevel(logging.DEBUG if http_debug else logging.WARNING)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    return logger
