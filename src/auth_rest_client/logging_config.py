"""Logging setup for applications using the authenticating REST client.

The library itself only creates module loggers; applications call
configure_logging() to send records to stderr with bearer tokens scrubbed.
"""

import logging
import re
import sys

from auth_rest_client.config import REDACTED

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)


class BearerTokenFilter(logging.Filter):
    """Replace bearer credentials in log messages with the redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = _BEARER_PATTERN.sub(rf"\g<1>{REDACTED}", message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging to stderr with bearer tokens redacted.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(BearerTokenFilter())
    logging.basicConfig(level=getattr(logging, level.upper()), handlers=[handler], force=True)
