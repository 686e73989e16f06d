"""Logging helpers.

Loggers are obtained with ``logging.getLogger(__name__)`` as usual.  Code on
the request path additionally receives a :class:`RequestLogAdapter` as an
argument, so every line it writes carries the request id (and image slot)
without any global per-request state.
"""

from __future__ import annotations

import logging
import uuid

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RequestLogAdapter(logging.LoggerAdapter):
    """Prefix log messages with the request context held in ``extra``."""

    def process(self, msg, kwargs):
        context = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return f"[{context}] {msg}", kwargs

    def bind(self, **extra) -> RequestLogAdapter:
        """Return a new adapter with ``extra`` merged into the current context."""
        return RequestLogAdapter(self.logger, {**self.extra, **extra})


def request_logger(name: str, request_id: str | None = None) -> RequestLogAdapter:
    """Create an adapter for one request; a short random id is used by default."""
    if request_id is None:
        request_id = uuid.uuid4().hex[:8]
    return RequestLogAdapter(logging.getLogger(name), {"request": request_id})


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
