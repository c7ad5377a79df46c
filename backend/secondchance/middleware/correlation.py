"""Request correlation ids.

Every response carries ``X-Request-ID``; the same id is injected into every
structlog entry by ``secondchance.core.logging.add_correlation_id``.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI


def setup_correlation_middleware(app: FastAPI) -> None:
    """Add the correlation id middleware. A client-sent X-Request-ID is echoed back."""
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        validator=None,
    )


def get_correlation_id() -> str | None:
    """Current request's correlation id, or None outside a request."""
    return correlation_id.get(None)


__all__ = ["setup_correlation_middleware", "get_correlation_id"]
