"""Request correlation and access logging.

Every response carries a request id (incoming header or a fresh UUID) and its
duration. One ``request.completed`` event is logged per request, including the
limiter's verdict when the request was rate checked, so a denial in the logs
can be tied to the caller's hashed key.

Must be installed outside the rate limit adapter:
    adapter.install(app)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from ratekeeper.core.config import settings
from ratekeeper.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


def _limiter_context(request: Request) -> dict[str, object]:
    """Collect what the limiter left on the request state, if anything."""
    decision = getattr(request.state, "rate_limit_decision", None)
    if decision is None:
        return {"rate_checked": False}
    return {
        "rate_checked": True,
        "rate_limited": not decision.allowed,
        "key_hash": getattr(request.state, "rate_limit_key_hash", None),
    }


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag the request with a correlation id and log its outcome.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with the request id header and
            X-Request-Duration-ms added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                **_limiter_context(request),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
