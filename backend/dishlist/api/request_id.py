"""Request ID helper for endpoints.

Relies on the observability middleware binding the request id into the
logging context, with ``request.state`` as a fallback.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from dishlist.obs import logging as obs_logging


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    """Return the current request id if bound, else a default."""
    rid = obs_logging.current_request_id()
    if not rid and request is not None:
        rid = getattr(request.state, "request_id", None)
    return rid or default
