"""Request id lookup for endpoints and error handlers.

The observability middleware binds the id into the logging context and onto
``request.state``; either source is accepted.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from overlap.obs import logging as obs_logging


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
	rid = obs_logging.current_request_id()
	if not rid and request is not None:
		rid = getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id")
	return rid or default
