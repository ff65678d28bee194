"""Starlette middleware that wakes the target host before each request."""

import logging
from typing import Awaitable, Callable

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from wakegate.core.gate import WakeOnLanGate

logger = logging.getLogger(__name__)


class WakeOnLanMiddleware(BaseHTTPMiddleware):
    """Send a magic packet (and optionally wait) before passing the request on."""

    def __init__(self, app: ASGIApp, gate: WakeOnLanGate) -> None:
        super().__init__(app)
        self.gate = gate

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # The wait blocks, so keep it off the event loop.
        result = await run_in_threadpool(self.gate.wake)
        logger.debug(
            "%s %s gated: sent=%s reachable=%s after %.2fs",
            request.method,
            request.url.path,
            result.sent,
            result.reachable,
            result.elapsed_seconds,
        )
        return await call_next(request)
