"""FastAPI reverse proxy fronted by the Wake-on-LAN gate."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from wakegate import __version__
from wakegate.api.middleware import WakeOnLanMiddleware
from wakegate.config.loader import (
    ConfigError,
    gate_config_from_config,
    load_config,
    validate_config,
)
from wakegate.core.gate import WakeOnLanGate, provision

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "wakegate" / "config.yaml"

_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

_HOP_BY_HOP = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# httpx decodes the body and Starlette recomputes the length.
_STRIP_FROM_RESPONSE = _HOP_BY_HOP | {"content-encoding", "content-length"}


def upstream_host_port(upstream: str) -> str:
    """Return "host:port" for an http(s) upstream URL, for use as a probe target."""
    parsed = urlparse(upstream)
    if not parsed.hostname:
        raise ConfigError(f"invalid upstream '{upstream}'")
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    host = f"[{parsed.hostname}]" if ":" in parsed.hostname else parsed.hostname
    return f"{host}:{port}"


def create_app(
    config_path: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Create the proxy application.

    Every request first passes through WakeOnLanMiddleware, then is forwarded
    to the configured upstream.

    Args:
        config_path: Path to wakegate config.yaml. If None, uses the default location.
        client: HTTP client for upstream calls. One is created if None.

    Returns:
        FastAPI application instance

    Raises:
        ConfigError: If the config is missing, invalid or has no upstream
    """
    _config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not _config_path.exists():
        raise ConfigError(f"Config file not found: {_config_path}")
    raw = load_config(_config_path)
    if not raw:
        raise ConfigError(f"Config file is empty: {_config_path}")
    errors = validate_config(raw)
    if errors:
        raise ConfigError("; ".join(errors))
    upstream = raw.get("upstream")
    if not upstream:
        raise ConfigError("'upstream' is required to run the proxy")
    upstream = str(upstream).rstrip("/")

    wake_config = gate_config_from_config(raw)
    if not wake_config.probe_address:
        wake_config.probe_address = upstream_host_port(upstream)
    gate = WakeOnLanGate(provision(wake_config))

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=30.0)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_client:
            await http.aclose()

    app = FastAPI(
        title="wakegate",
        version=__version__,
        description="Wake-on-LAN reverse proxy",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.gate = gate
    app.state.upstream = upstream
    app.state.client = http
    app.add_middleware(WakeOnLanMiddleware, gate=gate)

    logger.info(
        "Proxying to %s, waking %s via %s", upstream, wake_config.mac, wake_config.broadcast_address
    )

    @app.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def forward(path: str, request: Request) -> Response:
        target = upstream + request.url.path
        if request.url.query:
            target += "?" + request.url.query
        headers = [
            (k, v)
            for k, v in request.headers.items()
            if k.lower() not in _HOP_BY_HOP and k.lower() not in ("host", "content-length")
        ]
        try:
            upstream_resp = await http.request(
                request.method, target, headers=headers, content=await request.body()
            )
        except httpx.RequestError as exc:
            logger.warning("Upstream request %s %s failed: %s", request.method, target, exc)
            return JSONResponse({"error": "Bad Gateway", "detail": str(exc)}, status_code=502)

        response = Response(content=upstream_resp.content, status_code=upstream_resp.status_code)
        for k, v in upstream_resp.headers.multi_items():
            if k.lower() not in _STRIP_FROM_RESPONSE:
                response.headers.append(k, v)
        return response

    return app
