"""Catch-all proxy endpoint.

Every method and path lands here. The body is buffered in full, the
decision engine picks a cached or freshly forwarded response, and that
response is written back verbatim apart from framing headers.
"""

from fastapi import APIRouter, Request, Response
from loguru import logger
from starlette.requests import ClientDisconnect

from fixture_proxy.cache.models import CachedResponse
from fixture_proxy.engine import ProxyDecisionEngine
from fixture_proxy.exceptions import RequestBodyError

router = APIRouter()

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]

# Derived from the body we actually send, never replayed.
_HOP_BY_HOP_HEADERS = {"content-length", "transfer-encoding", "connection", "keep-alive"}


def request_target(request: Request) -> str:
    """Path and query exactly as the client sent them."""
    raw_path = request.scope.get("raw_path")
    # Some ASGI test harnesses leave the query on raw_path.
    path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"").decode("latin-1")
    return f"{path}?{query}" if query else path


def to_response(cached: CachedResponse) -> Response:
    response = Response(content=cached.body, status_code=cached.status_code)
    # raw_headers keeps duplicates (set-cookie) that a dict would collapse.
    response.raw_headers.extend(
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in cached.headers
        if name.lower() not in _HOP_BY_HOP_HEADERS
    )
    return response


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_request(request: Request) -> Response:
    url = request_target(request)
    try:
        body = await request.body()
    except ClientDisconnect as e:
        logger.warning(f"Client disconnected while sending {request.method} {url}")
        raise RequestBodyError(f"Incomplete body for {request.method} {url}") from e

    engine: ProxyDecisionEngine = request.app.state.engine
    cached = await engine.replay_or_forward(
        request.method, url, request.headers.items(), body
    )
    return to_response(cached)
