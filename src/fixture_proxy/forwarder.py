"""Upstream forwarding.

The engine only depends on the :class:`Forwarder` protocol; the server
wires in :class:`HttpxForwarder`, tests wire in scripted doubles.
"""

from collections.abc import Iterable
from typing import Protocol

import httpx
from loguru import logger

from fixture_proxy.cache.models import CachedResponse
from fixture_proxy.exceptions import ForwardError

# Framing is recomputed for the buffered body we send.
_SKIP_REQUEST_HEADERS = {"content-length", "transfer-encoding"}

_NO_TIMEOUT = httpx.Timeout(None).as_dict()


class Forwarder(Protocol):
    """Send one request upstream and buffer the complete reply."""

    async def forward(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        body: bytes,
    ) -> CachedResponse:
        """Raises :class:`ForwardError` if the backend cannot be reached."""
        ...


class HttpxForwarder:
    """Forward to a fixed backend through a shared ``httpx.AsyncClient``.

    Requests are built directly rather than through the client so that the
    client's default headers (user agent, accept-encoding, ...) are never
    mixed into what the backend sees. Bodies are read raw: whatever
    content-encoding the backend applied is kept, matching the headers we
    store alongside it.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def forward(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        body: bytes,
    ) -> CachedResponse:
        target = f"{self.base_url}{url}"
        # Back to the latin-1 bytes the client sent; httpx would encode str as ASCII.
        forward_headers = [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in headers
            if name.lower() not in _SKIP_REQUEST_HEADERS
        ]

        try:
            request = httpx.Request(
                method,
                target,
                headers=forward_headers,
                content=body,
                extensions={"timeout": _NO_TIMEOUT},
            )
            response = await self.client.send(request, stream=True)
            try:
                chunks = [chunk async for chunk in response.aiter_raw()]
            finally:
                await response.aclose()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ForwardError(f"{method} {target} failed: {e!r}") from e

        response_headers = tuple(
            (name.decode("latin-1"), value.decode("latin-1"))
            for name, value in response.headers.raw
        )
        content = b"".join(chunks)

        logger.debug(
            f"Upstream {method} {url} -> {response.status_code} "
            f"({len(response_headers)} headers, {len(content)} bytes)"
        )

        return CachedResponse(
            status_code=response.status_code,
            headers=response_headers,
            body=content,
        )
