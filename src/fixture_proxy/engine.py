"""Replay-or-forward decision logic.

Per request::

    compute key -> [check cache] -> forward -> persist -> respond
                                        \\-> synthesize 502 -> respond

The cache check is skipped entirely in skip-cache mode. Synthesized error
responses are never persisted, and each request gets at most one forwarding
attempt.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence

from loguru import logger

from fixture_proxy.cache.keys import CacheKeyBuilder
from fixture_proxy.cache.models import CachedResponse, CacheKey
from fixture_proxy.cache.store import CacheStore
from fixture_proxy.exceptions import CacheWriteError, ForwardError
from fixture_proxy.forwarder import Forwarder

BAD_GATEWAY = 502


def bad_gateway_response(
    proxy_port: int,
    method: str,
    url: str,
    operation_name: str | None,
) -> CachedResponse:
    """Build the fixed GraphQL-shaped error returned when upstream is down."""
    message = (
        f"Unable to reach server on {proxy_port} for "
        f"{method} {url} {operation_name or ''}"
    )
    body = json.dumps(
        {"errors": [{"message": message, "extensions": {"code": "BAD_GATEWAY"}}]},
        separators=(",", ":"),
    )
    return CachedResponse(
        status_code=BAD_GATEWAY,
        headers=(("content-type", "application/json"),),
        body=body.encode("utf-8"),
    )


class ProxyDecisionEngine:
    """Decide, per request, between replaying a fixture and forwarding."""

    def __init__(
        self,
        key_builder: CacheKeyBuilder,
        store: CacheStore,
        forwarder: Forwarder,
        *,
        proxy_port: int,
        skip_cache: bool = False,
    ):
        self.key_builder = key_builder
        self.store = store
        self.forwarder = forwarder
        self.proxy_port = proxy_port
        self.skip_cache = skip_cache

    async def replay_or_forward(
        self,
        method: str,
        url: str,
        headers: Sequence[tuple[str, str]],
        body: bytes,
    ) -> CachedResponse:
        key = self.key_builder.build(method, url, headers, body)

        if not self.skip_cache:
            cached = await asyncio.to_thread(self.store.get, key)
            if cached is not None:
                logger.info(f"cached {key}")
                return cached

        logger.info(f"proxying {key}")
        try:
            response = await self.forwarder.forward(method, url, headers, body)
        except ForwardError as e:
            logger.warning(f"proxy error {key}: {e}")
            return bad_gateway_response(self.proxy_port, method, url, key.operation_name)

        await self._persist(key, response)
        return response

    async def _persist(self, key: CacheKey, response: CachedResponse) -> None:
        try:
            await asyncio.to_thread(self.store.put, key, response)
        except CacheWriteError as e:
            # The client still gets its response; the next identical
            # request will simply be forwarded again.
            logger.error(f"Failed to cache {key}: {e}")
