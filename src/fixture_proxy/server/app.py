"""FastAPI application with lifespan management."""

import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from loguru import logger

from fixture_proxy import __version__
from fixture_proxy.cache import (
    CacheKeyBuilder,
    CacheStore,
    OperationExtractor,
    RequestFingerprinter,
)
from fixture_proxy.config import Settings
from fixture_proxy.engine import ProxyDecisionEngine
from fixture_proxy.forwarder import Forwarder, HttpxForwarder
from fixture_proxy.server.routes import proxy


def build_engine(settings: Settings, forwarder: Forwarder) -> ProxyDecisionEngine:
    """Wire the key builder, the store and ``forwarder`` from ``settings``."""
    key_builder = CacheKeyBuilder(
        RequestFingerprinter(settings.cached_headers),
        OperationExtractor(settings.graphql_path),
    )
    store = CacheStore(settings.cache_dir)
    store.ensure_directory()
    return ProxyDecisionEngine(
        key_builder,
        store,
        forwarder,
        proxy_port=settings.proxy_port,
        skip_cache=settings.skip_cache,
    )


def create_app(settings: Settings, forwarder: Forwarder | None = None) -> FastAPI:
    """Create and configure the proxy application.

    Args:
        settings: Effective configuration.
        forwarder: Upstream forwarder; defaults to an httpx client pointed at
            ``settings.upstream_url`` and owned by the app lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.remove()
        logger.add(sys.stderr, level=settings.log_level)

        http_client = None
        upstream = forwarder
        if upstream is None:
            # Loopback backend: ignore HTTP(S)_PROXY and never chase redirects.
            http_client = httpx.AsyncClient(
                trust_env=False,
                follow_redirects=False,
                timeout=None,
            )
            upstream = HttpxForwarder(http_client, settings.upstream_url)

        app.state.settings = settings
        app.state.engine = build_engine(settings, upstream)

        logger.info(f"fixture-proxy {__version__}")
        logger.info(
            f"proxying from {settings.port} to {settings.proxy_port}"
            f"{' skipping cache' if settings.skip_cache else ''}"
        )
        logger.info(f"Cache dir: {settings.cache_dir.resolve()}")

        yield

        logger.info("Shutting down fixture-proxy")
        if http_client is not None:
            await http_client.aclose()

    # No docs routes: every path belongs to the backend.
    app = FastAPI(
        title="fixture-proxy",
        description="Caching reverse proxy for offline client development",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(proxy.router)
    return app
