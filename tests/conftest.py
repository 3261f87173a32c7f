"""Shared fixtures for fixture-proxy tests."""

from collections.abc import Iterable

import pytest

from fixture_proxy.cache import (
    CachedResponse,
    CacheKeyBuilder,
    CacheStore,
    OperationExtractor,
    RequestFingerprinter,
)
from fixture_proxy.config import Settings
from fixture_proxy.engine import ProxyDecisionEngine
from fixture_proxy.exceptions import ForwardError


class ScriptedForwarder:
    """Forwarder double that replays queued responses or failures."""

    def __init__(self, *outcomes: CachedResponse | Exception):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, str, list[tuple[str, str]], bytes]] = []

    async def forward(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        body: bytes,
    ) -> CachedResponse:
        self.calls.append((method, url, list(headers), body))
        if not self.outcomes:
            raise AssertionError(f"Unexpected forward: {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def json_response(body: bytes, status_code: int = 200) -> CachedResponse:
    return CachedResponse(
        status_code=status_code,
        headers=(("content-type", "application/json"),),
        body=body,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(_env_file=None, cache_dir=tmp_path / "cache", proxy_port=7001)


@pytest.fixture
def store(settings: Settings) -> CacheStore:
    s = CacheStore(settings.cache_dir)
    s.ensure_directory()
    return s


@pytest.fixture
def key_builder() -> CacheKeyBuilder:
    return CacheKeyBuilder(RequestFingerprinter(["session"]), OperationExtractor("/graphql"))


@pytest.fixture
def make_engine(key_builder: CacheKeyBuilder, store: CacheStore):
    """Factory: engine around a scripted forwarder."""

    def _make(*outcomes, skip_cache: bool = False):
        forwarder = ScriptedForwarder(*outcomes)
        engine = ProxyDecisionEngine(
            key_builder, store, forwarder, proxy_port=7001, skip_cache=skip_cache
        )
        return engine, forwarder

    return _make


@pytest.fixture
def unreachable() -> ForwardError:
    return ForwardError("connection refused")
