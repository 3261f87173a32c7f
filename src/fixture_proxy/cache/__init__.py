"""On-disk response cache and cache key derivation."""

from fixture_proxy.cache.codec import ResponseCodec
from fixture_proxy.cache.keys import CacheKeyBuilder, OperationExtractor, RequestFingerprinter
from fixture_proxy.cache.models import CachedResponse, CacheKey
from fixture_proxy.cache.store import CacheStore

__all__ = [
    "CacheKey",
    "CacheKeyBuilder",
    "CacheStore",
    "CachedResponse",
    "OperationExtractor",
    "RequestFingerprinter",
    "ResponseCodec",
]
