"""Cache key derivation: request fingerprints and GraphQL operation names."""

import base64
import hashlib
import json
import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from loguru import logger

from fixture_proxy.cache.models import CacheKey

# GraphQL Name production; anything else could escape the cache directory.
_GRAPHQL_NAME_RE = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")

DEFAULT_CACHED_HEADERS = frozenset({"session"})


class RequestFingerprinter:
    """Derive a stable, filesystem-safe digest from a request.

    Only the method, the URL (path and query), the body and the values of
    the allow-listed headers are hashed. Everything else, such as
    timestamps or tracing headers, is ignored so that it cannot break
    replay.
    """

    def __init__(self, cached_headers: Iterable[str] = DEFAULT_CACHED_HEADERS) -> None:
        self.cached_headers = frozenset(name.lower() for name in cached_headers)

    def fingerprint(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        body: bytes,
    ) -> str:
        selected: dict[str, list[str]] = {}
        for name, value in headers:
            name = name.lower()
            if name in self.cached_headers:
                selected.setdefault(name, []).append(value)

        header_values = "\n".join(
            ", ".join(selected[name]) for name in sorted(selected)
        )

        digest = hashlib.sha1()
        digest.update(f"{method}{url}{header_values}".encode("utf-8"))
        digest.update(body)
        return base64.urlsafe_b64encode(digest.digest()).rstrip(b"=").decode("ascii")


class OperationExtractor:
    """Read ``operationName`` from bodies posted to the GraphQL endpoint."""

    def __init__(self, path_prefix: str = "/graphql") -> None:
        self.path_prefix = path_prefix

    def extract(self, url: str, body: bytes) -> str | None:
        if not urlsplit(url).path.startswith(self.path_prefix):
            return None

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug(f"GraphQL body is not JSON, keying without operation: {e}")
            return None

        if not isinstance(payload, dict):
            return None

        operation = payload.get("operationName")
        if not isinstance(operation, str) or not _GRAPHQL_NAME_RE.fullmatch(operation):
            if operation is not None:
                logger.debug(f"Ignoring invalid operationName: {operation!r}")
            return None
        return operation


class CacheKeyBuilder:
    """Combine the fingerprinter and the operation extractor into a key."""

    def __init__(
        self,
        fingerprinter: RequestFingerprinter,
        extractor: OperationExtractor,
    ) -> None:
        self.fingerprinter = fingerprinter
        self.extractor = extractor

    def build(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        body: bytes,
    ) -> CacheKey:
        return CacheKey(
            fingerprint=self.fingerprinter.fingerprint(method, url, headers, body),
            operation_name=self.extractor.extract(url, body),
        )
