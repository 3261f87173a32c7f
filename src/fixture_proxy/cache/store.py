"""File-backed store of captured responses.

One file per cache key, named after :attr:`CacheKey.filename`. There is no
in-memory index: every lookup reads the directory, so fixtures can be
edited, copied in or deleted while the proxy runs.
"""

from pathlib import Path

from loguru import logger

from fixture_proxy.cache.codec import ResponseCodec
from fixture_proxy.cache.models import CachedResponse, CacheKey
from fixture_proxy.exceptions import CacheReadError, CacheWriteError


class CacheStore:
    """Read and write cache records under ``cache_dir``."""

    def __init__(self, cache_dir: Path, codec: ResponseCodec | None = None):
        self.cache_dir = Path(cache_dir)
        self.codec = codec or ResponseCodec()

    def ensure_directory(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: CacheKey) -> Path:
        return self.cache_dir / key.filename

    def get(self, key: CacheKey) -> CachedResponse | None:
        """Return the stored response, or ``None`` on any read failure."""
        try:
            return self._read(key)
        except CacheReadError as e:
            logger.debug(f"Cache miss for {key}: {e}")
            return None

    def put(self, key: CacheKey, response: CachedResponse) -> None:
        """Write (or overwrite) the record for ``key``.

        Raises:
            CacheWriteError: If the record cannot be written.
        """
        path = self.path_for(key)
        try:
            path.write_bytes(self.codec.encode(response))
        except (OSError, UnicodeError) as e:
            raise CacheWriteError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved {path} ({len(response.body)} byte body)")

    def _read(self, key: CacheKey) -> CachedResponse:
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise CacheReadError(f"Cannot read {path}: {e}") from e
        return self.codec.decode(data)
