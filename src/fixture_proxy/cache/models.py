"""Value types shared by the cache, the forwarder and the engine."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CachedResponse:
    """A captured backend reply.

    ``headers`` keeps the upstream order and may repeat a name
    (``set-cookie`` is the usual case).
    """

    status_code: int
    headers: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    body: bytes = b""

    def header_values(self, name: str) -> list[str]:
        """All values for ``name``, case-insensitive, in order."""
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]


@dataclass(frozen=True)
class CacheKey:
    """Fingerprint plus the optional GraphQL operation it was namespaced by."""

    fingerprint: str
    operation_name: str | None = None

    @property
    def filename(self) -> str:
        if self.operation_name:
            return f"{self.operation_name}_{self.fingerprint}"
        return self.fingerprint

    def __str__(self) -> str:
        return self.filename
