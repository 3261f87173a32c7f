"""Exception hierarchy for fixture-proxy."""


class FixtureProxyError(Exception):
    """Base class for all fixture-proxy errors."""


class RequestBodyError(FixtureProxyError):
    """The inbound request body could not be read in full."""


class CacheReadError(FixtureProxyError):
    """A cache record is missing or cannot be decoded.

    Never reaches the client: the store turns it into a cache miss.
    """


class CacheWriteError(FixtureProxyError):
    """A forwarded response could not be persisted."""


class ForwardError(FixtureProxyError):
    """The upstream backend could not be reached or reset the connection."""
