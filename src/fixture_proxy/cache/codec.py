"""JSON codec for persisted cache records.

A record on disk looks like::

    {"statusCode": 200,
     "headers": ["content-type", "application/json", "set-cookie", "a=1"],
     "body": "{\"data\":{\"a\":1}}"}

``headers`` is a flat list alternating name and value so that order and
repeated names survive. The body is stored as text; bytes that are not
valid UTF-8 travel as ``surrogateescape`` code points (written as ``\\udcXX``
escapes) and come back unchanged.
"""

import json
from typing import Any

from fixture_proxy.cache.models import CachedResponse
from fixture_proxy.exceptions import CacheReadError

_BODY_ERRORS = "surrogateescape"


class ResponseCodec:
    """Convert :class:`CachedResponse` to and from record bytes."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def encode(self, response: CachedResponse) -> bytes:
        flat_headers: list[str] = []
        for name, value in response.headers:
            flat_headers.extend((name, value))

        record = {
            "statusCode": response.status_code,
            "headers": flat_headers,
            "body": response.body.decode(self._encoding, errors=_BODY_ERRORS),
        }
        # ensure_ascii keeps escaped surrogates representable in the file
        return json.dumps(record, ensure_ascii=True).encode("ascii")

    def decode(self, data: bytes) -> CachedResponse:
        """Parse record bytes.

        Raises:
            CacheReadError: If the data is not a well-formed record.
        """
        try:
            record = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CacheReadError(f"Record is not valid JSON: {e}") from e

        if not isinstance(record, dict):
            raise CacheReadError("Record is not a JSON object")

        status_code = record.get("statusCode")
        if isinstance(status_code, bool) or not isinstance(status_code, int):
            raise CacheReadError(f"Invalid statusCode: {status_code!r}")

        headers = _pair_headers(record.get("headers", []))

        body = record.get("body", "")
        if not isinstance(body, str):
            raise CacheReadError("Record body is not a string")
        try:
            raw_body = body.encode(self._encoding, errors=_BODY_ERRORS)
        except UnicodeEncodeError as e:
            raise CacheReadError(f"Record body cannot be encoded: {e}") from e

        return CachedResponse(status_code=status_code, headers=headers, body=raw_body)


def _pair_headers(flat: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(flat, list) or not all(isinstance(item, str) for item in flat):
        raise CacheReadError("Record headers must be a list of strings")
    if len(flat) % 2:
        raise CacheReadError("Record headers must alternate name and value")
    for item in flat:
        # HTTP header bytes are latin-1; anything else cannot be replayed.
        try:
            item.encode("latin-1")
        except UnicodeEncodeError as e:
            raise CacheReadError(f"Header {item!r} is not latin-1: {e}") from e
    return tuple(zip(flat[0::2], flat[1::2]))
