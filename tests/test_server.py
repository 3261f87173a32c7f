"""Tests for the proxy HTTP surface."""

import json
import socket

import httpx
import pytest
from conftest import ScriptedForwarder, json_response
from fastapi.testclient import TestClient

from fixture_proxy.cache import CachedResponse
from fixture_proxy.config import Settings
from fixture_proxy.exceptions import ForwardError
from fixture_proxy.forwarder import HttpxForwarder
from fixture_proxy.server.app import create_app


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def forwarder() -> ScriptedForwarder:
    return ScriptedForwarder()


@pytest.fixture
def client(settings: Settings, forwarder: ScriptedForwarder):
    with TestClient(create_app(settings, forwarder=forwarder)) as c:
        yield c


def test_graphql_scenario_records_then_replays(client, forwarder, settings):
    """First POST /graphql forwards and persists; the second is served from disk."""
    forwarder.outcomes.append(json_response(b'{"data":{"a":1}}'))
    body = {"query": "{a}", "operationName": "GetA"}

    first = client.post("/graphql", content=json.dumps(body, separators=(",", ":")))
    second = client.post("/graphql", content=json.dumps(body, separators=(",", ":")))

    assert first.status_code == 200
    assert first.json() == {"data": {"a": 1}}
    assert second.status_code == 200
    assert second.content == first.content
    assert len(forwarder.calls) == 1

    names = [p.name for p in settings.cache_dir.iterdir()]
    assert len(names) == 1
    assert names[0].startswith("GetA_")


def test_forwarded_request_keeps_method_path_query_and_body(client, forwarder):
    forwarder.outcomes.append(json_response(b"{}"))

    client.put("/items/7?expand=owner&x=%2F", content=b"payload", headers={"session": "s1"})

    method, url, headers, body = forwarder.calls[0]
    assert method == "PUT"
    assert url == "/items/7?expand=owner&x=%2F"
    assert ("session", "s1") in headers
    assert body == b"payload"


def test_replays_duplicate_headers_and_status(client, forwarder):
    forwarder.outcomes.append(
        CachedResponse(
            status_code=201,
            headers=(
                ("content-type", "text/plain"),
                ("set-cookie", "a=1"),
                ("set-cookie", "b=2"),
                ("transfer-encoding", "chunked"),
            ),
            body=b"created",
        )
    )

    for _ in range(2):
        response = client.post("/things", content=b"x")
        assert response.status_code == 201
        assert response.text == "created"
        assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]
        assert response.headers["content-length"] == "7"
        assert "transfer-encoding" not in response.headers

    assert len(forwarder.calls) == 1


def test_any_method_and_path_is_proxied(client, forwarder):
    """No docs or openapi routes shadow backend paths."""
    for method in ("GET", "DELETE", "PATCH", "OPTIONS"):
        forwarder.outcomes.append(json_response(b"{}"))
        response = client.request(method, "/docs")
        assert response.status_code == 200

    forwarder.outcomes.append(json_response(b"{}"))
    assert client.get("/openapi.json").status_code == 200
    assert len(forwarder.calls) == 5


def test_upstream_failure_returns_bad_gateway(client, forwarder, settings):
    forwarder.outcomes.append(ForwardError("refused"))

    response = client.get("/items")

    assert response.status_code == 502
    assert response.headers["content-type"] == "application/json"
    assert response.json()["errors"][0]["extensions"]["code"] == "BAD_GATEWAY"
    assert list(settings.cache_dir.iterdir()) == []


def test_unreachable_backend_over_real_socket(tmp_path):
    """GET /items against a closed port yields 502 naming the upstream port."""
    port = _free_port()
    settings = Settings(_env_file=None, cache_dir=tmp_path / "cache", proxy_port=port)

    with TestClient(create_app(settings)) as c:
        response = c.get("/items")

    assert response.status_code == 502
    assert '"BAD_GATEWAY"' in response.text
    assert str(port) in response.text
    assert list(settings.cache_dir.iterdir()) == []


def test_corrupt_fixture_is_replaced(client, forwarder, settings):
    forwarder.outcomes.append(json_response(b'{"ok":true}'))
    key = client.app.state.engine.key_builder.build("GET", "/items", [], b"")
    path = settings.cache_dir / key.filename
    path.write_text("{corrupt")

    response = client.get("/items")

    assert response.json() == {"ok": True}
    assert json.loads(path.read_text())["statusCode"] == 200


def test_skip_cache_forwards_every_time(tmp_path):
    settings = Settings(_env_file=None, cache_dir=tmp_path / "cache", skip_cache=True)
    forwarder = ScriptedForwarder(json_response(b'"one"'), json_response(b'"two"'))

    with TestClient(create_app(settings, forwarder=forwarder)) as c:
        assert c.get("/items").json() == "one"
        assert c.get("/items").json() == "two"

    assert len(forwarder.calls) == 2
    (record,) = list(settings.cache_dir.iterdir())
    assert json.loads(record.read_text())["body"] == '"two"'


def test_lifespan_creates_cache_dir(tmp_path):
    settings = Settings(_env_file=None, cache_dir=tmp_path / "nested" / "cache")

    with TestClient(create_app(settings, forwarder=ScriptedForwarder())):
        assert settings.cache_dir.is_dir()


def test_utf8_header_value_reaches_upstream(settings):
    """A non-ASCII header is forwarded and the response recorded, not a 500."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, stream=httpx.ByteStream(b'{"ok":true}'))

    upstream = HttpxForwarder(
        httpx.AsyncClient(transport=httpx.MockTransport(handler)), settings.upstream_url
    )
    with TestClient(create_app(settings, forwarder=upstream)) as c:
        response = c.get("/items", headers=[(b"x-name", "é".encode("utf-8"))])

    assert response.status_code == 200
    assert dict(seen[0].headers.raw)[b"x-name"] == "é".encode("utf-8")
    assert len(list(settings.cache_dir.iterdir())) == 1


def test_fixture_with_unreplayable_header_is_a_miss(client, forwarder, settings):
    """A hand-edited record whose header is not latin-1 is refetched, not a 500."""
    forwarder.outcomes.append(json_response(b'{"fresh":true}'))
    key = client.app.state.engine.key_builder.build("GET", "/items", [], b"")
    path = settings.cache_dir / key.filename
    path.write_text(
        json.dumps({"statusCode": 200, "headers": ["x-price", "€5"], "body": "{}"}),
        encoding="utf-8",
    )

    response = client.get("/items")

    assert response.status_code == 200
    assert response.json() == {"fresh": True}
    assert len(forwarder.calls) == 1
    assert json.loads(path.read_text())["headers"] == ["content-type", "application/json"]
