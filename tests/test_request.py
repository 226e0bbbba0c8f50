"""Tests for waypoint.http.request and waypoint.http.headers."""

from typing import Any

import pytest

from waypoint.http.headers import Headers, MutableHeaders
from waypoint.http.request import Request
from waypoint.routing.context import DispatchContext
from waypoint.routing.layer import LayerMatch


def _scope(**overrides: Any) -> dict[str, Any]:
    scope: dict[str, Any] = {
        "type": "http",
        "method": "GET",
        "path": "/api/users",
        "query_string": b"page=2&sort=name",
        "headers": [(b"content-type", b"application/json"), (b"accept", b"text/html")],
        "http_version": "1.1",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 5000),
    }
    scope.update(overrides)
    return scope


async def _receive_none() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


class TestFromAsgi:
    def test_basic_fields(self) -> None:
        request = Request.from_asgi(_scope(), _receive_none)
        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.original_url == "/api/users"
        assert request.base_url == ""
        assert dict(request.params) == {}
        assert request.http_version == "1.1"
        assert request.server == ("testserver", 80)
        assert request.client == ("127.0.0.1", 5000)

    def test_query(self) -> None:
        request = Request.from_asgi(_scope(), _receive_none)
        assert request.query == {"page": ["2"], "sort": ["name"]}
        assert request.url == "/api/users?page=2&sort=name"

    def test_headers(self) -> None:
        request = Request.from_asgi(_scope(), _receive_none)
        assert request.headers["Content-Type"] == "application/json"
        assert request.content_type == "application/json"

    def test_method_is_upper_case(self) -> None:
        request = Request.from_asgi(_scope(method="post"), _receive_none)
        assert request.method == "POST"

    def test_routes_on_raw_path(self) -> None:
        scope = _scope(path="/files/a/b", raw_path=b"/files/a%2Fb")
        request = Request.from_asgi(scope, _receive_none)
        assert request.path == "/files/a%2Fb"
        assert request.original_url == "/files/a%2Fb"

    def test_decoded_path_is_re_encoded_without_raw_path(self) -> None:
        request = Request.from_asgi(_scope(path="/files/100%"), _receive_none)
        assert request.path == "/files/100%25"


class TestViews:
    def test_at_replaces_context_only(self) -> None:
        root = Request.build("GET", "/api/users")
        ctx = root.context.enter(LayerMatch(params={"v": "1"}, matched_prefix="/api"), middleware=True)
        view = root.at(ctx)
        assert view.path == "/users"
        assert view.base_url == "/api"
        assert view.params == {"v": "1"}
        assert view.state is root.state
        assert root.path == "/api/users"

    def test_frozen(self) -> None:
        request = Request.build("GET", "/")
        with pytest.raises(AttributeError):
            request.context = DispatchContext.initial("GET", "/x")  # type: ignore[misc]

    def test_state_is_shared(self) -> None:
        root = Request.build("GET", "/")
        view = root.at(root.context)
        view.state.user = "ada"
        assert root.state.user == "ada"


class TestBody:
    async def test_body_streams_chunks(self) -> None:
        messages = [
            {"type": "http.request", "body": b"hello ", "more_body": True},
            {"type": "http.request", "body": b"world", "more_body": False},
        ]

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        request = Request.from_asgi(_scope(), receive)
        assert await request.body() == b"hello world"

    async def test_body_is_cached_across_views(self) -> None:
        calls = 0

        async def receive() -> dict[str, Any]:
            nonlocal calls
            calls += 1
            return {"type": "http.request", "body": b'{"a": 1}', "more_body": False}

        root = Request.from_asgi(_scope(), receive)
        view = root.at(root.context)
        assert await root.json() == {"a": 1}
        assert await view.text() == '{"a": 1}'
        assert calls == 1

    async def test_empty_body(self) -> None:
        assert await Request.build("GET", "/").body() == b""


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers(((b"x-token", b"abc"),))
        assert headers["X-Token"] == "abc"
        assert "X-TOKEN" in headers
        assert headers.get("missing") is None

    def test_get_list(self) -> None:
        headers = Headers(((b"accept", b"text/html"), (b"Accept", b"application/json")))
        assert headers.get_list("accept") == ["text/html", "application/json"]
        assert headers["accept"] == "text/html"
        assert len(headers) == 1
        assert list(headers) == ["accept"]

    def test_from_dict(self) -> None:
        headers = Headers.from_dict({"Content-Type": "text/plain"})
        assert headers["content-type"] == "text/plain"

    def test_missing_key(self) -> None:
        with pytest.raises(KeyError):
            Headers()["x"]


class TestMutableHeaders:
    def test_set_replaces(self) -> None:
        headers = MutableHeaders()
        headers.set("Vary", "Accept")
        headers.set("vary", "Origin")
        assert list(headers) == [("vary", "Origin")]

    def test_append_keeps_both(self) -> None:
        headers = MutableHeaders()
        headers.append("Set-Cookie", "a=1")
        headers.append("Set-Cookie", "b=2")
        assert len(headers) == 2
        assert headers.get("set-cookie") == "a=1"

    def test_raw(self) -> None:
        headers = MutableHeaders()
        headers.set("Content-Type", "text/plain")
        assert headers.raw() == [(b"content-type", b"text/plain")]
