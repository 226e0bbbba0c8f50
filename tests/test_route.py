"""Tests for waypoint.routing.route: verb-chainable per-path handlers."""

import pytest

from waypoint.app import App
from waypoint.routing.route import Route
from waypoint.testing import TestClient


def _ok(request, response, next):
    response.text("ok")


class TestRouteRegistration:
    def test_methods(self) -> None:
        route = Route("/users").get(_ok).post(_ok)
        assert route.methods == frozenset({"GET", "POST"})

    def test_all_is_not_listed_in_methods(self) -> None:
        route = Route("/users").all(_ok)
        assert route.methods == frozenset()
        assert route.handles_method("PATCH")

    def test_head_falls_back_to_get(self) -> None:
        route = Route("/users").get(_ok)
        assert route.handles_method("HEAD")
        assert not route.handles_method("POST")

    def test_method_is_case_insensitive(self) -> None:
        assert Route("/users").get(_ok).handles_method("get")

    def test_requires_a_handler(self) -> None:
        with pytest.raises(TypeError, match="at least one handler"):
            Route("/users").get()

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(TypeError, match="callable"):
            Route("/users").get("nope")  # type: ignore[arg-type]

    def test_frozen(self) -> None:
        route = Route("/users")
        route.freeze()
        with pytest.raises(RuntimeError, match="Cannot add handlers"):
            route.get(_ok)

    def test_repr(self) -> None:
        assert repr(Route("/users").post(_ok).get(_ok)) == "Route('/users', methods=['GET', 'POST'])"


class TestRouteDispatch:
    async def test_verbs_dispatch_separately(self) -> None:
        app = App()
        calls: list[str] = []

        def h1(request, response, next):
            calls.append("h1")
            response.text("get")

        def h2(request, response, next):
            calls.append("h2")
            response.status = 201
            response.text("post")

        app.route("/resource").get(h1).post(h2)

        async with TestClient(app) as client:
            got = await client.get("/resource")
            assert calls == ["h1"]
            posted = await client.post("/resource")

        assert calls == ["h1", "h2"]
        assert (got.status, got.text) == (200, "get")
        assert (posted.status, posted.text) == (201, "post")

    async def test_unhandled_method_falls_through(self) -> None:
        app = App()
        app.route("/resource").get(_ok)

        async with TestClient(app) as client:
            response = await client.delete("/resource")

        assert response.status == 404
        assert response.text == "Cannot DELETE /resource"

    async def test_handlers_run_in_order(self) -> None:
        app = App()
        calls: list[str] = []

        def first(request, response, next):
            calls.append("first")
            next()

        def second(request, response, next):
            calls.append("second")
            response.text("done")

        app.route("/steps").get(first, second)

        async with TestClient(app) as client:
            await client.get("/steps")

        assert calls == ["first", "second"]

    async def test_all_runs_alongside_verb_handlers(self) -> None:
        app = App()
        calls: list[str] = []

        route = app.route("/items")
        route.all(lambda req, res, next: (calls.append(f"all:{req.method}"), next()))
        route.get(lambda req, res, next: (calls.append("get"), res.text("items")))

        async with TestClient(app) as client:
            await client.get("/items")
            await client.put("/items")

        # PUT has no handler after all(), so it falls through to the 404
        assert calls == ["all:GET", "get", "all:PUT"]

    async def test_exhausted_route_continues_the_stack(self) -> None:
        app = App()
        app.route("/users").get(lambda req, res, next: next())
        app.use(lambda req, res, next: res.text("fallback"))

        async with TestClient(app) as client:
            response = await client.get("/users")

        assert response.text == "fallback"

    async def test_head_uses_get_handler_without_body(self) -> None:
        app = App()
        app.get("/page", lambda req, res, next: res.text("hello"))

        async with TestClient(app) as client:
            response = await client.head("/page")

        assert response.status == 200
        assert response.body == b""
        assert response.headers["content-length"] == "5"

    async def test_explicit_head_handler_wins(self) -> None:
        app = App()
        calls: list[str] = []
        route = app.route("/page")
        route.get(lambda req, res, next: (calls.append("get"), res.text("body")))
        route.head(lambda req, res, next: (calls.append("head"), res.end()))

        async with TestClient(app) as client:
            await client.head("/page")

        assert calls == ["head"]
