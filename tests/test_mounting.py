"""Tests for mounting routers and sub-apps."""

from waypoint.app import App
from waypoint.routing.router import Router
from waypoint.testing import TestClient


def _echo_paths(request, response, next):
    response.json(
        {
            "base_url": request.base_url,
            "path": request.path,
            "original_url": request.original_url,
            "params": dict(request.params),
        }
    )


class TestRouterMounting:
    async def test_mount_rewriting_law(self) -> None:
        app = App()
        api = Router()
        api.get("/x", _echo_paths)
        app.use("/api", api)

        async with TestClient(app) as client:
            response = await client.get("/api/x")

        assert response.json() == {
            "base_url": "/api",
            "path": "/x",
            "original_url": "/api/x",
            "params": {},
        }

    async def test_nested_mounts_concatenate_base_url(self) -> None:
        app = App()
        v1 = Router()
        users = Router()
        users.get("/:id", _echo_paths)
        v1.use("/users", users)
        app.use("/v1", v1)

        async with TestClient(app) as client:
            response = await client.get("/v1/users/5")

        assert response.json() == {
            "base_url": "/v1/users",
            "path": "/5",
            "original_url": "/v1/users/5",
            "params": {"id": "5"},
        }

    async def test_mount_root_of_router(self) -> None:
        app = App()
        api = Router()
        api.get("/", _echo_paths)
        app.use("/api", api)

        async with TestClient(app) as client:
            response = await client.get("/api")

        assert response.json()["path"] == "/"
        assert response.json()["base_url"] == "/api"

    async def test_unmatched_child_returns_to_parent(self) -> None:
        app = App()
        api = Router()
        api.get("/users", lambda req, res, next: res.text("users"))
        app.use("/api", api)
        app.use(_echo_paths)

        async with TestClient(app) as client:
            response = await client.get("/api/other")

        assert response.json()["path"] == "/api/other"
        assert response.json()["base_url"] == ""

    async def test_mount_does_not_match_sibling_prefix(self) -> None:
        app = App()
        api = Router()
        api.use(lambda req, res, next: res.text("api"))
        app.use("/api", api)

        async with TestClient(app) as client:
            response = await client.get("/apiv2")

        assert response.status == 404

    async def test_child_error_unwinds_to_parent(self) -> None:
        app = App()
        api = Router()

        @api.get("/fail")
        def fail(request, response, next):
            raise RuntimeError("child failed")

        app.use("/api", api)

        @app.use_error()
        def on_error(error, request, response, next):
            response.status = 502
            response.text(f"{request.original_url}: {error}")

        async with TestClient(app) as client:
            response = await client.get("/api/fail")

        assert response.status == 502
        assert response.text == "/api/fail: child failed"

    async def test_child_error_handler_sees_child_paths(self) -> None:
        app = App()
        api = Router()
        api.get("/fail", lambda req, res, next: next(ValueError("x")))
        api.use_error(lambda err, req, res, next: res.text(f"{req.base_url} {req.path}"))
        app.use("/api", api)

        async with TestClient(app) as client:
            response = await client.get("/api/fail")

        assert response.text == "/api /fail"

    async def test_mounted_router_is_skipped_while_unwinding(self) -> None:
        app = App()
        api = Router()
        api.use_error(lambda err, req, res, next: res.text("child handler"))

        app.use(lambda req, res, next: next(ValueError("before mount")))
        app.use(api)
        app.use_error(lambda err, req, res, next: res.text("parent handler"))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "parent handler"

    async def test_same_router_mounted_twice(self) -> None:
        app = App()
        shared = Router()
        shared.get("/ping", lambda req, res, next: res.text(req.base_url))
        app.use("/a", shared)
        app.use("/b", shared)

        async with TestClient(app) as client:
            a = await client.get("/a/ping")
            b = await client.get("/b/ping")

        assert (a.text, b.text) == ("/a", "/b")


class TestMountParams:
    async def test_child_sees_parent_params(self) -> None:
        app = App()
        posts = Router()
        posts.get("/posts/:post_id", _echo_paths)
        app.use("/users/:user_id", posts)

        async with TestClient(app) as client:
            response = await client.get("/users/3/posts/9")

        assert response.json()["params"] == {"user_id": "3", "post_id": "9"}
        assert response.json()["base_url"] == "/users/3"

    async def test_merge_params_disabled(self) -> None:
        app = App()
        posts = Router(merge_params=False)
        posts.get("/posts/:post_id", _echo_paths)
        app.use("/users/:user_id", posts)

        async with TestClient(app) as client:
            response = await client.get("/users/3/posts/9")

        assert response.json()["params"] == {"post_id": "9"}

    async def test_innermost_param_wins(self) -> None:
        app = App()
        child = Router()
        child.get("/:id", _echo_paths)
        app.use("/items/:id", child)

        async with TestClient(app) as client:
            response = await client.get("/items/outer/inner")

        assert response.json()["params"] == {"id": "inner"}

    async def test_parent_params_restored_after_child(self) -> None:
        app = App()
        child = Router()
        child.use(lambda req, res, next: next())
        app.use("/items/:id", child)
        app.use(_echo_paths)

        async with TestClient(app) as client:
            response = await client.get("/items/1")

        assert response.json()["params"] == {}


class TestSubApps:
    async def test_mountpath_and_parent(self) -> None:
        app = App()
        blog = App()
        admin = App()
        blog.use("/admin", admin)
        app.use("/blog", blog)

        assert blog.mountpath == "/blog"
        assert blog.parent is app
        assert admin.parent is blog
        assert app.path() == ""
        assert blog.path() == "/blog"
        assert admin.path() == "/blog/admin"

    async def test_sub_app_handles_requests(self) -> None:
        app = App()
        blog = App()
        blog.get("/", _echo_paths)
        app.use("/blog", blog)

        async with TestClient(app) as client:
            response = await client.get("/blog")

        assert response.json() == {
            "base_url": "/blog",
            "path": "/",
            "original_url": "/blog",
            "params": {},
        }

    async def test_request_app_is_sub_app_inside_mount(self) -> None:
        app = App()
        app.locals["name"] = "main"
        blog = App()
        blog.locals["name"] = "blog"
        blog.get("/", lambda req, res, next: res.text(req.app.locals["name"]))
        app.use("/blog", blog)
        app.get("/", lambda req, res, next: res.text(req.app.locals["name"]))

        async with TestClient(app) as client:
            inner = await client.get("/blog")
            outer = await client.get("/")

        assert inner.text == "blog"
        assert outer.text == "main"

    async def test_parent_freeze_freezes_sub_app(self) -> None:
        app = App()
        blog = App()
        app.use("/blog", blog)
        app.freeze()
        assert blog.frozen
        assert blog.router.frozen
