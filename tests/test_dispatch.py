"""Tests for switchyard.server.dispatch — the per-request state machine."""

import json
import logging
from typing import Any

from switchyard.app import App
from switchyard.config import AppConfig
from switchyard.context import DispatchState, get_context
from switchyard.errors import HTTPError, NotFound
from switchyard.server.dispatch import Dispatcher


async def _dispatch(app: App[Any], ctx):
    app._ensure_frozen()
    dispatcher: Dispatcher = app._dispatcher  # type: ignore[assignment]
    return await dispatcher.dispatch(ctx)


class TestMatching:
    async def test_no_match_is_404(self, make_ctx) -> None:
        app = App()
        app.get("/hello", lambda ctx: "hi")
        ctx = make_ctx("GET", "/nope")

        response = await _dispatch(app, ctx)
        assert response.status == 404
        assert isinstance(ctx.error, NotFound)
        assert ctx.state is DispatchState.RESOLVED

    async def test_no_match_runs_no_middleware(self, make_ctx) -> None:
        calls: list[str] = []

        def tracker(ctx, next):
            calls.append("before")
            ctx.after(lambda ctx, next: calls.append("queued"))
            return next()

        app = App()
        app.use(tracker).use(lambda ctx, next: calls.append("after"), "after")
        app.get("/hello", lambda ctx: "hi")

        response = await _dispatch(app, make_ctx("GET", "/nope"))
        assert response.status == 404
        assert calls == []

    async def test_params_on_context(self, make_ctx) -> None:
        app = App()
        app.get("/user/:name/books/:title", lambda ctx, params: ctx.json(params))
        ctx = make_ctx("GET", "/user/alice/books/dune")

        response = await _dispatch(app, ctx)
        assert json.loads(response.text) == {"name": "alice", "title": "dune"}
        assert ctx.params == {"name": "alice", "title": "dune"}


class TestOutcomes:
    async def test_continue_runs_declared_after_then_queue(self, make_ctx) -> None:
        calls: list[str] = []

        def before(ctx, next):
            ctx.after(lambda ctx, next: calls.append("queued"))
            return next()

        def group_after(ctx, next):
            calls.append("group-after")
            return next()

        def global_after(ctx, next):
            calls.append("global-after")
            return next()

        app = App()
        app.use(global_after, "after")
        api = app.group("/api", before)
        api.use(group_after, "after")
        api.get("/x", lambda ctx: "ok")

        response = await _dispatch(app, make_ctx("GET", "/api/x"))
        assert response.text == "ok"
        assert calls == ["group-after", "global-after", "queued"]

    async def test_after_middleware_sees_final_response(self, make_ctx) -> None:
        seen: list[int] = []

        app = App()
        app.use(lambda ctx, next: seen.append(ctx.status), "after")
        app.get("/x", lambda ctx: ctx.text("made", status=201))

        await _dispatch(app, make_ctx("GET", "/x"))
        assert seen == [201]

    async def test_halt_runs_app_after_and_queue_once(self, make_ctx) -> None:
        calls: list[str] = []

        def queue(ctx, next):
            ctx.after(lambda ctx, next: calls.append("queued"))
            return next()

        def guard(ctx, next):
            ctx.halt(401, "You shall not pass")

        def handler(ctx):
            calls.append("handler")

        app = App()
        app.use(lambda ctx, next: calls.append("declared-after"), "after")
        app.get("/admin", queue, guard, handler)
        ctx = make_ctx("GET", "/admin")

        response = await _dispatch(app, ctx)
        assert response.status == 401
        assert response.text == "You shall not pass"
        assert calls == ["declared-after", "queued"]
        assert ctx.error is None

    async def test_halt_skips_after_of_groups_not_entered(self, make_ctx) -> None:
        calls: list[str] = []

        def guard(ctx, next):
            ctx.halt(200, "X")

        def handler(ctx):
            calls.append("handler")

        app = App()
        api = app.group("/api", guard)
        api.use(lambda ctx, next: calls.append("api-after"), "after")
        v1 = api.group("/v1", lambda ctx, next: next())
        v1.use(lambda ctx, next: calls.append("v1-after"), "after")
        v1.get("/list", handler)

        response = await _dispatch(app, make_ctx("GET", "/api/v1/list"))
        assert (response.status, response.text) == (200, "X")
        assert calls == ["api-after"]

    async def test_halt_in_handler_runs_every_group_after(self, make_ctx) -> None:
        calls: list[str] = []

        def after(label):
            def middleware(ctx, next):
                calls.append(label)
                return next()

            return middleware

        def handler(ctx):
            ctx.halt(409)

        app = App()
        app.use(after("app-after"), "after")
        api = app.group("/api")
        api.use(after("api-after"), "after")
        v1 = api.group("/v1")
        v1.use(after("v1-after"), "after")
        v1.get("/list", handler)

        response = await _dispatch(app, make_ctx("GET", "/api/v1/list"))
        assert (response.status, response.text) == (409, "Conflict")
        assert calls == ["api-after", "v1-after", "app-after"]

    async def test_fault_skips_all_after(self, make_ctx) -> None:
        calls: list[str] = []

        def queue(ctx, next):
            ctx.after(lambda ctx, next: calls.append("queued"))
            return next()

        def handler(ctx):
            raise ValueError("boom")

        app = App()
        app.use(lambda ctx, next: calls.append("declared-after"), "after")
        app.get("/fail", queue, handler)
        ctx = make_ctx("GET", "/fail")

        response = await _dispatch(app, ctx)
        assert response.status == 500
        assert response.text == "Internal Server Error"
        assert isinstance(ctx.error, ValueError)
        assert calls == []

    async def test_http_error_keeps_status(self, make_ctx) -> None:
        def handler(ctx):
            raise HTTPError(status=418, detail="I'm a teapot", headers=(("X-Tea", "earl"),))

        app = App()
        app.get("/tea", handler)

        response = await _dispatch(app, make_ctx("GET", "/tea"))
        assert response.status == 418
        assert response.text == "I'm a teapot"
        assert response.get_header("X-Tea") == "earl"

    async def test_after_error_does_not_replace_response(self, make_ctx, caplog) -> None:
        def broken(ctx, next):
            raise RuntimeError("after boom")

        app = App()
        app.use(broken, "after")
        app.get("/x", lambda ctx: "fine")

        with caplog.at_level(logging.ERROR, logger="switchyard.middleware"):
            response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.status == 200
        assert response.text == "fine"
        assert "After-middleware failed" in caplog.text

    async def test_state_walk(self, make_ctx) -> None:
        states: list[DispatchState] = []

        def before(ctx, next):
            states.append(ctx.state)
            return next()

        def handler(ctx):
            states.append(ctx.state)

        def after(ctx, next):
            states.append(ctx.state)
            return next()

        app = App()
        app.use(before).use(after, "after")
        app.get("/x", handler)
        ctx = make_ctx("GET", "/x")

        await _dispatch(app, ctx)
        assert states == [
            DispatchState.RUNNING_BEFORE,
            DispatchState.RUNNING_HANDLER,
            DispatchState.RUNNING_AFTER,
        ]
        assert ctx.state is DispatchState.RESOLVED

    async def test_after_queue_refused_during_after_phase(self, make_ctx, caplog) -> None:
        def late(ctx, next):
            ctx.after(lambda ctx, next: None)

        app = App()
        app.use(late, "after")
        app.get("/x", lambda ctx: "ok")

        with caplog.at_level(logging.ERROR, logger="switchyard.middleware"):
            response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.text == "ok"
        assert "After-middleware failed" in caplog.text

    async def test_none_result_uses_context_response(self, make_ctx) -> None:
        def handler(ctx):
            ctx.status = 204
            ctx.set_header("X-Done", "yes")

        app = App()
        app.delete("/item/:id", handler)

        response = await _dispatch(app, make_ctx("DELETE", "/item/1"))
        assert response.status == 204
        assert response.get_header("X-Done") == "yes"

    async def test_get_context_reaches_deep_collaborators(self, make_ctx) -> None:
        def load_user(name: str) -> str:
            if name != "alice":
                get_context().halt(404, "No such user")
            return name

        app = App()
        app.get("/user/:name", lambda ctx, params: ctx.text(load_user(params["name"])))

        ok = await _dispatch(app, make_ctx("GET", "/user/alice"))
        assert ok.text == "alice"
        missing = await _dispatch(app, make_ctx("GET", "/user/bob"))
        assert missing.status == 404
        assert missing.text == "No such user"


class TestErrorHandlers:
    async def test_status_handler(self, make_ctx) -> None:
        app = App()

        @app.error(404)
        def not_found(ctx):
            return ctx.json({"error": "not found", "path": ctx.path})

        response = await _dispatch(app, make_ctx("GET", "/missing"))
        assert response.status == 404
        assert json.loads(response.text) == {"error": "not found", "path": "/missing"}

    async def test_exception_type_handler(self, make_ctx) -> None:
        app = App()

        @app.error(ValueError)
        async def bad_value(ctx, exc):
            return ctx.text(f"bad: {exc}", status=422)

        def handler(ctx):
            raise ValueError("nope")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.status == 422
        assert response.text == "bad: nope"

    async def test_base_class_handler(self, make_ctx) -> None:
        app = App()

        @app.error(LookupError)
        def lookup(ctx, exc):
            return ctx.text("lookup failed")

        def handler(ctx):
            raise KeyError("k")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.status == 500
        assert response.text == "lookup failed"

    async def test_status_wins_over_catch_all(self, make_ctx) -> None:
        app = App()
        app.error(Exception)(lambda ctx: ctx.text("generic"))
        app.error(404)(lambda ctx: ctx.text("missing"))

        response = await _dispatch(app, make_ctx("GET", "/nope"))
        assert response.status == 404
        assert response.text == "missing"

    async def test_broken_error_handler_falls_back(self, make_ctx) -> None:
        app = App()

        @app.error(500)
        def explode(ctx, exc):
            raise RuntimeError("handler broke")

        def handler(ctx):
            raise ValueError("boom")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_debug_shows_traceback(self, make_ctx) -> None:
        app = App(AppConfig(debug=True))

        def handler(ctx):
            raise ValueError("visible in debug")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.status == 500
        assert "Traceback" in response.text
        assert "visible in debug" in response.text

    async def test_not_found_handler_may_halt(self, make_ctx) -> None:
        app = App()

        @app.error(404)
        def gone(ctx):
            ctx.halt(410, "gone")

        response = await _dispatch(app, make_ctx("GET", "/old"))
        assert response.status == 410
        assert response.text == "gone"

    async def test_internal_error_handler_may_halt(self, make_ctx) -> None:
        app = App()

        @app.error(500)
        async def unavailable(ctx, exc):
            ctx.halt(503)

        def handler(ctx):
            raise ValueError("boom")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x"))
        assert response.status == 503
        assert response.text == "Service Unavailable"

    async def test_internal_error_keeps_server_header(self, make_ctx) -> None:
        config = AppConfig(server_header="switchyard")
        app = App(config)

        def handler(ctx):
            raise ValueError("boom")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x", config=config))
        assert response.status == 500
        assert response.get_header("Server") == "switchyard"

    async def test_debug_traceback_keeps_server_header(self, make_ctx) -> None:
        config = AppConfig(debug=True, server_header="switchyard")
        app = App(config)

        def handler(ctx):
            raise ValueError("boom")

        app.get("/x", handler)
        response = await _dispatch(app, make_ctx("GET", "/x", config=config))
        assert response.status == 500
        assert response.get_header("Server") == "switchyard"
