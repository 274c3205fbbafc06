"""Switchyard application class.

Mutable during setup (route registration, groups, middleware, hooks).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard._internal.invoke import positional_arity
from switchyard._internal.types import ErrorHandler, Handler
from switchyard.config import AppConfig
from switchyard.errors import ConfigurationError
from switchyard.routing.group import Group, GroupTable, Phase, RouteMethods, check_phase
from switchyard.routing.pattern import compile_pattern, join_path, normalize_path
from switchyard.routing.route import Route
from switchyard.routing.router import Router
from switchyard.server.dispatch import Dispatcher
from switchyard.server.handler import handle_request

logger = logging.getLogger("switchyard.routing")


def _check_callable(value: object, role: str, path: str) -> None:
    if not callable(value):
        msg = f"Route {path!r}: {role} must be callable, got {type(value).__name__}."
        raise ConfigurationError(msg)


class App[S](RouteMethods):
    """The switchyard application.

    Usage::

        app = App()

        app.get("/user/:name", lambda ctx, params: ctx.json(params))

        api = app.group("/api", require_token)
        api.get("/status", status)

        app.use(RequestLogger())

    ``S`` types ``ctx.locals``; pass ``locals_factory`` to start every
    request with something other than an empty dict.

    Thread safety:
        The setup phase is single-threaded (registration at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app, even if several workers call
        ``__call__()`` on their first request at once.
    """

    __slots__ = (
        "_dispatcher",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_global_after",
        "_global_before",
        "_groups",
        "_locals_factory",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        locals_factory: Callable[[], S] | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router()
        self._groups = GroupTable()
        self._global_before: list[Callable[..., Any]] = []
        self._global_after: list[Callable[..., Any]] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._locals_factory = locals_factory
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._dispatcher: Dispatcher | None = None

    # -- Route registration --

    def _target(self) -> tuple["App[S]", int | None]:
        return self, None

    def _register(
        self,
        methods: Sequence[str],
        path: str,
        middleware: Sequence[Callable[..., Any]],
        handler: Handler,
        *,
        group: int | None,
        name: str | None,
    ) -> None:
        """Compile *path* under *group* and add one route per method.

        The group's prefix and middleware are read now; later changes to
        the group don't reach this route.
        """
        self._check_not_frozen()
        _check_callable(handler, "handler", path)
        for mw in middleware:
            _check_callable(mw, "middleware", path)

        if group is not None:
            full_path = join_path(self._groups.prefix(group), path)
            before = (*self._groups.before(group), *middleware)
            after = self._groups.after(group)
            after_scopes = self._groups.after_scopes(group)
        else:
            full_path, before, after, after_scopes = path, tuple(middleware), (), ()

        full_path = normalize_path(full_path, strict=self.config.strict_routing)
        segments, names = compile_pattern(full_path)
        arity = positional_arity(handler, 2)

        for method in methods:
            self._router.add(
                Route(
                    method=method.upper(),
                    path=full_path,
                    segments=segments,
                    param_names=names,
                    handler=handler,
                    before=before,
                    after=after,
                    index=len(self._router),
                    name=name,
                    handler_arity=arity,
                    after_scopes=after_scopes,
                )
            )
            logger.debug("Registered %s %s", method.upper(), full_path)

    def group(self, prefix: str, *before: Callable[..., Any]) -> Group:
        """Create a top-level route group.

        Routes registered on the group get *prefix* prepended and run
        *before* ahead of their own middleware::

            api = app.group("/api", require_token)
            v1 = api.group("/v1")
            v1.get("/list", list_items)
        """
        self._check_not_frozen()
        for mw in before:
            _check_callable(mw, "middleware", prefix)
        return Group(self, self._groups, self._groups.create(prefix, before))

    @property
    def routes(self) -> list[Route]:
        """Registered routes in registration order."""
        return self._router.routes

    # -- Middleware --

    def use(self, middleware: Callable[..., Any], phase: Phase = "before") -> "App[S]":
        """Add app-wide middleware, applied to every route.

        Unlike group middleware this is not captured per route, so it
        also reaches routes registered before the call. ``before``
        middleware runs ahead of all group middleware; ``after``
        middleware runs after the route's group after-middleware.
        Returns the app so calls chain.
        """
        self._check_not_frozen()
        check_phase(phase)
        _check_callable(middleware, "middleware", "*")
        (self._global_before if phase == "before" else self._global_after).append(middleware)
        return self

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator.

        Handlers receive ``(ctx, exc)`` (or fewer) and return any value a
        route handler could return::

            @app.error(404)
            def not_found(ctx):
                return ctx.json({"error": "not found"}, status=404)
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Freeze the app and serve it with pounce.

        Args:
            host: Override bind host.
            port: Override bind port.
        """
        from switchyard.server.serve import run_server

        self._ensure_frozen()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            workers=self.config.workers,
            reload=self.config.reload or self.config.debug,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._dispatcher is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            config=self.config,
            locals_factory=self._locals_factory,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before the first HTTP request), then
        runs the registered hooks and signals completion to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self._run_hooks(self._startup_hooks)
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self._run_hooks(self._shutdown_hooks)
                await send({"type": "lifespan.shutdown.complete"})
                return

    @staticmethod
    async def _run_hooks(hooks: Sequence[Callable[..., Any]]) -> None:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        self._router.compile()
        self._dispatcher = Dispatcher(
            self._router,
            before=self._global_before,
            after=self._global_after,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
        )
        self._frozen = True
        logger.debug("Compiled %d routes", len(self._router))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, groups, and middleware before calling app.run()."
            )
            raise RuntimeError(msg)
