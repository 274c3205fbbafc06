"""Request dispatcher — match, run the chain, decide the response.

States (tracked on ``ctx.state``)::

    MATCHING -> RUNNING_BEFORE -> RUNNING_HANDLER -> RUNNING_AFTER -> RESOLVED

- No route matches: 404 through the error pipeline, straight to RESOLVED.
- The chain finishes: its value becomes the response; the route's
  declared after-middleware runs, then anything queued with ``ctx.after``.
- The chain halts: the halt response is final. Declared after-middleware
  runs only for the groups the request got into before halting, then
  the ``ctx.after`` queue runs.
- The chain fails: ``ctx.error`` is set, the error pipeline builds the
  response, and no after-middleware runs.

Once built, the router is only read, so one Dispatcher serves any number
of concurrent requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from switchyard.context import Context, DispatchState, context_var
from switchyard.errors import NotFound
from switchyard.http.response import Response
from switchyard.middleware.chain import Continue, Fault, Respond, run_after_chain, run_chain
from switchyard.routing.route import Route
from switchyard.routing.router import Router
from switchyard.server.errors import ErrorHandlers, handle_error
from switchyard.server.negotiation import to_response

logger = logging.getLogger("switchyard.server")


class Dispatcher:
    """Ties the router, the middleware chain, and the error pipeline together.

    ``before`` and ``after`` are app-wide middleware: ``before`` runs ahead
    of every route's group middleware, ``after`` follows every route's
    group after-middleware.
    """

    __slots__ = ("_after", "_before", "_debug", "_error_handlers", "_router")

    def __init__(
        self,
        router: Router,
        *,
        before: Sequence[Callable[..., Any]] = (),
        after: Sequence[Callable[..., Any]] = (),
        error_handlers: ErrorHandlers | None = None,
        debug: bool = False,
    ) -> None:
        self._router = router
        self._before = tuple(before)
        self._after = tuple(after)
        self._error_handlers: ErrorHandlers = dict(error_handlers or {})
        self._debug = debug

    @property
    def router(self) -> Router:
        return self._router

    async def dispatch(self, ctx: Context[Any]) -> Response:
        """Produce the final response for *ctx*. Never raises for request faults."""
        token = context_var.set(ctx)
        try:
            return await self._run(ctx)
        finally:
            ctx._transition(DispatchState.RESOLVED)
            context_var.reset(token)

    async def _run(self, ctx: Context[Any]) -> Response:
        try:
            found = self._router.match(ctx.method, ctx.path)
        except NotFound as exc:
            ctx.error = exc
            return await handle_error(exc, ctx, self._error_handlers, self._debug)

        route = found.route
        ctx.params = dict(found.path_params)
        logger.debug("%s %s -> %s", ctx.method, ctx.path, route.path)

        ctx._transition(DispatchState.RUNNING_BEFORE)
        outcome = await run_chain(
            ctx,
            (*self._before, *route.before),
            route.handler,
            params=ctx.params,
            handler_arity=route.handler_arity,
        )

        match outcome:
            case Continue(value=value):
                try:
                    response = to_response(value, ctx)
                except Exception as exc:
                    return await self._fail(ctx, exc)
                declared = (*route.after, *self._after)
            case Respond(response=response, depth=depth):
                declared = (*self._entered_after(route, depth), *self._after)
            case Fault(error=error):
                return await self._fail(ctx, error)

        ctx.response = response
        ctx._transition(DispatchState.RUNNING_AFTER)
        await run_after_chain(ctx, declared)
        await run_after_chain(ctx, ctx.after_middleware)
        return response

    def _entered_after(self, route: Route, depth: int) -> tuple[Callable[..., Any], ...]:
        """After-middleware of the groups whose before-chain the halt reached."""
        base = len(self._before)
        return tuple(
            mw for offset, links in route.after_scopes if base + offset <= depth for mw in links
        )

    async def _fail(self, ctx: Context[Any], error: Exception) -> Response:
        ctx.error = error
        return await handle_error(error, ctx, self._error_handlers, self._debug)
