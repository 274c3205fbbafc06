"""Middleware chain execution.

``run_chain`` drives the before-middleware and the route handler and
reports how it ended as one of three outcomes:

- ``Continue(value)``: the chain finished; *value* is the response candidate
- ``Respond(response, depth)``: ``ctx.halt()`` was called at chain position
  *depth*; *response* is final
- ``Fault(error)``: any other exception escaped a link

The dispatcher matches on the outcome instead of catching exceptions, so
a halt is never confused with a failure.

``run_after_chain`` drives after-middleware purely for side effects:
return values are dropped and errors are logged, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from switchyard._internal.invoke import invoke
from switchyard.errors import Halt

if TYPE_CHECKING:
    from switchyard.context import Context
    from switchyard.http.response import Response

logger = logging.getLogger("switchyard.middleware")


@dataclass(frozen=True, slots=True)
class Continue:
    value: Any = None


@dataclass(frozen=True, slots=True)
class Respond:
    response: Response
    depth: int = 0  # deepest chain position reached; len(before) is the handler


@dataclass(frozen=True, slots=True)
class Fault:
    error: Exception


type Outcome = Continue | Respond | Fault


def _link_next(call: Callable[[int], Any], index: int) -> Callable[[], Any]:
    """Build the ``next`` passed to link *index - 1*. Runs at most once."""
    called = False

    async def next_() -> Any:
        nonlocal called
        if called:
            msg = "next() called more than once by the same middleware."
            raise RuntimeError(msg)
        called = True
        return await call(index)

    return next_


async def run_chain(
    ctx: Context,
    before: Sequence[Callable[..., Any]],
    handler: Callable[..., Any],
    *,
    params: dict[str, str | None],
    handler_arity: int = 2,
) -> Outcome:
    """Run *before* middleware then *handler*, depth-first and in order.

    The handler is reached only if every middleware calls ``next()``.
    It receives ``(ctx, params)`` trimmed to the arity it declares.
    """
    handler_args = (ctx, params)[:handler_arity]
    depth = 0

    async def call(index: int) -> Any:
        nonlocal depth
        depth = max(depth, index)
        if index < len(before):
            return await invoke(before[index], ctx, _link_next(call, index + 1))
        ctx._enter_handler()
        return await invoke(handler, *handler_args)

    try:
        value = await call(0)
    except Halt as halt:
        return Respond(halt.response, depth)
    except Exception as exc:
        return Fault(exc)
    return Continue(value)


async def run_after_chain(ctx: Context, links: Sequence[Callable[..., Any]]) -> None:
    """Run after-middleware for side effects.

    Links keep the ``(ctx, next)`` shape; a link that doesn't call
    ``next()`` ends this chain. Halts and errors are logged and dropped,
    since the response has already been decided.
    """
    if not links:
        return

    async def call(index: int) -> Any:
        if index < len(links):
            return await invoke(links[index], ctx, _link_next(call, index + 1))
        return None

    try:
        await call(0)
    except Halt:
        logger.warning(
            "halt() during after-middleware ignored for %s %s", ctx.method, ctx.path
        )
    except Exception:
        logger.exception("After-middleware failed for %s %s", ctx.method, ctx.path)
