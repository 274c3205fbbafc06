"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(ctx: Context, next: Next) -> Any: ...

No base class required. The framework checks the shape, not the lineage.
Sync callables work too: ``def mw(ctx, next): return next()`` hands back
the awaitable and the chain awaits it.

``next()`` runs the rest of the chain and returns its result (the
response candidate). A middleware may pass it through, post-process it,
or return its own value without calling ``next()`` at all.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from switchyard.context import Context

# The rest of the chain
type Next = Callable[[], Awaitable[Any]]


class Middleware(Protocol):
    """Protocol for switchyard middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(ctx: Context, next: Next) -> Any:
            start = time.monotonic()
            result = await next()
            ctx.set_header("X-Time", f"{time.monotonic() - start:.3f}")
            return result

        # Class middleware
        class RequireToken:
            def __call__(self, ctx: Context, next: Next) -> Any:
                if ctx.get_header("authorization") is None:
                    ctx.halt(401)
                return next()
    """

    def __call__(self, ctx: Context, next: Next) -> Any: ...
