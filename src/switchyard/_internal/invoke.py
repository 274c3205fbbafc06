"""Invoke helpers — call sync or async links uniformly.

Handlers and middleware can be ``def`` or ``async def``. Any code that
calls a user-provided callable must handle both cases. This module keeps
the sync/async check in exactly one place.

Usage::

    from switchyard._internal.invoke import invoke

    result = await invoke(handler, ctx, params)
"""

import inspect
from collections.abc import Callable
from typing import Any


async def invoke(func: Callable[..., Any], *args: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    A sync middleware may simply ``return next()``; the coroutine it
    hands back is awaited here like any other async result.
    """
    result = func(*args)
    while inspect.isawaitable(result):
        result = await result
    return result


def positional_arity(func: Callable[..., Any], limit: int) -> int:
    """Return how many of *limit* positional arguments *func* accepts.

    Handlers may be declared as ``(ctx, params)``, ``(ctx)`` or ``()``.
    Resolved once at registration so dispatch never inspects signatures.
    Callables whose signature cannot be read get the full *limit*.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return limit

    count = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return limit
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return min(count, limit)
