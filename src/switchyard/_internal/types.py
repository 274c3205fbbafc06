"""Shared type aliases used across switchyard modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: ``(ctx, params)``, ``(ctx)`` or ``()``
Handler: TypeAlias = Callable[..., Any]

# Error handler: receives (ctx, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
