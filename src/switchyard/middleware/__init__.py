"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(ctx: Context, next: Next) -> Any

Built-in middleware:
    RequestLogger -- Access log line per request, written after the response is decided
"""

from switchyard.middleware.builtin import RequestLogger, RequestLoggerConfig
from switchyard.middleware.chain import Continue, Fault, Outcome, Respond, run_after_chain, run_chain
from switchyard.middleware.protocol import Middleware, Next

__all__ = [
    "Continue",
    "Fault",
    "Middleware",
    "Next",
    "Outcome",
    "RequestLogger",
    "RequestLoggerConfig",
    "Respond",
    "run_after_chain",
    "run_chain",
]
