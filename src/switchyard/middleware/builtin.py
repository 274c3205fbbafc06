"""Built-in middleware: request logging.

Logs one line when a request enters the chain and an access line once
the response has been decided. The access line is queued with
``ctx.after`` so it is written for halted requests too.
"""

import logging
from dataclasses import dataclass
from typing import Any

from switchyard.context import Context
from switchyard.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class RequestLoggerConfig:
    """RequestLogger configuration.

    ``logger_name`` picks the logger the lines go to; ``level`` is the
    level used for successful requests. Failures are always logged at
    ERROR.
    """

    logger_name: str = "switchyard.access"
    level: int = logging.INFO
    log_start: bool = False


class RequestLogger:
    """Access-log middleware.

    Usage::

        app.use(RequestLogger())

        # or only under a group
        api = app.group("/api", RequestLogger(RequestLoggerConfig(log_start=True)))
    """

    __slots__ = ("config", "logger")

    def __init__(self, config: RequestLoggerConfig | None = None) -> None:
        self.config = config or RequestLoggerConfig()
        self.logger = logging.getLogger(self.config.logger_name)

    async def _access(self, ctx: Context[Any], next: Next) -> Any:
        self.logger.log(
            self.config.level,
            "%s %s %d %.1fms",
            ctx.method,
            ctx.path,
            ctx.status,
            ctx.meta.elapsed * 1000,
        )
        return await next()

    async def __call__(self, ctx: Context[Any], next: Next) -> Any:
        if self.config.log_start:
            self.logger.log(self.config.level, "--> %s %s", ctx.method, ctx.path)
        ctx.after(self._access)
        try:
            return await next()
        except Exception as exc:
            # Queued after-middleware is skipped for failed requests
            self.logger.error(
                "%s %s failed after %.1fms: %r",
                ctx.method,
                ctx.path,
                ctx.meta.elapsed * 1000,
                exc,
            )
            raise
