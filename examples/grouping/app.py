"""Route grouping — nested prefixes, inherited middleware, and halt.

Demonstrates:
- ``app.group()`` / ``group.group()`` for ``/api``, ``/api/v1``, ``/api/v2``
- Group middleware that runs root-first before each route
- A group guard that halts every request under ``/api``
- App-wide middleware added with ``app.use()`` after the routes exist
- ``ctx.after()`` for an access line that is written even for halted requests

Run:
    cd examples/grouping && python app.py
"""

import logging
from typing import Any

from switchyard import App, AppConfig, Context, Next

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("grouping")

app = App(AppConfig(port=3000))


def trace(label: str):
    """Middleware that records its label in ``ctx.locals`` and continues."""

    def middleware(ctx: Context, next: Next) -> Any:
        ctx.locals.setdefault("trace", []).append(label)
        log.info("called from %s", label)
        return next()

    return middleware


def closed(ctx: Context, next: Next) -> Any:
    ctx.halt(200, "You've visited a group route. Please try going to some child route")


api = app.group("/api", trace("api"), closed)

api_v1 = api.group("/v1", trace("api v1"))
api_v1.get("/list", lambda ctx: ctx.json({"list": "list"}))
api_v1.get("/user", lambda ctx: ctx.json({"user": "user"}))

api_v2 = app.group("/v2", trace("v2"))
api_v2.get("/list", lambda ctx: ctx.json({"list": "list", "trace": ctx.locals["trace"]}))


@app.get("/")
def index(ctx: Context) -> Any:
    ctx.halt(200, {"message": "Hello World!"})


async def logger(ctx: Context, next: Next) -> Any:
    log.info("--> %s %s", ctx.method, ctx.path)

    def done(ctx: Context, next: Next) -> Any:
        log.info("<-- %s %s %d", ctx.method, ctx.path, ctx.status)
        ctx.locals["logged"] = True
        return next()

    ctx.after(done)
    return await next()


def powered_by(ctx: Context, next: Next) -> Any:
    log.info("served %s", ctx.path)
    return next()


app.use(logger).use(powered_by, "after")


if __name__ == "__main__":
    app.run()
