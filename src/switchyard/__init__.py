"""Switchyard — request routing and middleware dispatch for ASGI.

Declare routes with ``:params``, optional params and ``*wildcards``,
group them under shared prefixes and middleware, and let the dispatcher
run each request through its chain.

Basic usage::

    from switchyard import App

    app = App()

    @app.get("/user/:name")
    def show_user(ctx, params):
        return ctx.json({"user": params["name"]})

    api = app.group("/api", require_token)
    api.get("/status", lambda ctx: ctx.text("ok"))

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "Group",
    "HTTPError",
    "Middleware",
    "Next",
    "NotFound",
    "Request",
    "RequestLogger",
    "Response",
    "SwitchyardError",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchyard`` fast while providing a clean top-level API.
    """
    if name == "App":
        from switchyard.app import App

        return App

    if name == "AppConfig":
        from switchyard.config import AppConfig

        return AppConfig

    if name == "Group":
        from switchyard.routing.group import Group

        return Group

    if name == "Request":
        from switchyard.http.request import Request

        return Request

    if name == "Response":
        from switchyard.http.response import Response

        return Response

    if name in ("Context", "get_context"):
        from switchyard import context as _ctx

        return getattr(_ctx, name)

    if name in ("Middleware", "Next", "RequestLogger"):
        from switchyard import middleware as _mw

        return getattr(_mw, name)

    if name in ("ConfigurationError", "HTTPError", "NotFound", "SwitchyardError"):
        from switchyard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
