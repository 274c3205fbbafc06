"""Server bootstrap — runs a switchyard App on the pounce ASGI server.

pounce is an optional dependency (``pip install switchyard[server]``);
the app itself is a plain ASGI callable and runs under any ASGI server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from switchyard.errors import ConfigurationError

if TYPE_CHECKING:
    from switchyard.app import App


def run_server(
    app: App,
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """Start a pounce server with the given App.

    Args:
        app: ASGI callable (switchyard App instance).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count (0 = auto-detect from CPU count).
        reload: Restart on source changes (development only).
        log_level: Server log level (debug, info, warning, error, critical).
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError as exc:
        msg = (
            "Running the built-in server requires pounce. "
            "Install it with: pip install switchyard[server]"
        )
        raise ConfigurationError(msg) from exc

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        reload=reload,
        log_level=log_level,
    )
    Server(config, app).run()
