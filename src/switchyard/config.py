"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(strict_routing=True, server_header="switchyard")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    workers: int = 1
    reload: bool = False

    # Routing
    strict_routing: bool = False  # Treat "/foo/" and "/foo" as distinct targets

    # Responses
    server_header: str | None = None  # Sent as "Server" on every response

    # Logging
    log_level: str = "info"
