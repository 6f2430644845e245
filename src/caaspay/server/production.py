"""Production server.

Starts a multi-worker pounce server. Each worker runs the ASGI lifespan,
which loads the configuration and (when enabled) starts the config
watcher, so every worker hot-reloads independently.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from caaspay.app import Api


def run_production_server(
    api: Api,
    host: str = "0.0.0.0",
    port: int = 8080,
    workers: int = 0,  # 0 = auto-detect from CPU count
    *,
    log_level: str = "info",
    log_format: str = "json",
    max_connections: int = 1000,
    backlog: int = 2048,
    keep_alive_timeout: float = 5.0,
    reload_timeout: float = 30.0,
    ssl_certfile: str | None = None,
    ssl_keyfile: str | None = None,
) -> None:
    """Run the Api in release mode.

    Args:
        api: caaspay Api instance.
        host: Bind address (default: 0.0.0.0 for all interfaces).
        port: Bind port.
        workers: Worker count (0 = auto-detect from CPU count).
        log_level: Log level (debug, info, warning, error, critical).
        log_format: Log format ("json" or "text").
        max_connections: Maximum concurrent connections.
        backlog: TCP listen backlog.
        keep_alive_timeout: Keep-alive connection timeout (seconds).
        reload_timeout: Time to wait for workers to drain on shutdown.
        ssl_certfile: Path to TLS certificate file.
        ssl_keyfile: Path to TLS private key file.

    Example:
        >>> from payments.app import api
        >>> from caaspay.server.production import run_production_server
        >>> run_production_server(api, workers=4)
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        reload_timeout=reload_timeout,
        lifecycle_logging=True,
        log_format=log_format,
        log_level=log_level,
        max_connections=max_connections,
        backlog=backlog,
        keep_alive_timeout=keep_alive_timeout,
        ssl_certfile=ssl_certfile,
        ssl_keyfile=ssl_keyfile,
        # Health checks are ordinary routes in routes.yaml
        health_check_path=None,
    )

    server = Server(config, api)
    server.run()
