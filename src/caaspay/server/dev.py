"""Development server.

Starts a pounce ASGI server with the live caaspay Api object in
single-worker mode. Configuration changes are picked up by the Api's own
config watcher rather than a process restart, so requests in flight are
never dropped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from caaspay.app import Api


def run_dev_server(
    api: Api,
    host: str,
    port: int,
    *,
    log_level: str = "debug",
) -> None:
    """Start a single-worker pounce server with the given Api.

    Pounce's ``run()`` takes an import string, but caaspay has a live
    ``Api`` object, so ``pounce.Server`` is used directly with the ASGI
    callable.

    Args:
        api: ASGI callable (caaspay Api instance).
        host: Bind host address.
        port: Bind port number.
        log_level: pounce log level.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=False,
        log_level=log_level,
    )
    server = Server(config, api)
    server.run()
