"""caaspay application class.

Mutable during setup (handler registration, middleware, error handlers).
Frozen at runtime when ``api.run()`` or ``__call__()`` is first invoked;
from then on only the configuration snapshot changes, and only through
``api.reload()``.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from caaspay._internal.asgi import Receive, Scope, Send
from caaspay._internal.types import Handler
from caaspay.config import EnvOverrides, ServerConfig
from caaspay.errors import ConfigError, ReloadFailure
from caaspay.handlers import HandlerRegistry
from caaspay.middleware.credentials import CredentialConfig, CredentialMiddleware
from caaspay.middleware.protocol import Middleware
from caaspay.reload import Applied, ReloadCoordinator
from caaspay.server.handler import handle_request
from caaspay.server.watch import ConfigWatcher
from caaspay.snapshot import Snapshot
from caaspay.store import ConfigSources, ConfigStore

logger = logging.getLogger("caaspay.server")


class Api:
    """The caaspay API service.

    Usage::

        from caaspay import Api, HandlerRegistry

        handlers = HandlerRegistry()

        @handlers.register("get_account")
        async def get_account(ctx, request, path_params, caller):
            return {"id": path_params["id"]}

        api = Api(handlers, config=ServerConfig(config_dir="config"))
        api.run()

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread loads the initial
        configuration, even if several ASGI workers call ``__call__()``
        concurrently on first request.
    """

    __slots__ = (
        "_coordinator",
        "_credentials",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_shutdown_hooks",
        "_sources",
        "_startup_hooks",
        "_watcher",
        "config",
        "handlers",
    )

    def __init__(
        self,
        handlers: HandlerRegistry | None = None,
        *,
        config: ServerConfig | None = None,
        sources: ConfigSources | None = None,
        credentials: CredentialConfig | None = None,
        overrides: EnvOverrides | None = None,
    ) -> None:
        self.config: ServerConfig = config or ServerConfig()
        self.handlers: HandlerRegistry = handlers or HandlerRegistry()
        # Explicit sources win over config_dir (tests, embedded use)
        self._sources: ConfigSources | None = sources
        self._credentials = CredentialMiddleware(credentials)
        self._middleware_list: list[Middleware] = []
        self._middleware: tuple[Callable[..., Any], ...] = ()
        self._error_handlers: dict[int | type, Callable[..., Any]] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._watcher: ConfigWatcher | None = None
        self._coordinator = ReloadCoordinator(
            ConfigStore(overrides or EnvOverrides.from_environ()),
            validate=self._check_handlers,
        )

    # -- Registration --

    def handler(self, name: str | None = None) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator (shortcut for ``api.handlers.register``)."""
        self._check_not_frozen()
        return self.handlers.register(name)

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline (outermost first)."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register an error handler via decorator."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync hook run during ASGI lifespan startup."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync hook run during ASGI lifespan shutdown."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Configuration --

    @property
    def snapshot(self) -> Snapshot:
        """The current snapshot (loads the configuration on first access)."""
        self._ensure_frozen()
        return self._coordinator.current

    @property
    def coordinator(self) -> ReloadCoordinator:
        return self._coordinator

    def load_sources(self) -> ConfigSources:
        """Read the configuration sources this API was set up with."""
        if self._sources is not None:
            return self._sources
        return ConfigSources.from_dir(self.config.config_dir)

    def reload(self, sources: ConfigSources | None = None) -> Applied:
        """Hot-reload the configuration.

        With no argument, re-reads ``config_dir``. Raises ``ReloadFailure``
        if the new configuration is invalid; the current one stays.
        """
        self._ensure_frozen()
        if sources is None:
            try:
                sources = self.load_sources()
            except ConfigError as exc:
                logger.error("reload rejected, cannot read configuration: %s", exc)
                raise ReloadFailure(exc, self._coordinator.version) from exc
        return self._coordinator.reload(sources)

    def _check_handlers(self, snapshot: Snapshot) -> None:
        self.handlers.check_bound(snapshot.routes)

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start the server.

        Loads the configuration (fatal on error) and serves with pounce:
        single worker in debug mode, multi-worker in release mode.
        """
        self._ensure_frozen()
        env = self._coordinator.current.env
        _host = host or self.config.host or env.host
        _port = port or self.config.port or env.port

        if env.debug:
            from caaspay.server.dev import run_dev_server

            run_dev_server(self, _host, _port, log_level=env.log_level)
        else:
            from caaspay.server.production import run_production_server

            run_production_server(
                self,
                host=_host,
                port=_port,
                workers=self.config.workers,
                log_level=env.log_level,
                keep_alive_timeout=self.config.keep_alive_timeout,
                reload_timeout=self.config.reload_timeout,
            )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to the
        request pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        await handle_request(
            scope,
            receive,
            send,
            coordinator=self._coordinator,
            handlers=self.handlers,
            middleware=self._middleware,
            credentials=self._credentials,
            error_handlers=self._error_handlers,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Loads the configuration at startup (before the first HTTP request),
        then runs registered startup/shutdown hooks. An invalid configuration
        fails startup.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    await self._run_hooks(self._startup_hooks)
                    self._start_watcher()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.error("startup failed: %s", exc)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                if self._watcher is not None:
                    self._watcher.stop()
                await self._run_hooks(self._shutdown_hooks)
                await send({"type": "lifespan.shutdown.complete"})
                return

    def _start_watcher(self) -> None:
        """Start polling config_dir when ``ServerConfig.watch`` is on."""
        if not self.config.watch or self._sources is not None:
            return
        if self._watcher is None:
            self._watcher = ConfigWatcher(
                self.config.config_dir, self.reload, interval=self.config.watch_interval
            )
        self._watcher.start()

    async def _run_hooks(self, hooks: list[Callable[..., Any]]) -> None:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Load the initial snapshot and capture middleware.

        MUST only be called while holding _freeze_lock. Configuration errors
        propagate: an API never starts with an invalid configuration.
        """
        self._coordinator.initialize(self.load_sources())
        self._middleware = tuple(self._middleware_list)
        self.handlers.freeze()
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the API after it has started serving requests. "
                "Register handlers, middleware, and error handlers before calling api.run()."
            )
            raise RuntimeError(msg)

    @classmethod
    def from_config_dir(
        cls,
        config_dir: str | Path,
        handlers: HandlerRegistry | None = None,
        **kwargs: Any,
    ) -> Api:
        """Convenience constructor: ``Api.from_config_dir("config", handlers)``."""
        return cls(handlers, config=ServerConfig(config_dir=str(config_dir)), **kwargs)
