"""Handler registry — binds ``handler:`` names in routes.yaml to domain code.

Domain code registers its callables once at startup; the core never knows
how a handler is implemented, only that it accepts::

    handler(ctx, request, path_params, caller) -> response value

Usage::

    from caaspay import HandlerRegistry

    handlers = HandlerRegistry()

    @handlers.register("get_account")
    async def get_account(ctx, request, path_params, caller):
        return {"id": path_params["id"], "mode": ctx.env.mode}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from caaspay._internal.types import Handler
from caaspay.errors import ConfigError, ConfigErrorKind

if TYPE_CHECKING:
    from caaspay.config import EnvSettings
    from caaspay.routing.route import RouteDefinition


@dataclass(frozen=True, slots=True)
class HandlerContext:
    """Per-request context passed to every handler as ``ctx``.

    ``env`` is the environment of the snapshot the request was matched
    against, so a handler never sees a mode from a newer reload mid-request.
    """

    snapshot_version: int
    env: EnvSettings
    route: RouteDefinition
    request_id: str


class HandlerRegistry:
    """Name -> handler mapping, populated at startup by domain code."""

    __slots__ = ("_frozen", "_handlers")

    def __init__(self, handlers: dict[str, Handler] | None = None) -> None:
        self._handlers: dict[str, Handler] = {}
        self._frozen = False
        for name, handler in (handlers or {}).items():
            self.add(name, handler)

    def add(self, name: str, handler: Handler) -> None:
        """Register *handler* under *name*."""
        if self._frozen:
            msg = "Cannot register handlers after the API has started serving requests."
            raise RuntimeError(msg)
        if not name:
            msg = "Handler name must not be empty."
            raise ValueError(msg)
        if name in self._handlers:
            msg = f"Handler {name!r} is already registered."
            raise ValueError(msg)
        if not callable(handler):
            msg = f"Handler {name!r} is not callable."
            raise TypeError(msg)
        self._handlers[name] = handler

    def register(self, name: str | None = None) -> Callable[[Handler], Handler]:
        """Register a handler via decorator. Defaults to the function name."""

        def decorator(func: Handler) -> Handler:
            self.add(name or func.__name__, func)
            return func

        return decorator

    def freeze(self) -> None:
        self._frozen = True

    def get(self, name: str) -> Handler:
        return self._handlers[name]

    def check_bound(self, routes: Iterable[RouteDefinition]) -> None:
        """Raise ``ConfigError`` (UNKNOWN_HANDLER) if any route names an unregistered handler."""
        for index, route in enumerate(routes):
            if route.handler_name not in self._handlers:
                raise ConfigError(
                    ConfigErrorKind.UNKNOWN_HANDLER,
                    f"{route.method} {route.pattern} references unknown handler "
                    f"{route.handler_name!r}",
                    source="routes.yaml",
                    index=index,
                )

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
