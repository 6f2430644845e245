"""caaspay — config-driven routing and caller authorization for caaspay-api.

Routes, caller credentials and environment settings live in three YAML
files. caaspay compiles them into an immutable snapshot, authorizes every
request against the snapshot it was matched with, and hot-swaps snapshots
atomically on reload.

Basic usage::

    from caaspay import Api, HandlerRegistry

    handlers = HandlerRegistry()

    @handlers.register("get_account")
    async def get_account(ctx, request, path_params, caller):
        return {"id": path_params["id"], "caller": caller.id}

    api = Api.from_config_dir("config", handlers)
    api.run()
"""

__version__ = "0.1.0"
__all__ = [
    "Api",
    "Applied",
    "CaaspayError",
    "CallerIdentity",
    "ConfigError",
    "ConfigErrorKind",
    "ConfigSources",
    "ConfigStore",
    "CredentialRegistry",
    "EnvSettings",
    "HTTPError",
    "HandlerContext",
    "HandlerRegistry",
    "MethodNotAllowed",
    "Middleware",
    "Mode",
    "Next",
    "NotFound",
    "ReloadCoordinator",
    "ReloadFailure",
    "Request",
    "Response",
    "RouteConflict",
    "RouteTable",
    "ServerConfig",
    "Snapshot",
    "get_caller",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import caaspay`` fast while providing a clean top-level API.
    """
    if name == "Api":
        from caaspay.app import Api

        return Api

    if name in ("EnvSettings", "Mode", "ServerConfig"):
        from caaspay import config as _config

        return getattr(_config, name)

    if name in ("HandlerContext", "HandlerRegistry"):
        from caaspay import handlers as _handlers

        return getattr(_handlers, name)

    if name in ("ConfigSources", "ConfigStore"):
        from caaspay import store as _store

        return getattr(_store, name)

    if name in ("Applied", "ReloadCoordinator"):
        from caaspay import reload as _reload

        return getattr(_reload, name)

    if name == "Snapshot":
        from caaspay.snapshot import Snapshot

        return Snapshot

    if name == "RouteTable":
        from caaspay.routing.table import RouteTable

        return RouteTable

    if name in ("CallerIdentity", "CredentialRegistry"):
        from caaspay.security import credentials as _credentials

        return getattr(_credentials, name)

    if name in ("Request", "Response"):
        from caaspay import http as _http

        return getattr(_http, name)

    if name in ("Middleware", "Next"):
        from caaspay.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("get_caller", "get_request"):
        from caaspay import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "CaaspayError",
        "ConfigError",
        "ConfigErrorKind",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "ReloadFailure",
        "RouteConflict",
    ):
        from caaspay import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
