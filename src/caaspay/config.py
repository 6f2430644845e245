"""Service and process configuration.

``EnvSettings`` is the environment-scoped part of a snapshot (from
``api.yaml`` plus environment overrides). ``ServerConfig`` controls the
process that serves the API. Both are frozen dataclasses: immutable after
creation, no string-key dict lookups.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

ENV_VAR_ENV = "CAASPAY_ENV"
ENV_VAR_MODE = "CAASPAY_MODE"
ENV_VAR_PORT = "CAASPAY_PORT"
ENV_VAR_CONFIG_DIR = "CAASPAY_CONFIG_DIR"

# Names set by the existing deployment tooling (make run/dev/prod), read
# when the CAASPAY_* variable is unset
FALLBACK_ENV_VARS = {
    ENV_VAR_ENV: "GOAPI_ENV",
    ENV_VAR_MODE: "GOAPI_GIN_MODE",
    ENV_VAR_PORT: "GOAPI_PORT",
}

DEFAULT_ENVIRONMENT = "development"
PRODUCTION_ENVIRONMENT = "production"


class Mode(StrEnum):
    """Run mode. Consulted only where behavior must differ (error verbosity, log level)."""

    DEBUG = "debug"
    RELEASE = "release"


@dataclass(frozen=True, slots=True)
class EnvSettings:
    """Environment-scoped service settings, part of every snapshot.

    Handlers see these through ``ctx.env``.
    """

    mode: Mode
    port: int
    host: str = "0.0.0.0"
    environment: str = DEFAULT_ENVIRONMENT
    handler_timeout: float = 30.0
    log_level: str = "info"
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def debug(self) -> bool:
        return self.mode is Mode.DEBUG


@dataclass(frozen=True, slots=True)
class EnvOverrides:
    """Values read once from the process environment at startup.

    Folded into every snapshot's ``EnvSettings``, including reloaded ones,
    so a reload never undoes an operator's environment override.
    """

    environment: str = DEFAULT_ENVIRONMENT
    mode: str | None = None
    port: str | None = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> EnvOverrides:
        env = os.environ if environ is None else environ

        def read(name: str) -> str | None:
            return env.get(name) or env.get(FALLBACK_ENV_VARS[name]) or None

        return cls(
            environment=read(ENV_VAR_ENV) or DEFAULT_ENVIRONMENT,
            mode=read(ENV_VAR_MODE),
            port=read(ENV_VAR_PORT),
        )


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Process configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ServerConfig(config_dir="deploy/config", port=9000)
    """

    # Directory holding api.yaml, routes.yaml, credentials.yaml
    config_dir: str = "config"

    # Bind overrides (None = take host/port from the snapshot's env)
    host: str | None = None
    port: int | None = None

    # 0 = auto-detect from CPU count (release mode only)
    workers: int = 0

    # Watch the config files and hot-reload on change
    watch: bool = False
    watch_interval: float = 2.0

    # Graceful shutdown / keep-alive
    keep_alive_timeout: float = 5.0
    reload_timeout: float = 30.0
