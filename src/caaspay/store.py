"""ConfigStore — parse and validate the three YAML sources into a Snapshot.

Loading is all-or-nothing: the first invalid entry raises ``ConfigError``
and no partial snapshot is ever produced. The store holds no mutable
process state; publishing a snapshot is the reload coordinator's job.

File layout (the directory mounted at ``/app/config`` in the container)::

    config/
        api.yaml          mode, port, host, handler_timeout, environments
        routes.yaml       [{method, path, handler, capabilities, timeout, public}]
        credentials.yaml  [{id, secretHash, capabilities, status}]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from caaspay.config import PRODUCTION_ENVIRONMENT, EnvOverrides, EnvSettings, Mode
from caaspay.errors import ConfigError, ConfigErrorKind
from caaspay.routing.route import RouteDefinition
from caaspay.routing.table import HTTP_METHODS, RouteTable
from caaspay.security.credentials import CredentialRecord, CredentialRegistry, CredentialStatus
from caaspay.security.secrets import InvalidSecretHash, validate_secret_hash
from caaspay.snapshot import Snapshot

logger = logging.getLogger("caaspay.config")

API_FILE = "api.yaml"
ROUTES_FILE = "routes.yaml"
CREDENTIALS_FILE = "credentials.yaml"

_API_KEYS = frozenset({"mode", "port", "host", "handler_timeout", "log_level", "environments"})


@dataclass(frozen=True, slots=True)
class ConfigSources:
    """Raw text of the three configuration sources."""

    api: str
    routes: str
    credentials: str
    origin: str = "<memory>"

    @classmethod
    def from_dir(cls, directory: str | Path) -> ConfigSources:
        """Read ``api.yaml``, ``routes.yaml`` and ``credentials.yaml`` from *directory*."""
        base = Path(directory)
        texts: dict[str, str] = {}
        for name in (API_FILE, ROUTES_FILE, CREDENTIALS_FILE):
            try:
                texts[name] = (base / name).read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigError(
                    ConfigErrorKind.MALFORMED,
                    f"cannot read {base / name}: {exc.strerror or exc}",
                    source=name,
                ) from None
        return cls(
            api=texts[API_FILE],
            routes=texts[ROUTES_FILE],
            credentials=texts[CREDENTIALS_FILE],
            origin=str(base),
        )


class ConfigStore:
    """Turns ``ConfigSources`` into a validated ``Snapshot``.

    Usage::

        store = ConfigStore(EnvOverrides.from_environ())
        snapshot = store.load(ConfigSources.from_dir("config"), version=1)
    """

    __slots__ = ("_overrides",)

    def __init__(self, overrides: EnvOverrides | None = None) -> None:
        self._overrides = overrides or EnvOverrides()

    @property
    def overrides(self) -> EnvOverrides:
        return self._overrides

    def load(self, sources: ConfigSources, *, version: int = 1) -> Snapshot:
        """Parse all three sources and compile them into a snapshot.

        Raises ``ConfigError`` (or its ``RouteConflict`` subclass) on the
        first problem found.
        """
        env = parse_api(_load_yaml(sources.api, API_FILE), self._overrides)
        definitions = parse_routes(_load_yaml(sources.routes, ROUTES_FILE))
        records = parse_credentials(_load_yaml(sources.credentials, CREDENTIALS_FILE))

        routes = RouteTable.compile(definitions)
        credentials = CredentialRegistry(records)

        logger.debug(
            "loaded %s: %d routes, %d credentials, mode=%s",
            sources.origin,
            len(routes),
            len(credentials),
            env.mode.value,
        )
        return Snapshot(version=version, routes=routes, credentials=credentials, env=env)


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------


def _load_yaml(text: str, source: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(ConfigErrorKind.MALFORMED, f"invalid YAML: {exc}", source=source) from None


def _entries(document: Any, key: str, source: str) -> list[Any]:
    """Accept either a bare list or a mapping with a single list under *key*.

    Only an empty document (or an empty *key*) means "no entries"; a mapping
    without *key* is almost always a typo and must not load as empty.
    """
    if document is None:
        return []
    if isinstance(document, Mapping):
        if key not in document:
            raise ConfigError(
                ConfigErrorKind.MALFORMED,
                f"expected a '{key}:' list, found keys {sorted(map(str, document))}",
                source=source,
            )
        document = document[key]
        if document is None:
            return []
    if not isinstance(document, list):
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"expected a list of entries (or a '{key}:' list)",
            source=source,
        )
    return document


def _require(entry: Mapping[str, Any], key: str, source: str, index: int) -> Any:
    value = entry.get(key)
    if value is None or value == "":
        raise ConfigError(
            ConfigErrorKind.MISSING_FIELD, f"missing required field {key!r}", source=source, index=index
        )
    return value


def _capabilities(value: Any, source: str, index: int | None) -> frozenset[str]:
    if value is None:
        return frozenset()
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            "capabilities must be a list of non-empty strings",
            source=source,
            index=index,
        )
    return frozenset(value)


def _positive_number(value: Any, name: str, source: str, index: int | None = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"{name} must be a positive number, got {value!r}",
            source=source,
            index=index,
        )
    return float(value)


# ---------------------------------------------------------------------------
# api.yaml
# ---------------------------------------------------------------------------


def parse_api(document: Any, overrides: EnvOverrides) -> EnvSettings:
    """Build ``EnvSettings`` from ``api.yaml`` and the environment overrides.

    Top-level keys are defaults; ``environments.<name>`` overlays them for
    the active environment. Precedence for the mode is ``CAASPAY_MODE``,
    then ``CAASPAY_ENV=production`` (implies release), then the file.
    """
    if not isinstance(document, Mapping):
        raise ConfigError(ConfigErrorKind.MALFORMED, "expected a mapping", source=API_FILE)

    settings = {k: v for k, v in document.items() if k != "environments"}
    environments = document.get("environments") or {}
    if not isinstance(environments, Mapping):
        raise ConfigError(
            ConfigErrorKind.MALFORMED, "'environments' must be a mapping", source=API_FILE
        )
    overlay = environments.get(overrides.environment) or {}
    if not isinstance(overlay, Mapping):
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"environments.{overrides.environment} must be a mapping",
            source=API_FILE,
        )
    settings.update(overlay)

    for key in ("mode", "port"):
        if settings.get(key) is None:
            raise ConfigError(
                ConfigErrorKind.MISSING_FIELD, f"missing required field {key!r}", source=API_FILE
            )

    mode = _parse_mode(settings["mode"], API_FILE)
    if overrides.mode is not None:
        mode = _parse_mode(overrides.mode, "CAASPAY_MODE")
    elif overrides.environment == PRODUCTION_ENVIRONMENT:
        mode = Mode.RELEASE

    port = _parse_port(settings["port"], API_FILE)
    if overrides.port is not None:
        port = _parse_port(overrides.port, "CAASPAY_PORT")

    host = settings.get("host", "0.0.0.0")
    if not isinstance(host, str) or not host:
        raise ConfigError(ConfigErrorKind.MALFORMED, "host must be a string", source=API_FILE)

    handler_timeout = _positive_number(settings.get("handler_timeout", 30), "handler_timeout", API_FILE)

    log_level = settings.get("log_level", "debug" if mode is Mode.DEBUG else "info")
    if not isinstance(log_level, str):
        raise ConfigError(ConfigErrorKind.MALFORMED, "log_level must be a string", source=API_FILE)

    extra = {k: v for k, v in settings.items() if k not in _API_KEYS}

    return EnvSettings(
        mode=mode,
        port=port,
        host=host,
        environment=overrides.environment,
        handler_timeout=handler_timeout,
        log_level=log_level.lower(),
        extra=MappingProxyType(extra),
    )


def _parse_mode(value: Any, source: str) -> Mode:
    try:
        return Mode(str(value).lower())
    except ValueError:
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"mode must be 'debug' or 'release', got {value!r}",
            source=source,
        ) from None


def _parse_port(value: Any, source: str) -> int:
    if isinstance(value, bool):
        value = None
    try:
        port = int(value)
    except (TypeError, ValueError):
        port = 0
    if not 0 < port < 65536 or (isinstance(value, float) and not value.is_integer()):
        raise ConfigError(
            ConfigErrorKind.MALFORMED, f"port must be an integer 1-65535, got {value!r}", source=source
        )
    return port


# ---------------------------------------------------------------------------
# routes.yaml
# ---------------------------------------------------------------------------


def parse_routes(document: Any) -> list[RouteDefinition]:
    """Parse ``routes.yaml`` entries in declaration order."""
    definitions: list[RouteDefinition] = []
    for index, entry in enumerate(_entries(document, "routes", ROUTES_FILE)):
        if not isinstance(entry, Mapping):
            raise ConfigError(
                ConfigErrorKind.MALFORMED, "route entry must be a mapping", source=ROUTES_FILE, index=index
            )

        method = str(_require(entry, "method", ROUTES_FILE, index)).upper()
        if method not in HTTP_METHODS:
            raise ConfigError(
                ConfigErrorKind.MALFORMED,
                f"unknown HTTP method {method!r}",
                source=ROUTES_FILE,
                index=index,
            )
        path = _require(entry, "path", ROUTES_FILE, index)
        handler = _require(entry, "handler", ROUTES_FILE, index)
        if not isinstance(handler, str):
            raise ConfigError(
                ConfigErrorKind.MALFORMED, "handler must be a name", source=ROUTES_FILE, index=index
            )

        capabilities = _capabilities(entry.get("capabilities"), ROUTES_FILE, index)
        timeout = entry.get("timeout")
        if timeout is not None:
            timeout = _positive_number(timeout, "timeout", ROUTES_FILE, index)
        public = entry.get("public", False)
        if not isinstance(public, bool):
            raise ConfigError(
                ConfigErrorKind.MALFORMED, "public must be true or false", source=ROUTES_FILE, index=index
            )
        if public and capabilities:
            raise ConfigError(
                ConfigErrorKind.MALFORMED,
                "a public route cannot require capabilities",
                source=ROUTES_FILE,
                index=index,
            )

        try:
            definition = RouteDefinition(
                method=method,
                pattern=path,
                handler_name=handler,
                required_capabilities=capabilities,
                timeout=timeout,
                public=public,
            )
        except ConfigError as exc:
            raise ConfigError(exc.kind, exc.message, source=ROUTES_FILE, index=index) from None
        definitions.append(definition)
    return definitions


# ---------------------------------------------------------------------------
# credentials.yaml
# ---------------------------------------------------------------------------


def parse_credentials(document: Any) -> list[CredentialRecord]:
    """Parse ``credentials.yaml`` entries. Duplicate ids are caught by the registry."""
    records: list[CredentialRecord] = []
    for index, entry in enumerate(_entries(document, "credentials", CREDENTIALS_FILE)):
        if not isinstance(entry, Mapping):
            raise ConfigError(
                ConfigErrorKind.MALFORMED,
                "credential entry must be a mapping",
                source=CREDENTIALS_FILE,
                index=index,
            )

        caller_id = _require(entry, "id", CREDENTIALS_FILE, index)
        if not isinstance(caller_id, str) or not caller_id.strip():
            raise ConfigError(
                ConfigErrorKind.MISSING_FIELD,
                "credential id must be a non-empty string",
                source=CREDENTIALS_FILE,
                index=index,
            )

        encoded = entry.get("secretHash", entry.get("secret_hash"))
        if encoded is None or encoded == "":
            raise ConfigError(
                ConfigErrorKind.MISSING_FIELD,
                "missing required field 'secretHash'",
                source=CREDENTIALS_FILE,
                index=index,
            )
        try:
            secret_hash = validate_secret_hash(encoded)
        except InvalidSecretHash as exc:
            raise ConfigError(
                ConfigErrorKind.MALFORMED, str(exc), source=CREDENTIALS_FILE, index=index
            ) from None

        try:
            status = CredentialStatus(str(entry.get("status", "active")).lower())
        except ValueError:
            raise ConfigError(
                ConfigErrorKind.MALFORMED,
                f"status must be 'active' or 'revoked', got {entry.get('status')!r}",
                source=CREDENTIALS_FILE,
                index=index,
            ) from None

        records.append(
            CredentialRecord(
                id=caller_id,
                secret_hash=secret_hash,
                capabilities=_capabilities(entry.get("capabilities"), CREDENTIALS_FILE, index),
                status=status,
            )
        )
    return records
