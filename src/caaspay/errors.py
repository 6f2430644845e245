"""caaspay exception hierarchy.

Shared across the config loader, route table, reload coordinator, and the
request pipeline so every module raises and catches the same types.
"""

from dataclasses import dataclass
from enum import StrEnum


class CaaspayError(Exception):
    """Base for all caaspay-specific errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigErrorKind(StrEnum):
    """Why a configuration source was rejected."""

    MALFORMED = "malformed"
    MISSING_FIELD = "missing_field"
    DUPLICATE_ROUTE = "duplicate_route"
    DUPLICATE_CREDENTIAL = "duplicate_credential"
    UNKNOWN_HANDLER = "unknown_handler"


class ConfigError(CaaspayError):
    """Raised when ``api.yaml``, ``routes.yaml`` or ``credentials.yaml`` is invalid.

    Fatal at startup. At reload time the coordinator wraps it in
    ``ReloadFailure`` and the previous snapshot stays in effect.
    """

    def __init__(
        self,
        kind: ConfigErrorKind,
        message: str,
        *,
        source: str | None = None,
        index: int | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.source = source
        self.index = index
        super().__init__(str(self))

    def __str__(self) -> str:
        where = ""
        if self.source is not None:
            where = self.source
            if self.index is not None:
                where += f"[{self.index}]"
            where += ": "
        return f"{where}{self.message} ({self.kind})"


class RouteConflict(ConfigError):
    """Two route definitions share the same method and path shape.

    Ambiguity is a configuration error, never resolved at match time.
    """

    def __init__(self, method: str, pattern_a: str, pattern_b: str) -> None:
        self.method = method
        self.pattern_a = pattern_a
        self.pattern_b = pattern_b
        super().__init__(
            ConfigErrorKind.DUPLICATE_ROUTE,
            f"{method} {pattern_b!r} conflicts with {method} {pattern_a!r}",
            source="routes.yaml",
        )


class ReloadFailure(CaaspayError):
    """A reload was rejected; the previously published snapshot is unchanged."""

    def __init__(self, cause: ConfigError, current_version: int) -> None:
        self.cause = cause
        self.current_version = current_version
        super().__init__(f"reload rejected, version {current_version} stays current: {cause}")


class HandlerFailure(CaaspayError):
    """An external route handler raised. Mapped to 500."""

    def __init__(self, handler_name: str, original: BaseException) -> None:
        self.handler_name = handler_name
        self.original = original
        super().__init__(f"handler {handler_name!r} failed: {original!r}")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HTTPError(CaaspayError):
    """An error that maps directly to an HTTP status code.

    Raised by the route table, the credential middleware, or handlers. The
    ASGI handler catches these and renders a JSON error body.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route pattern matches the request path under any method."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — the path matches, but only under other methods.

    Carries an ``Allow`` header listing the methods that would match.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            detail=detail or f"Method not allowed. Allowed methods: {allow_value}",
            headers=(("Allow", allow_value),),
        )


class Unauthorized(HTTPError):  # noqa: N818
    """401 — missing, unknown, revoked, or wrong credentials."""

    def __init__(self, detail: str = "Unauthorized", *, realm: str = "caaspay") -> None:
        super().__init__(
            status=401,
            detail=detail,
            headers=(("WWW-Authenticate", f'Basic realm="{realm}"'),),
        )


class Forbidden(HTTPError):  # noqa: N818
    """403 — authenticated caller lacks a required capability."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class GatewayTimeout(HTTPError):  # noqa: N818
    """504 — the handler did not finish within its route timeout."""

    def __init__(self, detail: str = "Gateway Timeout") -> None:
        super().__init__(status=504, detail=detail)
