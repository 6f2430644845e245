"""Credential middleware — per-route caller authorization.

Runs after routing, so the matched route's required capabilities are known.
Callers present credentials in one of two ways:

1. ``Authorization: Basic base64(<caller id>:<secret>)``
2. ``X-Caller-Id: <caller id>`` plus ``X-Caller-Secret: <secret>``

Outcomes are part of the observable contract:

- missing credentials, unknown caller, wrong secret, revoked -> 401
- authenticated but missing a required capability          -> 403

Routes marked ``public: true`` skip the check and see an anonymous caller.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from caaspay.context import caller_var, get_match, get_snapshot
from caaspay.errors import Forbidden, Unauthorized
from caaspay.http.request import Request
from caaspay.http.response import Response
from caaspay.middleware.protocol import Next
from caaspay.security.audit import emit_security_event
from caaspay.security.credentials import ANONYMOUS, Denied, DenyReason


@dataclass(frozen=True, slots=True)
class CredentialConfig:
    """Credential presentation convention.

    Attributes:
        id_header: Header carrying the caller id (header-pair form).
        secret_header: Header carrying the caller secret (header-pair form).
        allow_basic: Accept ``Authorization: Basic ...``.
        realm: Realm advertised in ``WWW-Authenticate`` on 401.
    """

    id_header: str = "X-Caller-Id"
    secret_header: str = "X-Caller-Secret"
    allow_basic: bool = True
    realm: str = "caaspay"


@dataclass(frozen=True, slots=True)
class PresentedCredentials:
    caller_id: str
    secret: str

    def __repr__(self) -> str:
        return f"PresentedCredentials(caller_id={self.caller_id!r}, secret='***')"


class CredentialMiddleware:
    """Enforce the matched route's required capabilities.

    Usage::

        pipeline = CredentialMiddleware(CredentialConfig(id_header="X-Api-Client"))
    """

    __slots__ = ("_config",)

    def __init__(self, config: CredentialConfig | None = None) -> None:
        self._config = config or CredentialConfig()

    @property
    def config(self) -> CredentialConfig:
        return self._config

    def extract(self, request: Request) -> PresentedCredentials | None:
        """Read caller credentials off the request, or ``None`` if absent/unparseable."""
        cfg = self._config

        if cfg.allow_basic:
            header = request.headers.get("authorization")
            if header is not None:
                scheme, _, value = header.partition(" ")
                if scheme.lower() != "basic":
                    return None
                try:
                    decoded = base64.b64decode(value.strip(), validate=True).decode("utf-8")
                except (binascii.Error, UnicodeDecodeError):
                    return None
                caller_id, sep, secret = decoded.partition(":")
                if not sep or not caller_id:
                    return None
                return PresentedCredentials(caller_id, secret)

        caller_id = request.headers.get(cfg.id_header)
        secret = request.headers.get(cfg.secret_header)
        if caller_id and secret is not None:
            return PresentedCredentials(caller_id, secret)
        return None

    async def __call__(self, request: Request, next: Next) -> Response:
        """Authorize the request against the leased snapshot, then dispatch."""
        route = get_match().route
        snapshot = get_snapshot()

        if route.public:
            token = caller_var.set(ANONYMOUS)
            try:
                return await next(request)
            finally:
                caller_var.reset(token)

        presented = self.extract(request)
        if presented is None:
            emit_security_event(
                "auth.credentials.missing",
                request=request,
                snapshot_version=snapshot.version,
            )
            raise Unauthorized("Credentials required", realm=self._config.realm)

        result = snapshot.credentials.authorize(
            presented.caller_id, presented.secret, route.required_capabilities
        )

        if isinstance(result, Denied):
            details: dict[str, object] = {"reason": result.reason.value}
            if result.missing:
                details["missing"] = sorted(result.missing)
            emit_security_event(
                "authz.denied",
                request=request,
                caller_id=result.caller_id,
                snapshot_version=snapshot.version,
                details=details,
            )
            if result.reason is DenyReason.INSUFFICIENT_CAPABILITY:
                raise Forbidden("Caller lacks a required capability")
            raise Unauthorized("Invalid credentials", realm=self._config.realm)

        token = caller_var.set(result.caller)
        try:
            return await next(request)
        finally:
            caller_var.reset(token)
