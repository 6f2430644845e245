"""Request-scoped context via ContextVar.

Provides, for the request currently being handled:

- ``request_var`` / ``get_request()``: the ``Request``
- ``snapshot_var`` / ``get_snapshot()``: the snapshot it was leased
- ``match_var`` / ``get_match()``: the route match, once routing has run
- ``caller_var`` / ``get_caller()``: the authorized caller identity

All are set by the request pipeline and reset after each request.
Accessing them outside a request raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio and copied into anyio
    worker threads. No locks needed.
"""

from contextvars import ContextVar

from caaspay.http.request import Request
from caaspay.routing.route import RouteMatch
from caaspay.security.credentials import CallerIdentity
from caaspay.snapshot import Snapshot

request_var: ContextVar[Request] = ContextVar("caaspay_request")
snapshot_var: ContextVar[Snapshot] = ContextVar("caaspay_snapshot")
match_var: ContextVar[RouteMatch] = ContextVar("caaspay_match")
caller_var: ContextVar[CallerIdentity] = ContextVar("caaspay_caller")


def get_request() -> Request:
    """Return the current request."""
    return request_var.get()


def get_snapshot() -> Snapshot:
    """Return the snapshot the current request is served from."""
    return snapshot_var.get()


def get_match() -> RouteMatch:
    """Return the route match of the current request."""
    return match_var.get()


def get_caller() -> CallerIdentity:
    """Return the caller identity of the current request.

    Raises ``LookupError`` before credential enforcement has run.
    """
    try:
        return caller_var.get()
    except LookupError:
        msg = "No caller in context. The credential middleware has not run for this request."
        raise LookupError(msg) from None
