"""ASGI handler — translates ASGI scope/messages to caaspay types.

The only component that touches raw ASGI directly. For every request it:

1. leases the current snapshot (the request keeps it until it finishes),
2. runs user middleware around routing, credential enforcement and the
   bound handler,
3. bounds the handler by its route timeout (504 on expiry),
4. abandons the handler if the client disconnects first,
5. sends the Response back through ASGI ``send()``.

Nothing here takes a lock; the leased snapshot is immutable.
"""

import logging
from collections.abc import Callable
from contextvars import Token
from typing import Any

import anyio

from caaspay._internal.asgi import Receive, Scope, Send
from caaspay._internal.invoke import invoke
from caaspay.context import get_caller, match_var, request_var, snapshot_var
from caaspay.errors import GatewayTimeout, HandlerFailure, HTTPError
from caaspay.handlers import HandlerContext, HandlerRegistry
from caaspay.http.request import Request
from caaspay.http.response import Response, to_response
from caaspay.middleware.credentials import CredentialMiddleware
from caaspay.middleware.protocol import Next
from caaspay.reload import ReloadCoordinator
from caaspay.routing.route import RouteMatch
from caaspay.server.errors import handle_http_error, handle_internal_error
from caaspay.server.sender import send_response
from caaspay.snapshot import Snapshot

logger = logging.getLogger("caaspay.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    coordinator: ReloadCoordinator,
    handlers: HandlerRegistry,
    middleware: tuple[Callable[..., Any], ...],
    credentials: CredentialMiddleware,
    error_handlers: dict[int | type, Callable[..., Any]],
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    # Read the body up front so the disconnect watcher owns receive() afterwards
    await request.body()
    if request._cache.get("_disconnected"):
        return

    with coordinator.lease() as snapshot:
        request_token: Token[Request] = request_var.set(request)
        snapshot_token: Token[Snapshot] = snapshot_var.set(snapshot)
        try:
            response = await _run_until_disconnect(
                receive,
                _pipeline(
                    request,
                    snapshot,
                    handlers=handlers,
                    middleware=middleware,
                    credentials=credentials,
                    error_handlers=error_handlers,
                ),
            )
        finally:
            snapshot_var.reset(snapshot_token)
            request_var.reset(request_token)

    if response is None:
        logger.info(
            "client disconnected, abandoned %s %s (request %s)",
            request.method,
            request.path,
            request.request_id,
        )
        return

    response = response.with_header("X-Request-Id", request.request_id)
    await send_response(response, send, head=request.method == "HEAD")


async def _run_until_disconnect(receive: Receive, pipeline: Callable[[], Any]) -> Response | None:
    """Run *pipeline*; cancel it and return ``None`` if the client goes away."""
    response: Response | None = None

    async with anyio.create_task_group() as tg:

        async def watch_disconnect() -> None:
            while True:
                message = await receive()
                if message.get("type") == "http.disconnect":
                    tg.cancel_scope.cancel()
                    return

        tg.start_soon(watch_disconnect)
        response = await pipeline()
        tg.cancel_scope.cancel()

    return response


def _pipeline(
    request: Request,
    snapshot: Snapshot,
    *,
    handlers: HandlerRegistry,
    middleware: tuple[Callable[..., Any], ...],
    credentials: CredentialMiddleware,
    error_handlers: dict[int | type, Callable[..., Any]],
) -> Callable[[], Any]:
    """Build the zero-argument coroutine function that produces the response."""
    debug = snapshot.env.debug

    async def endpoint(req: Request) -> Response:
        match = match_var.get()
        return await _invoke_handler(match, req, snapshot, handlers)

    async def dispatch(req: Request) -> Response:
        match = snapshot.routes.match(req.method, req.path)
        token = match_var.set(match)
        try:
            return await credentials(req.with_path_params(match.path_params), endpoint)
        finally:
            match_var.reset(token)

    # Wrap user middleware around the dispatch
    handler: Next = dispatch
    for mw in reversed(middleware):

        async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> Response:
            return await _mw(req, _next)

        handler = make_next

    async def run() -> Response:
        try:
            return await handler(request)
        except HTTPError as exc:
            return await handle_http_error(exc, request, error_handlers, debug)
        except Exception as exc:
            return await handle_internal_error(exc, request, error_handlers, debug)

    return run


async def _invoke_handler(
    match: RouteMatch,
    request: Request,
    snapshot: Snapshot,
    handlers: HandlerRegistry,
) -> Response:
    """Call the bound handler with a timeout and convert its return value."""
    route = match.route
    handler = handlers.get(route.handler_name)
    ctx = HandlerContext(
        snapshot_version=snapshot.version,
        env=snapshot.env,
        route=route,
        request_id=request.request_id,
    )
    timeout = route.timeout or snapshot.env.handler_timeout

    scope: anyio.CancelScope | None = None
    try:
        with anyio.fail_after(timeout) as scope:
            result = await invoke(handler, ctx, request, dict(match.path_params), get_caller())
    except TimeoutError as exc:
        # A TimeoutError the handler raised itself is a handler failure
        if scope is None or not scope.cancelled_caught:
            raise HandlerFailure(route.handler_name, exc) from exc
        logger.warning(
            "%s %s: handler %r exceeded %.3gs (request %s)",
            request.method,
            request.path,
            route.handler_name,
            timeout,
            request.request_id,
        )
        raise GatewayTimeout(f"Handler did not complete within {timeout:g}s") from None
    except HTTPError:
        raise
    except Exception as exc:
        raise HandlerFailure(route.handler_name, exc) from exc

    try:
        return to_response(result)
    except TypeError as exc:
        raise HandlerFailure(route.handler_name, exc) from exc
