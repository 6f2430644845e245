"""Error handling pipeline for caaspay requests.

Maps HTTPError exceptions and unexpected failures to JSON responses,
using registered error handlers or the defaults below. The snapshot's
mode decides verbosity: debug bodies carry the exception and traceback,
release bodies only the generic reason.
"""

import inspect
import logging
import traceback
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

from caaspay.errors import HandlerFailure, HTTPError
from caaspay.http.request import Request
from caaspay.http.response import Response, json_response, to_response

logger = logging.getLogger("caaspay.server")


def _phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def error_body(status: int, detail: str, request: Request, **extra: Any) -> dict[str, Any]:
    """The JSON shape shared by every error response."""
    body: dict[str, Any] = {
        "error": _phrase(status),
        "status": status,
        "detail": detail,
        "request_id": request.request_id,
    }
    body.update(extra)
    return body


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    Supports both sync and async error handlers.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result
    return to_response(result)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response.with_headers(exc.headers)

    return json_response(error_body(exc.status, exc.detail, request), exc.status).with_headers(
        exc.headers
    )


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Handle handler failures and unexpected exceptions as 500 errors."""
    original = exc.original if isinstance(exc, HandlerFailure) else exc
    logger.error(
        "500 %s %s (request %s)",
        request.method,
        request.path,
        request.request_id,
        exc_info=(type(original), original, original.__traceback__),
    )

    handler = error_handlers.get(500) or error_handlers.get(type(original))
    if handler is not None:
        response = await call_error_handler(handler, request, original)
        return response if response.status != 200 else response.with_status(500)

    if debug:
        body = error_body(
            500,
            str(exc),
            request,
            exception=type(original).__name__,
            traceback=traceback.format_exception(original),
        )
    else:
        body = error_body(500, "Internal Server Error", request)
    return json_response(body, 500)
