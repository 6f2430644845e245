"""Invoke helpers — call sync or async handlers uniformly.

Handlers registered by domain code can be ``def`` or ``async def``.
Sync handlers run in an anyio worker thread so a route timeout or a
client disconnect can abandon them without blocking the event loop.

Usage::

    from caaspay._internal.invoke import invoke

    result = await invoke(handler, ctx, request, params, caller)
"""

import functools
import inspect
from typing import Any

import anyio.to_thread


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's a coroutine."""
    if inspect.iscoroutinefunction(handler):
        return await handler(*args, **kwargs)

    call = functools.partial(handler, *args, **kwargs)
    result = await anyio.to_thread.run_sync(call, abandon_on_cancel=True)
    if inspect.isawaitable(result):
        result = await result
    return result
