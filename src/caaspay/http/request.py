"""Immutable HTTP request.

Frozen metadata with async body access. The request is honest about
what it is: received data that doesn't change.
"""

from __future__ import annotations

import json as json_module
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import parse_qs

from caaspay._internal.asgi import Receive, Scope
from caaspay.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers) is frozen at creation. ``path_params``
    is filled in once the route table has matched the request; the pipeline
    derives a new ``Request`` with ``with_path_params`` rather than mutating.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes = b""
    path_params: dict[str, str] = field(default_factory=dict)
    client: tuple[str, int] | None = None
    request_id: str = ""

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: mutable cache for the body
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def query(self) -> dict[str, list[str]]:
        """Parsed query string (every value kept, in order)."""
        return parse_qs(self.query_string.decode("latin-1"), keep_blank_values=True)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy bound to the matched route's path parameters.

        The body cache is shared so a body read before matching is not lost.
        """
        return replace(self, path_params=dict(path_params), _cache=self._cache)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive is consumed once; later calls return the cached bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            if message.get("type") == "http.disconnect":
                self._cache["_disconnected"] = True
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        return (await self.body()).decode("utf-8")

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            query_string=scope.get("query_string", b""),
            client=tuple(client) if client else None,
            request_id=headers.get("x-request-id") or uuid.uuid4().hex,
            _receive=receive,
        )
