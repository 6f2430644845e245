"""HTTP response with a chainable ``.with_*()`` transformation API.

Each transformation returns a new Response. Immutable by convention,
built incrementally by design.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = TEXT_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str] | tuple[tuple[str, str], ...]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items()) if isinstance(headers, Mapping) else tuple(headers)
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of response header *name* (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return default

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def json(self) -> Any:
        """Body parsed as JSON."""
        return json_module.loads(self.body_bytes)


def json_response(data: Any, status: int = 200) -> Response:
    """Serialize *data* to a JSON response."""
    return Response(
        body=json_module.dumps(data, separators=(",", ":"), default=str),
        status=status,
        content_type=JSON_CONTENT_TYPE,
    )


def to_response(value: Any) -> Response:
    """Convert a handler return value to a ``Response``.

    - ``Response`` passes through unchanged
    - ``dict`` / ``list`` become JSON
    - ``str`` / ``bytes`` become plain-text bodies
    - ``(value, status)`` tuples set the status
    - ``None`` becomes an empty 204
    """
    if isinstance(value, Response):
        return value
    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[1], int):
        return to_response(value[0]).with_status(value[1])
    if value is None:
        return Response(status=204)
    if isinstance(value, (dict, list)):
        return json_response(value)
    if isinstance(value, (str, bytes)):
        return Response(body=value)
    msg = f"Handler returned unsupported type {type(value).__name__}"
    raise TypeError(msg)
