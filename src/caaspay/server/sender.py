"""ASGI response sending — translates a caaspay Response to ASGI messages."""

from caaspay._internal.asgi import Send
from caaspay.http.response import Response

# 1xx, 204 and 304 responses never carry a message body
_NO_BODY = frozenset({204, 304})


def _latin1(value: str) -> bytes:
    return value.encode("latin-1")


def encode_headers(response: Response, length: int) -> list[tuple[bytes, bytes]]:
    """Response headers as ASGI byte pairs, ending with ``content-length``."""
    pairs = [(b"content-type", _latin1(response.content_type))]
    pairs.extend((_latin1(name.lower()), _latin1(value)) for name, value in response.headers)
    pairs.append((b"content-length", str(length).encode("ascii")))
    return pairs


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Send *response* as one ``http.response.start`` and one body message.

    For ``HEAD`` requests ``content-length`` still describes the full body,
    but no body bytes go out.
    """
    status = response.status
    if status < 200 or status in _NO_BODY:
        body = b""
    else:
        body = response.body_bytes

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": encode_headers(response, len(body)),
        }
    )
    await send({"type": "http.response.body", "body": b"" if head else body})
