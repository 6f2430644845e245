"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    CredentialMiddleware -- Per-route caller authentication and capability checks
"""

from caaspay.middleware.credentials import (
    CredentialConfig,
    CredentialMiddleware,
    PresentedCredentials,
)
from caaspay.middleware.protocol import Middleware, Next

__all__ = [
    "CredentialConfig",
    "CredentialMiddleware",
    "Middleware",
    "Next",
    "PresentedCredentials",
]
