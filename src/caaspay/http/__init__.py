"""HTTP primitives — immutable Request, Response, and Headers."""

from caaspay.http.headers import Headers
from caaspay.http.request import Request
from caaspay.http.response import Response, json_response

__all__ = ["Headers", "Request", "Response", "json_response"]
