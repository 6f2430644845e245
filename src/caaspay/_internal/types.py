"""Shared type aliases used across caaspay modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: handler(ctx, request, path_params, caller) -> response value
Handler: TypeAlias = Callable[..., Any]
