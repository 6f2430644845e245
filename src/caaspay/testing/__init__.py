"""Test utilities for caaspay APIs.

::

    from caaspay.testing import TestClient, basic_auth
"""

from caaspay.testing.client import TestClient, basic_auth

__all__ = ["TestClient", "basic_auth"]
