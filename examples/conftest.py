"""Shared pytest configuration for caaspay examples.

Provides the ``example_api`` fixture that loads a fresh Api instance from
the ``app.py`` file in the same directory as the test. Each call
re-executes app.py in an isolated module namespace, so every test starts
with clean state (e.g. the payment ledger is empty).
"""

import importlib.util
from pathlib import Path

import pytest

from caaspay.config import (
    ENV_VAR_CONFIG_DIR,
    ENV_VAR_ENV,
    ENV_VAR_MODE,
    ENV_VAR_PORT,
    FALLBACK_ENV_VARS,
)


@pytest.fixture
def example_api(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch):
    """Load a fresh Api from the sibling app.py next to the test file."""
    names = (ENV_VAR_ENV, ENV_VAR_MODE, ENV_VAR_PORT, ENV_VAR_CONFIG_DIR)
    for name in (*names, *FALLBACK_ENV_VARS.values()):
        monkeypatch.delenv(name, raising=False)

    app_path = Path(request.path).parent / "app.py"
    module_name = f"example_{app_path.parent.name}"
    spec = importlib.util.spec_from_file_location(module_name, app_path)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.api
