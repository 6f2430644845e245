"""Shared fixtures: in-memory configuration sources for the standard test service.

Callers::

    svc-a / secret-a   read:accounts
    svc-b / secret-b   (no capabilities)
    svc-c / secret-c   read:accounts, revoked
"""

import textwrap

import pytest

from caaspay.config import (
    ENV_VAR_CONFIG_DIR,
    ENV_VAR_ENV,
    ENV_VAR_MODE,
    ENV_VAR_PORT,
    FALLBACK_ENV_VARS,
)
from caaspay.store import ConfigSources

SECRET_A_HASH = "sha256:8766b9cb08e6040b704f1e3ee1e186efccf2635b1d2634d6525333007e6aeae1"
SECRET_B_HASH = "sha256:ff492ef788c89b555e6f738b33d2422f57dbb6656af2402155672c5f123a90af"
SECRET_C_HASH = "sha256:26d46203179f0c4ddf89791220bc5493aeceadbc1c34590ef45cd89d302e302e"

API_YAML = textwrap.dedent(
    """\
    mode: debug
    port: 8080
    """
)

ROUTES_YAML = textwrap.dedent(
    """\
    - method: GET
      path: /accounts/:id
      handler: get_account
      capabilities: [read:accounts]
    - method: GET
      path: /health
      handler: health
      public: true
    """
)

CREDENTIALS_YAML = textwrap.dedent(
    f"""\
    - id: svc-a
      secretHash: {SECRET_A_HASH}
      capabilities: [read:accounts]
    - id: svc-b
      secretHash: {SECRET_B_HASH}
      capabilities: []
    - id: svc-c
      secretHash: {SECRET_C_HASH}
      capabilities: [read:accounts]
      status: revoked
    """
)


def make_sources(
    api: str = API_YAML,
    routes: str = ROUTES_YAML,
    credentials: str = CREDENTIALS_YAML,
) -> ConfigSources:
    return ConfigSources(api=api, routes=routes, credentials=credentials)


@pytest.fixture
def sources() -> ConfigSources:
    return make_sources()


@pytest.fixture(autouse=True)
def _clean_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's CAASPAY_* and GOAPI_* variables out of every test."""
    names = (ENV_VAR_ENV, ENV_VAR_MODE, ENV_VAR_PORT, ENV_VAR_CONFIG_DIR)
    for name in (*names, *FALLBACK_ENV_VARS.values()):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path):
    """A config directory on disk holding the standard three files."""
    (tmp_path / "api.yaml").write_text(API_YAML)
    (tmp_path / "routes.yaml").write_text(ROUTES_YAML)
    (tmp_path / "credentials.yaml").write_text(CREDENTIALS_YAML)
    return tmp_path
