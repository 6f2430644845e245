"""``caaspay check`` — validate the configuration files.

Loads the three configuration sources exactly as the server would and
reports the first problem. Exits with code 1 on any error, so it can gate
a deploy before a ConfigMap is rolled out.
"""

import argparse
import sys

from caaspay.cli import default_config_dir
from caaspay.cli._resolve import resolve_api
from caaspay.config import EnvOverrides
from caaspay.errors import ConfigError
from caaspay.store import ConfigSources, ConfigStore


def run_check(args: argparse.Namespace) -> None:
    """Validate ``--config-dir``; with an app, also check handler binding."""
    config_dir = args.config_dir or default_config_dir()

    handlers = None
    if args.app is not None:
        try:
            handlers = resolve_api(args.app).handlers
        except (ModuleNotFoundError, AttributeError, TypeError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc

    try:
        snapshot = ConfigStore(EnvOverrides.from_environ()).load(ConfigSources.from_dir(config_dir))
        if handlers is not None:
            handlers.check_bound(snapshot.routes)
    except ConfigError as exc:
        print(f"FAIL {config_dir}: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    env = snapshot.env
    print(
        f"OK {config_dir}: {len(snapshot.routes)} routes, "
        f"{len(snapshot.credentials)} credentials, "
        f"mode={env.mode.value}, port={env.port}, environment={env.environment}"
    )
