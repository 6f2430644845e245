"""``caaspay run`` — start the API server.

Resolves an import string to the service's Api, applies command-line
overrides to its ``ServerConfig`` and starts the dev server (debug mode)
or the production server (release mode). An invalid configuration at
startup exits with status 1.
"""

import argparse
import dataclasses
import logging
import sys

from caaspay.cli._resolve import resolve_api
from caaspay.errors import ConfigError


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(args: argparse.Namespace) -> None:
    """Start the caaspay server.

    ``--config-dir``, ``--workers`` and ``--watch`` replace the matching
    ``ServerConfig`` fields; ``--host``/``--port`` override the bind
    address taken from ``api.yaml``.
    """
    try:
        api = resolve_api(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    changes: dict[str, object] = {}
    if args.config_dir is not None:
        changes["config_dir"] = args.config_dir
    if args.workers is not None:
        changes["workers"] = args.workers
    if args.watch:
        changes["watch"] = True
    if changes:
        api.config = dataclasses.replace(api.config, **changes)

    try:
        snapshot = api.snapshot
    except ConfigError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    configure_logging(snapshot.env.log_level)
    api.run(host=args.host, port=args.port)
