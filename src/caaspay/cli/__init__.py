"""caaspay CLI — serve the API, validate configuration, list routes.

Entry point registered as ``caaspay`` in ``pyproject.toml``::

    [project.scripts]
    caaspay = "caaspay.cli:main"
"""

import argparse
import os
import sys

from caaspay.config import ENV_VAR_CONFIG_DIR


def _add_config_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config-dir",
        default=None,
        help=f"Directory holding api.yaml, routes.yaml, credentials.yaml "
        f"(default: ${ENV_VAR_CONFIG_DIR} or ./config)",
    )


def default_config_dir() -> str:
    return os.environ.get(ENV_VAR_CONFIG_DIR) or "config"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``caaspay`` command."""
    parser = argparse.ArgumentParser(
        prog="caaspay",
        description="caaspay-api — config-driven routing and caller authorization.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- caaspay run ------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the API server")
    run_parser.add_argument("app", help="Import string (e.g. payments.app:api)")
    _add_config_dir(run_parser)
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker count (0=auto-detect, release mode only)",
    )
    run_parser.add_argument(
        "--watch",
        action="store_true",
        help="Hot-reload when the configuration files change",
    )

    # -- caaspay check ----------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Validate the configuration files")
    _add_config_dir(check_parser)
    check_parser.add_argument(
        "app",
        nargs="?",
        default=None,
        help="Import string; when given, also verify every route's handler is registered",
    )

    # -- caaspay routes ---------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List configured routes")
    _add_config_dir(routes_parser)

    # -- caaspay hash-secret ----------------------------------------------
    hash_parser = subparsers.add_parser(
        "hash-secret",
        help="Compute the secretHash value for an already-issued caller secret",
        description="Print the credentials.yaml secretHash for a secret you already hold. "
        "caaspay does not issue or distribute caller secrets.",
    )
    hash_parser.add_argument(
        "--scheme",
        choices=("sha256", "argon2", "scrypt"),
        default="argon2",
        help="Hash scheme (default: argon2)",
    )
    hash_parser.add_argument(
        "--stdin",
        action="store_true",
        help="Read the secret from stdin instead of prompting",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from caaspay.cli._run import run_server

        run_server(args)
    elif args.command == "check":
        from caaspay.cli._check import run_check

        run_check(args)
    elif args.command == "routes":
        from caaspay.cli._routes import run_routes

        run_routes(args)
    elif args.command == "hash-secret":
        from caaspay.cli._hash import run_hash_secret

        run_hash_secret(args)
