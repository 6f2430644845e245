"""``caaspay routes`` — list configured routes.

Loads ``routes.yaml`` (with the other sources, so the same validation
applies) and prints method, path, handler and required capabilities.
"""

import argparse
import sys

from caaspay.cli import default_config_dir
from caaspay.config import EnvOverrides
from caaspay.errors import ConfigError
from caaspay.store import ConfigSources, ConfigStore


def run_routes(args: argparse.Namespace) -> None:
    """Print a table of METHOD, PATH, HANDLER and CAPABILITIES."""
    config_dir = args.config_dir or default_config_dir()
    try:
        snapshot = ConfigStore(EnvOverrides.from_environ()).load(ConfigSources.from_dir(config_dir))
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = snapshot.routes.routes
    if not routes:
        print("No routes configured.")
        return

    rows: list[tuple[str, str, str, str]] = []
    for route in routes:
        if route.public:
            capabilities = "(public)"
        else:
            capabilities = ", ".join(sorted(route.required_capabilities)) or "-"
        rows.append((route.method, route.pattern, route.handler_name, capabilities))

    max_method = max(6, *(len(r[0]) for r in rows))  # "METHOD" header
    max_path = max(4, *(len(r[1]) for r in rows))  # "PATH" header
    max_handler = max(7, *(len(r[2]) for r in rows))  # "HANDLER" header

    fmt = f"{{:<{max_method}}}  {{:<{max_path}}}  {{:<{max_handler}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "HANDLER", "CAPABILITIES"))
    sep_len = max_method + max_path + max_handler + 6 + max(len(r[3]) for r in rows)
    print("-" * min(sep_len, 100))
    for row in rows:
        print(fmt.format(*row))
