"""``caaspay hash-secret`` — produce a ``secretHash`` value for credentials.yaml."""

import argparse
import getpass
import sys

from caaspay.security.secrets import hash_secret


def run_hash_secret(args: argparse.Namespace) -> None:
    if args.stdin:
        secret = sys.stdin.readline().rstrip("\r\n")
    else:
        secret = getpass.getpass("Secret: ")
        if getpass.getpass("Repeat: ") != secret:
            print("Error: secrets do not match", file=sys.stderr)
            raise SystemExit(1)
    if not secret:
        print("Error: secret must not be empty", file=sys.stderr)
        raise SystemExit(1)
    print(hash_secret(secret, scheme=args.scheme))
