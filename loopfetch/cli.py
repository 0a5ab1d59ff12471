"""Command-line entry points for the file server and client."""

from __future__ import annotations

import argparse
import random
import sys

from loopfetch.client import ClientError, run_client
from loopfetch.server import ServerError, run_server

__all__ = ["DEFAULT_SEED", "client_main", "default_address", "server_main"]

DEFAULT_SEED = 1
_PORT_BASE = 49152
_PORT_SPAN = 16383
_LOOPBACK = "127.0.0.1"


def default_address(seed=DEFAULT_SEED):
    """Return the loopback address with a port in the dynamic range chosen by ``seed``.

    The same seed always gives the same port, so server and client agree.
    """
    port = random.Random(seed).randrange(_PORT_SPAN) + _PORT_BASE
    return (_LOOPBACK, port)


def _resolve_address(port):
    host, default_port = default_address()
    return (host, default_port if port is None else port)


def server_main(argv=None):
    """Run the file server on the loopback interface."""
    parser = argparse.ArgumentParser(
        prog="loopfetch-server", description="Serve files over TCP on loopback."
    )
    parser.add_argument("--port", type=int, default=None, help="port to listen on")
    args = parser.parse_args(argv)
    try:
        run_server(_resolve_address(args.port))
    except ServerError as exc:
        print(exc, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


def client_main(argv=None):
    """Fetch a file from the server and print it to standard output."""
    parser = argparse.ArgumentParser(
        prog="loopfetch-client", description="Fetch a file from a loopback server."
    )
    parser.add_argument("file_path", help="path of the file on the server")
    parser.add_argument("--port", type=int, default=None, help="server port")
    args = parser.parse_args(argv)
    try:
        run_client(_resolve_address(args.port), args.file_path)
    except ClientError as exc:
        print(exc, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 1
    return 0