"""``livespec`` command line: ``dev`` serves a project live, ``tail`` prints
what a running transport sends.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    from livespec import __version__

    parser = argparse.ArgumentParser(
        prog="livespec",
        description="Live sync between an HTML prototype and its spec graph.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", help="Available commands")

    dev = commands.add_parser("dev", help="Watch a project and serve it with live reload")
    dev.add_argument("root", nargs="?", default=".", help="Project folder (or its .LiveSpec)")
    # None keeps the value from livespec.yaml / the built-in default.
    dev.add_argument("--host", default=None, help="Bind address for both servers")
    dev.add_argument("--ws-port", type=int, default=None, help="Transport port")
    dev.add_argument("--http-port", type=int, default=None, help="Content server port")

    tail = commands.add_parser("tail", help="Print messages from a running transport")
    tail.add_argument("root", nargs="?", default=".", help="Project folder whose config applies")
    tail.add_argument("--host", default=None, help="Transport host")
    tail.add_argument("--ws-port", type=int, default=None, help="Transport port")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point of the ``livespec`` script."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from livespec import app

    if args.command == "dev":
        app.dev(root=args.root, host=args.host, ws_port=args.ws_port, http_port=args.http_port)
    else:
        app.tail(root=args.root, host=args.host, ws_port=args.ws_port)


if __name__ == "__main__":
    main()
