#!/usr/bin/env python3
"""
ClefAuth -- Clef passwordless login for FastAPI applications.

Usage:
  python main.py state
  python main.py state --size 32 --count 3
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 4000 --reload

Environment variables:
  CLEF_APP_ID       Clef application ID (required to serve).
  CLEF_APP_SECRET   Clef application secret (required to serve).
  SECRET_KEY        Signs the state cookie. At least 32 characters.
  DEBUG=true        Development mode: generates SECRET_KEY when unset.
"""

import argparse
from typing import Optional

from auth.tokens import get_state_parameter


def _cmd_state(size: Optional[int], count: int) -> None:
    """Print state parameters, one per line."""
    for _ in range(count):
        print(get_state_parameter(size))


def _cmd_serve(host: str, port: int, reload: bool) -> None:
    """Serve asgi:app with uvicorn.

    Imported lazily so `state` works without the server stack configured.
    """
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="clef-auth",
        description="Clef passwordless login strategy for FastAPI.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py state
  python main.py state --size 32
  CLEF_APP_ID=... CLEF_APP_SECRET=... DEBUG=true python main.py serve --reload
        """,
    )
    sub = parser.add_subparsers(dest="command")

    state_p = sub.add_parser("state", help="Print a fresh state parameter")
    state_p.add_argument(
        "--size",
        type=int,
        default=None,
        metavar="BYTES",
        help="Random bytes per token (default: 24)",
    )
    state_p.add_argument(
        "--count",
        type=int,
        default=1,
        metavar="N",
        help="Number of tokens to print (default: 1)",
    )

    serve_p = sub.add_parser("serve", help="Run the example app with uvicorn")
    serve_p.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_p.add_argument("--port", type=int, default=4000, help="Port (default: 4000)")
    serve_p.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args(argv)

    if args.command == "state":
        if args.size is not None and args.size < 1:
            parser.error("--size must be a positive number of bytes")
        _cmd_state(args.size, args.count)
    elif args.command == "serve":
        _cmd_serve(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
