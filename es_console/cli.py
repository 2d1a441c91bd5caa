"""Command-line interface and host configuration.

Provides the argparse front end for es-console: which query file to read,
which block to act on (by cursor position or index), and which action to
take.
"""

import argparse
import os
import sys

from es_console import __version__

DEFAULT_HOST = "localhost:9200"
HOST_ENV_VAR = "ES_CONSOLE_HOST"


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the es-console CLI."""
    parser = argparse.ArgumentParser(
        prog="es-console",
        description=(
            "es-console v{ver} — run Elasticsearch requests written in a "
            "query file.\n\n"
            "A query file holds blocks of the form 'METHOD /path' followed "
            "by an optional JSON body. Bodies may use comments, unquoted "
            "keys, single-quoted strings and trailing commas."
        ).format(ver=__version__),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  es-console --file queries.es --list\n"
            "  es-console --file queries.es --line 12\n"
            "  es-console --file queries.es --index 0 --dry-run\n"
            "  es-console --file queries.es --line 12 --normalize --write\n"
        ),
    )

    required = parser.add_argument_group("required arguments")
    required.add_argument(
        "--file",
        required=True,
        dest="query_file",
        help="Path to the query file.",
    )

    target = parser.add_argument_group("block selection")
    target.add_argument(
        "--line",
        type=int,
        default=None,
        help="1-based cursor line; the block under the cursor is used.",
    )
    target.add_argument(
        "--column",
        type=int,
        default=1,
        help="1-based cursor column (default: 1).",
    )
    target.add_argument(
        "--index",
        type=int,
        default=None,
        help="0-based block index; takes precedence over --line.",
    )

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "--list",
        action="store_true",
        help="List the request blocks in the file and exit.",
    )
    actions.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved request instead of sending it.",
    )
    actions.add_argument(
        "--normalize",
        action="store_true",
        help="Rewrite the selected body as canonical JSON.",
    )
    parser.add_argument(
        "--write",
        action="store_true",
        help="With --normalize, write the result back to the file.",
    )

    parser.add_argument(
        "--host",
        default=None,
        help=(
            f"Base URL of the cluster (default: ${HOST_ENV_VAR} or "
            f"{DEFAULT_HOST})."
        ),
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30).",
    )
    parser.add_argument(
        "--proxy",
        default=None,
        help=(
            "Route traffic through a proxy for debugging "
            "(e.g. http://127.0.0.1:8080)."
        ),
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def resolve_host(host: str | None = None) -> str:
    """Resolve the base host used for relative paths.

    The CLI value wins, then the environment, then the default. A bare
    ``host:port`` gets an ``http://`` scheme; a trailing slash is removed.
    """
    value = (host or os.environ.get(HOST_ENV_VAR) or DEFAULT_HOST).strip()
    if "://" not in value:
        value = "http://" + value
    return value.rstrip("/")


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments.

    Raises:
        SystemExit: If the query file is missing or unreadable, or a
            numeric option is out of range.
    """
    if not os.path.isfile(args.query_file):
        print(
            f"Error: Query file not found: '{args.query_file}'",
            file=sys.stderr,
        )
        sys.exit(1)

    if not os.access(args.query_file, os.R_OK):
        print(
            f"Error: Query file is not readable: '{args.query_file}'",
            file=sys.stderr,
        )
        sys.exit(1)

    if args.line is not None and args.line < 1:
        print("Error: --line must be 1 or greater.", file=sys.stderr)
        sys.exit(1)

    if args.column < 1:
        print("Error: --column must be 1 or greater.", file=sys.stderr)
        sys.exit(1)

    if args.index is not None and args.index < 0:
        print("Error: --index cannot be negative.", file=sys.stderr)
        sys.exit(1)

    if args.timeout <= 0:
        print("Error: --timeout must be positive.", file=sys.stderr)
        sys.exit(1)

    if args.write and not args.normalize:
        print("Error: --write requires --normalize.", file=sys.stderr)
        sys.exit(1)

    if args.host is not None and not args.host.strip():
        print("Error: Host cannot be empty.", file=sys.stderr)
        sys.exit(1)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse and validate command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed and validated argument namespace, with ``host`` resolved.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    validate_args(args)
    args.host = resolve_host(args.host)
    return args
