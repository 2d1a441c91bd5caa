"""es-console — Main entry point.

Ties together the CLI, scanner, document model and engine to list,
normalize or execute the request blocks of a query file.
"""

import sys

import requests

from es_console.cli import parse_cli
from es_console.document import QueryDocument, require_block
from es_console.engine import execute_block, normalize_block, print_result, send_request
from es_console.errors import NoCurrentSelection, QueryError
from es_console.parser import Position, load_query_file, write_query_file


def print_blocks(document: QueryDocument) -> None:
    """Print one summary line per request block."""
    print(f"[*] {document.count()} request block(s)")
    for block in document:
        body = "Yes" if block.has_body else "No"
        print(
            f"    [{block.index}] line {block.line + 1:<4} "
            f"{block.method.text.upper():<7} {block.path.text}  (body: {body})"
        )


def main(argv: list[str] | None = None) -> int:
    """Run es-console.

    Args:
        argv: Optional argument list (defaults to sys.argv).

    Returns:
        Exit code (0 = success, 1 = no request under the cursor, 2 = error).
    """
    args = parse_cli(argv)

    print(f"[*] Loading queries from: {args.query_file}")
    try:
        text = load_query_file(args.query_file)
    except OSError as exc:
        print(f"Error reading query file: {exc}", file=sys.stderr)
        return 2

    document = QueryDocument.from_text(text)

    if args.list:
        print_blocks(document)
        return 0

    try:
        if args.index is not None:
            block = document.block_at(args.index)
        elif args.line is not None:
            position = Position(args.line - 1, args.column - 1)
            block = require_block(document, position)
        else:
            block = require_block(document)
    except IndexError as exc:
        print(f"Error selecting request: {exc}", file=sys.stderr)
        return 2
    except NoCurrentSelection as exc:
        print(f"[!] {exc}, nothing to do.")
        return 1

    print(f"    Method : {block.method.text.upper()}")
    print(f"    Path   : {block.path.text}")
    print(f"    Body   : {'Yes' if block.has_body else 'No'}")

    if args.normalize:
        try:
            updated = normalize_block(document, block)
        except QueryError as exc:
            print(f"Error normalizing body: {exc}", file=sys.stderr)
            return 2
        if args.write:
            try:
                write_query_file(args.query_file, updated)
            except OSError as exc:
                print(f"Error writing query file: {exc}", file=sys.stderr)
                return 2
            print(f"[*] Body rewritten in {args.query_file}")
        else:
            sys.stdout.write(updated)
        return 0

    try:
        descriptor = execute_block(block, args.host)
    except QueryError as exc:
        print(f"Error building request: {exc}", file=sys.stderr)
        return 2

    if args.dry_run:
        print(f"\n{descriptor.method} {descriptor.url}")
        if descriptor.payload is not None:
            print(descriptor.payload)
        return 0

    print(f"\n[*] Executing {descriptor.method} {descriptor.url} ...")
    if args.proxy:
        print(f"    Proxy  : {args.proxy}")

    try:
        result = send_request(
            descriptor,
            timeout=args.timeout,
            proxy=args.proxy,
            verify=not args.insecure,
        )
    except requests.RequestException as exc:
        print(f"Error during request: {exc}", file=sys.stderr)
        return 2

    print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
