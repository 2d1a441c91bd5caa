"""Request execution pipeline.

Turns a request block into a :class:`RequestDescriptor` (method, URL,
payload), rewrites bodies into canonical JSON, and sends descriptors to the
search server.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any

import requests
import urllib3

from es_console.comments import strip_json_comments
from es_console.document import QueryDocument
from es_console.errors import MalformedBody
from es_console.lenient import MISSING, parse_body
from es_console.parser import LineIndex, RequestBlock

JSON_INDENT = 4

JSON_HEADERS = {"Content-Type": "application/json"}


class RequestDescriptor:
    """Normalized request handed to the transport."""

    __slots__ = ("method", "url", "payload")

    def __init__(self, method: str, url: str, payload: str | None) -> None:
        self.method = method
        self.url = url
        self.payload = payload

    def __repr__(self) -> str:
        return (
            f"RequestDescriptor(method={self.method!r}, url={self.url!r}, "
            f"payload={'<present>' if self.payload is not None else '<none>'})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RequestDescriptor):
            return NotImplemented
        return (self.method, self.url, self.payload) == (
            other.method,
            other.url,
            other.payload,
        )


class ExecutionResult:
    """Container for the server's answer to one request."""

    __slots__ = (
        "status_code",
        "headers",
        "body",
        "elapsed",
        "timestamp",
    )

    def __init__(
        self,
        status_code: int,
        headers: dict[str, str],
        body: str,
        elapsed: float,
        timestamp: datetime,
    ) -> None:
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self.elapsed = elapsed
        self.timestamp = timestamp


def serialize_body(value: Any) -> str:
    """Serialize a parsed body as canonical indented JSON."""
    return json.dumps(value, indent=JSON_INDENT, ensure_ascii=False)


def build_url(host: str, path: str) -> str:
    """Resolve a block path against the base host.

    Paths starting with ``/`` are appended to *host*; anything else is
    taken to be a fully qualified URL already.

    Args:
        host: The base origin (e.g. http://localhost:9200).
        path: The block's path text.

    Returns:
        The URL to request.
    """
    if path.startswith("/"):
        return f"{host}{path}"
    return path


def parse_block_body(block: RequestBlock) -> Any:
    """Strip comments from the block body and parse it.

    Returns:
        The parsed value, or MISSING when the block has no body. A JSON
        ``null`` body comes back as None.

    Raises:
        MalformedBody: If the body is present but unparsable.
    """
    if not block.has_body:
        return MISSING
    stripped = strip_json_comments(block.body.text)
    if not stripped.strip():
        return MISSING
    value = parse_body(stripped)
    if value is MISSING:
        raise MalformedBody(block)
    return value


def execute_block(block: RequestBlock, host: str) -> RequestDescriptor:
    """Build the request descriptor for *block*.

    No I/O happens here; pass the descriptor to :func:`send_request`.

    Args:
        block: The block to execute.
        host: The base origin used for paths starting with ``/``.

    Returns:
        The method, resolved URL and serialized payload.

    Raises:
        MalformedBody: If the body is present but unparsable.
    """
    value = parse_block_body(block)
    # A null body sends no data
    payload = None if value is MISSING or value is None else serialize_body(value)
    return RequestDescriptor(
        method=block.method.text.upper(),
        url=build_url(host, block.path.text),
        payload=payload,
    )


def normalize_body(text: str) -> str:
    """Rewrite a lenient body as canonical indented JSON.

    Raises:
        ValueError: If the text parses under neither grammar.
    """
    value = parse_body(strip_json_comments(text))
    if value is MISSING:
        raise ValueError("Body is not valid JSON or object literal")
    return serialize_body(value)


def normalize_block(document: QueryDocument, block: RequestBlock) -> str:
    """Return the document text with *block*'s body in canonical form.

    Whitespace trailing the old body is kept, so the next block still
    starts on its own line, and the buffer's line terminator is used
    inside the new body. A block without a body leaves the text as is.

    Raises:
        MalformedBody: If the body is present but unparsable.
    """
    value = parse_block_body(block)
    if value is MISSING:
        return document.text

    canonical = serialize_body(value)
    if "\r\n" in document.text:
        canonical = canonical.replace("\n", "\r\n")
    body_text = block.body.text
    trailing = body_text[len(body_text.rstrip()) :]
    lines = LineIndex(document.text)
    start = lines.offset(block.body.range.start)
    end = lines.offset(block.body.range.end)
    return document.text[:start] + canonical + trailing + document.text[end:]


def send_request(
    descriptor: RequestDescriptor,
    timeout: float = 30,
    proxy: str | None = None,
    verify: bool = True,
) -> ExecutionResult:
    """Send a descriptor to the server.

    HTTP error statuses come back as results; connection problems raise.

    Args:
        descriptor: The request to send.
        timeout: Request timeout in seconds.
        proxy: Optional proxy URL for debugging.
        verify: Verify TLS certificates (disable for self-signed clusters).

    Returns:
        An ExecutionResult with status, headers, body and timing.

    Raises:
        requests.RequestException: If the request could not be completed.
    """
    if not verify:
        # Self-signed development clusters would warn on every call
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    proxies = None
    if proxy:
        proxies = {"http": proxy, "https": proxy}

    headers = dict(JSON_HEADERS) if descriptor.payload is not None else {}

    timestamp = datetime.now(timezone.utc)
    started = time.monotonic()
    response = requests.request(
        method=descriptor.method,
        url=descriptor.url,
        headers=headers,
        data=descriptor.payload.encode("utf-8") if descriptor.payload is not None else None,
        proxies=proxies,
        timeout=timeout,
        verify=verify,
    )
    elapsed = time.monotonic() - started

    return ExecutionResult(
        status_code=response.status_code,
        headers=dict(response.headers),
        body=response.text,
        elapsed=elapsed,
        timestamp=timestamp,
    )


def format_result(result: ExecutionResult) -> str:
    """Render a result as a timing comment followed by the response body.

    JSON bodies are re-indented; anything else is shown verbatim.
    """
    header = (
        f"// {result.timestamp.isoformat(timespec='milliseconds').replace('+00:00', 'Z')}"
        f" - took {result.elapsed:.3f} secs"
    )
    try:
        body = serialize_body(json.loads(result.body))
    except ValueError:
        body = result.body
    return f"{header}\n{body}"


def print_result(result: ExecutionResult) -> None:
    """Print a formatted result to stdout.

    Args:
        result: The ExecutionResult from the executed request.
    """
    print(f"[*] HTTP {result.status_code}")
    print(format_result(result))
