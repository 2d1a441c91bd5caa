"""Request block scanning.

Splits a query buffer into request blocks. A block starts on a line whose
first token is an HTTP verb followed by a path, and runs until the next
such line or the end of the buffer::

    GET /index/_search
    { "query": { "match_all": {} } }

    POST /index/_doc
    { name: 'a' }
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from es_console.comments import strip_json_comments

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "HEAD", "PATCH", "OPTIONS"})

# leading whitespace, first token, separator, rest of line
_OPENER_RE = re.compile(r"^(\s*)(\S+)(\s+)(\S.*)$")
# An inline comment on the path line starts the remainder or follows
# whitespace, so absolute URLs such as http://host keep their "//".
_PATH_COMMENT_RE = re.compile(r"(?:^|\s)//")


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line and column in a buffer."""

    line: int
    column: int


@dataclass(frozen=True)
class TextRange:
    """Half-open span ``[start, end)`` of a buffer."""

    start: Position
    end: Position

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def contains(self, position: Position) -> bool:
        return self.start <= position < self.end


@dataclass(frozen=True)
class Token:
    """A piece of buffer text and where it sits."""

    text: str
    range: TextRange


@dataclass(frozen=True)
class RequestBlock:
    """One ``METHOD path`` request and its optional body."""

    index: int
    method: Token
    path: Token
    body: Token | None
    extent: TextRange

    @property
    def has_body(self) -> bool:
        return self.body is not None and bool(self.body.text.strip())

    @property
    def range(self) -> TextRange:
        """Selection range: method start to the last body character, or to path end.

        Blank lines and comments trailing the body are left out, so the gap
        between two blocks selects nothing.
        """
        if not self.has_body:
            return TextRange(self.method.range.start, self.path.range.end)
        content = strip_json_comments(self.body.text).rstrip()
        start = self.body.range.start
        newline = content.rfind("\n")
        if newline == -1:
            end = Position(start.line, start.column + len(content))
        else:
            end = Position(start.line + content.count("\n"), len(content) - newline - 1)
        return TextRange(self.method.range.start, end)

    @property
    def line(self) -> int:
        return self.method.range.start.line


class LineIndex:
    """Line and offset bookkeeping for one buffer snapshot.

    Lines are split on ``\\n``; a trailing ``\\r`` is part of the line
    terminator and not addressable by column.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.starts: list[int] = [0]
        for match in re.finditer("\n", text):
            self.starts.append(match.end())
        self.lines: list[str] = []
        for raw in text.split("\n"):
            self.lines.append(raw[:-1] if raw.endswith("\r") else raw)

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def end(self) -> Position:
        last = len(self.lines) - 1
        return Position(last, len(self.lines[last]))

    def offset(self, position: Position) -> int:
        """Return the character offset of *position* in the buffer text."""
        return self.starts[position.line] + position.column

    def slice(self, text_range: TextRange) -> str:
        return self.text[self.offset(text_range.start) : self.offset(text_range.end)]


def match_opener(line: str) -> tuple[int, str, int, str] | None:
    """Match a block opener line.

    Args:
        line: One buffer line without its terminator.

    Returns:
        ``(method_column, method, path_column, path)`` or None when the line
        does not open a block.
    """
    match = _OPENER_RE.match(line)
    if match is None:
        return None
    indent, method, separator, rest = match.groups()
    if method.upper() not in HTTP_METHODS:
        return None

    comment = _PATH_COMMENT_RE.search(rest)
    path = (rest[: comment.start()] if comment else rest).rstrip()
    if not path:
        return None

    method_column = len(indent)
    path_column = method_column + len(method) + len(separator)
    return method_column, method, path_column, path


def _build_block(
    index: int,
    lines: LineIndex,
    opener_line: int,
    opener: tuple[int, str, int, str],
    end: Position,
) -> RequestBlock:
    method_column, method, path_column, path = opener
    method_token = Token(
        method,
        TextRange(
            Position(opener_line, method_column),
            Position(opener_line, method_column + len(method)),
        ),
    )
    path_token = Token(
        path,
        TextRange(
            Position(opener_line, path_column),
            Position(opener_line, path_column + len(path)),
        ),
    )

    body_token = None
    if opener_line + 1 < len(lines):
        body_range = TextRange(Position(opener_line + 1, 0), end)
        body_text = lines.slice(body_range)
        if strip_json_comments(body_text).strip():
            body_token = Token(body_text, body_range)

    return RequestBlock(
        index=index,
        method=method_token,
        path=path_token,
        body=body_token,
        extent=TextRange(Position(opener_line, 0), end),
    )


def scan_buffer(text: str) -> list[RequestBlock]:
    """Scan a query buffer into its request blocks.

    Lines before the first opener belong to no block. A body ends right
    before the next opener line, so a body line that itself looks like
    ``GET /x`` starts a new block.

    Args:
        text: The whole buffer.

    Returns:
        The blocks in buffer order.
    """
    lines = LineIndex(text)
    openers: list[tuple[int, tuple[int, str, int, str]]] = []
    for number, line in enumerate(lines.lines):
        opener = match_opener(line)
        if opener is not None:
            openers.append((number, opener))

    blocks: list[RequestBlock] = []
    for index, (number, opener) in enumerate(openers):
        if index + 1 < len(openers):
            end = Position(openers[index + 1][0], 0)
        else:
            end = lines.end
        blocks.append(_build_block(index, lines, number, opener, end))
    return blocks


def load_query_file(filepath: str) -> str:
    """Read and return the contents of a query buffer file.

    Args:
        filepath: Path to the query file.

    Returns:
        The raw text content of the file.

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
    """
    with open(filepath, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


def write_query_file(filepath: str, text: str) -> None:
    """Write *text* back to a query file, line endings untouched.

    Raises:
        OSError: If the file cannot be written.
    """
    with open(filepath, "w", encoding="utf-8", newline="") as fh:
        fh.write(text)
