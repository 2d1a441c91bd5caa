"""Failures reported by query actions.

All of them are ``ValueError`` subclasses so the entry point can report
them the same way it reports a malformed request file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from es_console.parser import Position, RequestBlock


class QueryError(ValueError):
    """Base class for errors raised by query actions."""


class MalformedBody(QueryError):
    """The body parses under neither the strict nor the relaxed grammar."""

    def __init__(self, block: RequestBlock) -> None:
        super().__init__(
            f"Request body of {block.method.text.upper()} {block.path.text} "
            f"(line {block.line + 1}) is not valid JSON or object literal"
        )
        self.block = block


class NoCurrentSelection(QueryError):
    """An action needs a block but none is under the cursor."""

    def __init__(self, position: Position | None = None) -> None:
        if position is None:
            message = "No request selected"
        else:
            message = (
                f"No request at line {position.line + 1}, "
                f"column {position.column + 1}"
            )
        super().__init__(message)
        self.position = position
