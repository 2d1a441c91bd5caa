"""Query document model.

A :class:`QueryDocument` is a read-only view over one scan of one buffer
snapshot. Edits produce a new document through :meth:`QueryDocument.rebuild`;
blocks and selections from an older document must be resolved again
against the new one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import overload

from es_console.errors import NoCurrentSelection
from es_console.parser import Position, RequestBlock, scan_buffer

# Sub-range names reported by QueryDocument.region_at
REGION_METHOD = "method"
REGION_PATH = "path"
REGION_QUERY = "query"
REGION_BODY = "body"


@dataclass(frozen=True)
class Selection:
    """The block under a cursor position in one document version."""

    version: int
    position: Position
    block: RequestBlock


class QueryDocument:
    """Ordered request blocks paired with the text they were scanned from."""

    __slots__ = ("text", "version", "blocks")

    def __init__(self, text: str, blocks: list[RequestBlock], version: int = 0) -> None:
        self.text = text
        self.version = version
        self.blocks = tuple(blocks)

    @classmethod
    def from_text(cls, text: str, version: int = 0) -> QueryDocument:
        return cls(text, scan_buffer(text), version)

    def rebuild(self, text: str) -> QueryDocument:
        """Return a fresh document for edited *text* with the next version."""
        return QueryDocument.from_text(text, self.version + 1)

    def __repr__(self) -> str:
        return f"QueryDocument(version={self.version}, blocks=<{len(self.blocks)} blocks>)"

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self):
        return iter(self.blocks)

    def count(self) -> int:
        return len(self.blocks)

    @overload
    def block_at(self, where: int) -> RequestBlock: ...

    @overload
    def block_at(self, where: Position) -> RequestBlock | None: ...

    def block_at(self, where):
        """Look up a block by index or by cursor position.

        Args:
            where: A block index, or a Position in this document's text.

        Returns:
            For an index, the block at that index. For a position, the block
            whose selection range contains it, or None.

        Raises:
            IndexError: If the index is negative or past the last block.
        """
        if isinstance(where, Position):
            for block in self.blocks:
                if block.range.contains(where):
                    return block
            return None
        if not 0 <= where < len(self.blocks):
            raise IndexError(
                f"Block index {where} out of range (document has {len(self.blocks)} blocks)"
            )
        return self.blocks[where]

    def region_at(self, position: Position) -> str | None:
        """Name the part of a block that *position* falls in.

        Completion and hover use this to pick their suggestions: the path,
        the query string after ``?``, or the body.
        """
        for block in self.blocks:
            if block.method.range.contains(position):
                return REGION_METHOD
            path_range = block.path.range
            # The path region also owns the caret right after its last
            # character, with or without a body below it
            if path_range.start <= position <= path_range.end:
                query_at = block.path.text.find("?")
                if query_at != -1 and position.column > path_range.start.column + query_at:
                    return REGION_QUERY
                return REGION_PATH
            if block.has_body and block.range.contains(position) and position >= block.body.range.start:
                return REGION_BODY
        return None

    def lens_lines(self) -> list[int]:
        """Return the opener line of every block, where actions are anchored."""
        return [block.line for block in self.blocks]


def resolve_selection(document: QueryDocument, position: Position) -> Selection | None:
    """Resolve the block under *position* in *document*."""
    block = document.block_at(position)
    if block is None:
        return None
    return Selection(version=document.version, position=position, block=block)


def require_block(
    document: QueryDocument,
    position: Position | None = None,
    block: RequestBlock | None = None,
) -> RequestBlock:
    """Return the block an action should run on.

    An explicitly supplied block wins; otherwise the block under
    *position* is used.

    Raises:
        NoCurrentSelection: If no block was given and none is under the
            position.
    """
    if block is not None:
        return block
    if position is not None:
        found = document.block_at(position)
        if found is not None:
            return found
    raise NoCurrentSelection(position)
