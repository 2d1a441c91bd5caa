"""Comment stripping for request bodies.

Removes ``//`` line comments and ``/* */`` block comments from JSON-like
text. By default the stripped characters are blanked out instead of
removed, so character offsets and line numbers of the remaining text stay
valid for range mapping.
"""

from __future__ import annotations

# Scanner states
_NONE = 0
_LINE = 1
_BLOCK = 2


def _blank(text: str) -> str:
    """Replace every non-whitespace character with a single space."""
    return "".join(ch if ch.isspace() else " " for ch in text)


def _is_escaped(text: str, quote_index: int) -> bool:
    """Return True if the quote at *quote_index* follows an odd run of backslashes."""
    index = quote_index - 1
    backslashes = 0
    while index >= 0 and text[index] == "\\":
        index -= 1
        backslashes += 1
    return backslashes % 2 == 1


def strip_json_comments(text: str, whitespace: bool = True) -> str:
    """Strip comments from *text*.

    Double-quoted strings are honoured: ``//`` and ``/*`` inside them are
    left alone. A block comment that never closes runs to the end of input.

    Args:
        text: The text to strip.
        whitespace: Blank out comments (default) instead of deleting them.
            When True the result has the same length as *text*.

    Returns:
        The text with comments removed.

    Raises:
        TypeError: If *text* is not a string.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected a string, got {type(text).__name__}")

    strip = _blank if whitespace else (lambda _chunk: "")

    in_string = False
    state = _NONE
    offset = 0
    parts: list[str] = []
    index = 0
    length = len(text)

    while index < length:
        current = text[index]
        pair = text[index : index + 2]

        if state == _NONE and current == '"' and not _is_escaped(text, index):
            in_string = not in_string

        if in_string:
            index += 1
            continue

        if state == _NONE and pair == "//":
            parts.append(text[offset:index])
            offset = index
            state = _LINE
            index += 2
            continue

        if state == _LINE and pair == "\r\n":
            parts.append(strip(text[offset:index]))
            offset = index
            state = _NONE
            index += 2
            continue

        if state == _LINE and current == "\n":
            parts.append(strip(text[offset:index]))
            offset = index
            state = _NONE
        elif state == _NONE and pair == "/*":
            parts.append(text[offset:index])
            offset = index
            state = _BLOCK
            index += 2
            continue
        elif state == _BLOCK and pair == "*/":
            parts.append(strip(text[offset : index + 2]))
            offset = index + 2
            state = _NONE
            index += 2
            continue

        index += 1

    tail = text[offset:]
    parts.append(strip(tail) if state != _NONE else tail)
    return "".join(parts)
