"""Lenient request body parsing.

Bodies are hand-written, so they often carry unquoted keys, single-quoted
strings or trailing commas. :func:`parse_body` validates strictly first and
only falls back to a relaxed object/array-literal grammar when the strict
JSON parse fails.
"""

from __future__ import annotations

import json
from typing import Any

_IDENT_START = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_$")
_IDENT_PART = _IDENT_START | frozenset("0123456789")
_DIGITS = frozenset("0123456789")
_HEX_DIGITS = _DIGITS | frozenset("abcdefABCDEF")

_KEYWORDS = {"true": True, "false": False, "null": None}

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_RADIX_PREFIXES = {"x": 16, "o": 8, "b": 2}


class _Missing:
    """Result of parse_body for text neither grammar accepts."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class RelaxedSyntaxError(ValueError):
    """Raised by :func:`relaxed_loads` when the text is not a valid literal."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def strict_loads(text: str) -> Any:
    """Parse *text* as RFC 8259 JSON (``NaN`` and ``Infinity`` rejected)."""
    return json.loads(text, parse_constant=_reject_constant)


class _RelaxedParser:
    """Recursive-descent parser for JavaScript object and array literals."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str) -> RelaxedSyntaxError:
        return RelaxedSyntaxError(message, self.pos)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise self.error(f"Expected {char!r}")
        self.pos += 1

    def parse(self) -> Any:
        self.skip_whitespace()
        value = self.parse_value()
        self.skip_whitespace()
        if self.pos != len(self.text):
            raise self.error("Unexpected trailing content")
        return value

    def parse_value(self) -> Any:
        char = self.peek()
        if char == "{":
            return self.parse_object()
        if char == "[":
            return self.parse_array()
        if char in ("'", '"'):
            return self.parse_string()
        if char in _DIGITS or char in ("-", "+", "."):
            return self.parse_number()
        if char in _IDENT_START:
            word = self.parse_identifier()
            if word in _KEYWORDS:
                return _KEYWORDS[word]
            raise RelaxedSyntaxError(f"Unexpected identifier {word!r}", self.pos - len(word))
        if not char:
            raise self.error("Unexpected end of input")
        raise self.error(f"Unexpected character {char!r}")

    def parse_object(self) -> dict[str, Any]:
        self.expect("{")
        result: dict[str, Any] = {}
        self.skip_whitespace()
        while self.peek() != "}":
            key = self.parse_key()
            self.skip_whitespace()
            self.expect(":")
            self.skip_whitespace()
            result[key] = self.parse_value()
            self.skip_whitespace()
            if self.peek() == ",":
                self.pos += 1
                self.skip_whitespace()
            elif self.peek() != "}":
                raise self.error("Expected ',' or '}'")
        self.pos += 1
        return result

    def parse_array(self) -> list[Any]:
        self.expect("[")
        result: list[Any] = []
        self.skip_whitespace()
        while self.peek() != "]":
            result.append(self.parse_value())
            self.skip_whitespace()
            if self.peek() == ",":
                self.pos += 1
                self.skip_whitespace()
            elif self.peek() != "]":
                raise self.error("Expected ',' or ']'")
        self.pos += 1
        return result

    def parse_key(self) -> str:
        char = self.peek()
        if char in ("'", '"'):
            return self.parse_string()
        if char in _IDENT_START:
            return self.parse_identifier()
        if char in _DIGITS or char == ".":
            number = self.parse_number()
            # Numeric keys become their canonical string form
            if isinstance(number, float) and number.is_integer():
                number = int(number)
            return str(number)
        if not char:
            raise self.error("Unexpected end of input")
        raise self.error(f"Invalid object key starting with {char!r}")

    def parse_identifier(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in _IDENT_PART:
            self.pos += 1
        return self.text[start : self.pos]

    def parse_string(self) -> str:
        quote = self.peek()
        self.pos += 1
        chunks: list[str] = []
        while True:
            if self.pos >= len(self.text):
                raise self.error("Unterminated string")
            char = self.text[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(chunks)
            if char in ("\n", "\r"):
                raise self.error("Unterminated string")
            if char == "\\":
                self.pos += 1
                chunks.append(self.parse_escape())
                continue
            chunks.append(char)
            self.pos += 1

    def parse_escape(self) -> str:
        if self.pos >= len(self.text):
            raise self.error("Unterminated string")
        char = self.text[self.pos]
        self.pos += 1
        if char in _SIMPLE_ESCAPES:
            if char == "0" and self.peek() in _DIGITS:
                raise self.error("Octal escapes are not allowed")
            return _SIMPLE_ESCAPES[char]
        if char == "x":
            return chr(self.read_hex(2))
        if char == "u":
            if self.peek() == "{":
                self.pos += 1
                end = self.text.find("}", self.pos)
                if end == -1:
                    raise self.error("Unterminated unicode escape")
                digits = self.text[self.pos : end]
                self.pos = end + 1
                return self.code_point(digits)
            return self.read_unicode_unit()
        if char == "\r":
            # Line continuation, \r\n counts as one terminator
            if self.peek() == "\n":
                self.pos += 1
            return ""
        if char in ("\n", "\u2028", "\u2029"):
            return ""
        return char

    def read_hex(self, count: int) -> int:
        digits = self.text[self.pos : self.pos + count]
        if len(digits) != count:
            raise self.error("Truncated escape sequence")
        if not set(digits) <= _HEX_DIGITS:
            raise self.error(f"Invalid hex digits {digits!r}")
        value = int(digits, 16)
        self.pos += count
        return value

    def read_unicode_unit(self) -> str:
        high = self.read_hex(4)
        # Join surrogate pairs written as two \u escapes
        if 0xD800 <= high <= 0xDBFF and self.text.startswith("\\u", self.pos):
            saved = self.pos
            self.pos += 2
            low = self.read_hex(4)
            if 0xDC00 <= low <= 0xDFFF:
                return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))
            self.pos = saved
        return chr(high)

    def code_point(self, digits: str) -> str:
        if not digits or not set(digits) <= _HEX_DIGITS:
            raise self.error(f"Invalid code point {digits!r}")
        value = int(digits, 16)
        if value > 0x10FFFF:
            raise self.error(f"Code point out of range {digits!r}")
        return chr(value)

    def parse_number(self) -> int | float:
        start = self.pos
        sign = 1
        if self.peek() in ("-", "+"):
            sign = -1 if self.peek() == "-" else 1
            self.pos += 1

        if self.peek() == "0" and self.text[self.pos + 1 : self.pos + 2].lower() in _RADIX_PREFIXES:
            radix = _RADIX_PREFIXES[self.text[self.pos + 1].lower()]
            self.pos += 2
            digits_start = self.pos
            while self.pos < len(self.text) and self.text[self.pos] in _IDENT_PART:
                self.pos += 1
            digits = self.text[digits_start : self.pos]
            try:
                return sign * int(digits, radix)
            except ValueError:
                raise RelaxedSyntaxError(f"Invalid number {self.text[start:self.pos]!r}", start) from None

        int_digits = self.consume_digits()
        frac_digits = ""
        if self.peek() == ".":
            self.pos += 1
            frac_digits = self.consume_digits()
        if not int_digits and not frac_digits:
            raise RelaxedSyntaxError("Invalid number", start)

        is_float = self.text[start : self.pos].find(".") != -1
        if self.peek() in ("e", "E"):
            self.pos += 1
            if self.peek() in ("-", "+"):
                self.pos += 1
            if not self.consume_digits():
                raise RelaxedSyntaxError("Invalid exponent", start)
            is_float = True

        if self.peek() and self.peek() in _IDENT_PART:
            raise self.error("Identifier directly after number")

        literal = self.text[start : self.pos]
        return float(literal) if is_float else int(literal)

    def consume_digits(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in _DIGITS:
            self.pos += 1
        return self.text[start : self.pos]


def relaxed_loads(text: str) -> Any:
    """Parse *text* as a JavaScript object/array literal.

    Raises:
        RelaxedSyntaxError: If *text* is not a valid literal.
    """
    return _RelaxedParser(text).parse()


def parse_body(text: str) -> Any:
    """Parse a request body, strictly first and leniently second.

    Comments must already be stripped by the caller. Strict JSON wins
    whenever it succeeds. The relaxed fallback only accepts an object or an
    array at the top level.

    Args:
        text: The comment-free body text.

    Returns:
        The parsed value, or MISSING when neither grammar accepts the text.
        A strict JSON ``null`` body comes back as None.
    """
    try:
        return strict_loads(text)
    except (ValueError, RecursionError):
        pass

    try:
        value = relaxed_loads(text)
    except (ValueError, RecursionError):
        return MISSING

    if isinstance(value, (dict, list)):
        return value
    return MISSING
