"""Lexical primitives: token kinds, spans and tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenKind(Enum):
    # Structure
    DEFINE = "define"
    EQ = "="
    COMMA = ","
    LBRACE = "{"
    RBRACE = "}"
    EOI = "end of instruction"
    EOF = "end of file"

    # Actions
    MOVE = "Move"
    TAP = "Tap"
    PRESS = "Press"
    RELEASE = "Release"
    SLEEP = "Sleep"
    TYPE = "Type"
    AWAIT = "Await"
    BIND = "Bind"
    PRINT = "Print"
    PRINTLN = "Println"
    PRINT_CLIPBOARD = "PrintClipboard"
    SCROLL_UP = "ScrollUp"
    SCROLL_DOWN = "ScrollDown"

    # Lexeme classes
    WORD = "Word"
    POSITION = "Position"
    STRING = "String"
    FLOAT = "Float"
    COMMENT = "Comment"

    WHITESPACE = "Whitespace"
    ERROR = "Error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Span:
    """
    Half-open ``[start, end)`` range into the source.

    Offsets count characters of the decoded ``str``, not bytes of its UTF-8
    encoding, so ``source[start:end]`` is the covered text.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Span start {self.start} is after its end {self.end}")

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, source: str) -> str:
        return source[self.start:self.end]


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    span: Span

    def __len__(self) -> int:
        return len(self.span)

    def text(self, source: str) -> str:
        """Source text covered by this token."""
        return self.span.slice(source)

    def __repr__(self) -> str:
        return f"{self.kind.name} <{self.span.start}, {self.span.end}>"
