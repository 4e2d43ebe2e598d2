"""
Forward-only scanner turning script text into tokens.

Every position of the input is covered by exactly one token: runs of
whitespace, rule matches, or a single ``Error`` token for each run of
characters no rule recognizes. The stream always ends with ``EOI`` (unless
the input already ended an instruction) and one ``EOF``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

from .tokens import Span, Token, TokenKind


Matcher = Callable[[str, int], Optional[int]]


@dataclass(frozen=True)
class Rule:
    kind: TokenKind
    matches: Matcher


def _keyword(keyword: str) -> Matcher:
    def matches(source: str, pos: int) -> Optional[int]:
        return len(keyword) if source.startswith(keyword, pos) else None
    return matches


def _pattern(pattern: str) -> Matcher:
    regex = re.compile(pattern)

    def matches(source: str, pos: int) -> Optional[int]:
        match = regex.match(source, pos)
        if match is None or match.end() == pos:
            return None
        return match.end() - pos
    return matches


# Order matters: on equal match length the earlier rule wins.
RULES: List[Rule] = [
    Rule(TokenKind.DEFINE, _keyword("define")),
    Rule(TokenKind.MOVE, _keyword("Move")),
    Rule(TokenKind.TAP, _keyword("Tap")),
    Rule(TokenKind.PRESS, _keyword("Press")),
    Rule(TokenKind.RELEASE, _keyword("Release")),
    Rule(TokenKind.SLEEP, _keyword("Sleep")),
    Rule(TokenKind.TYPE, _keyword("Type")),
    Rule(TokenKind.AWAIT, _keyword("Await")),
    Rule(TokenKind.BIND, _keyword("Bind")),
    Rule(TokenKind.PRINT, _keyword("Print")),
    Rule(TokenKind.PRINTLN, _keyword("Println")),
    Rule(TokenKind.PRINT_CLIPBOARD, _keyword("PrintClipboard")),
    Rule(TokenKind.SCROLL_UP, _keyword("ScrollUp")),
    Rule(TokenKind.SCROLL_DOWN, _keyword("ScrollDown")),
    Rule(TokenKind.EQ, _keyword("=")),
    Rule(TokenKind.COMMA, _keyword(",")),
    Rule(TokenKind.LBRACE, _keyword("{")),
    Rule(TokenKind.RBRACE, _keyword("}")),
    Rule(TokenKind.EOI, _keyword("\n")),
    Rule(TokenKind.EOI, _keyword(";")),
    Rule(TokenKind.COMMENT, _pattern(r"//[^\n]*")),
    Rule(TokenKind.STRING, _pattern(r'"[^"\n]*"')),
    Rule(TokenKind.POSITION, _pattern(r"-?\d+[ \t]*,[ \t]*-?\d+")),
    Rule(TokenKind.FLOAT, _pattern(r"\d+(?:\.\d+)?|\.\d+")),
    Rule(TokenKind.WORD, _pattern(r"[^\W\d]\w*")),
]


def _is_blank(char: str) -> bool:
    return char.isspace() and char != "\n"


class Lexer:
    """
    Lazy token iterator over ``source``.

    ``line`` tracks the current line for diagnostics; every ``Error`` token
    produced is also described in ``diagnostics``.
    """

    def __init__(self, source: str, rules: Optional[List[Rule]] = None):
        self.source = source
        self.position = 0
        self.line = 1
        self.diagnostics: List[str] = []
        self._rules = rules if rules is not None else RULES
        self._last_kind: Optional[TokenKind] = None
        self._finished = False
        self._pending: List[Token] = []

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        if self._pending:
            return self._pending.pop(0)
        if self._finished:
            raise StopIteration

        if self.position >= len(self.source):
            self._finished = True
            end = Span(self.position, self.position)
            if self._last_kind is not TokenKind.EOI:
                self._pending.append(Token(TokenKind.EOF, end))
                return Token(TokenKind.EOI, end)
            return Token(TokenKind.EOF, end)

        token = self._valid_token(self.position) or self._invalid_token()
        self.position = token.span.end
        if token.kind is TokenKind.EOI and token.text(self.source) == "\n":
            self.line += 1
        if token.kind not in (TokenKind.WHITESPACE, TokenKind.COMMENT):
            self._last_kind = token.kind
        return token

    def tokenize(self) -> List[Token]:
        return list(self)

    def _match(self, pos: int) -> Optional[Tuple[int, TokenKind]]:
        source = self.source
        if _is_blank(source[pos]):
            end = pos
            while end < len(source) and _is_blank(source[end]):
                end += 1
            return end - pos, TokenKind.WHITESPACE

        best: Optional[Tuple[int, TokenKind]] = None
        for rule in self._rules:
            length = rule.matches(source, pos)
            # strictly longer only, so earlier rules keep ties
            if length is not None and (best is None or length > best[0]):
                best = (length, rule.kind)
        return best

    def _valid_token(self, pos: int) -> Optional[Token]:
        found = self._match(pos)
        if found is None:
            return None
        length, kind = found
        return Token(kind, Span(pos, pos + length))

    def _invalid_token(self) -> Token:
        start = self.position
        end = start + 1
        while end < len(self.source) and self._match(end) is None:
            end += 1
        text = self.source[start:end]
        self.diagnostics.append(f"Unrecognized input '{text}' on line {self.line}")
        return Token(TokenKind.ERROR, Span(start, end))


def tokenize(source: str) -> List[Token]:
    """Tokenize the whole of ``source``; never fails."""
    return Lexer(source).tokenize()
