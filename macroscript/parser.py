"""
Recursive-descent parser with a single token of lookahead.

Grammar (statements end with a newline or ``;``)::

    define RESOLUTION = <int>,<int>
    define DELAY_BETWEEN_ACTIONS = <float>      milliseconds
    define GLOBAL_HALT_KEY = <word>
    Move <int>,<int>
    Tap | Press | Release <word>
    Sleep <float>                               seconds
    Type "<string>"
    Print "<string>" | Println "<string>" | PrintClipboard
    ScrollUp | ScrollDown <int>
    Await [<word>]
    Bind <word> { <statement>* }

``Bind`` bodies are parsed by a nested parser whose statement table has no
entry for ``define``, ``Await`` or ``Bind``, so blocks nest exactly one level.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .buttons import Button
from .errors import ParseError
from .expressions import (
    Await, AwaitKey, Bind, DelayBetweenActions, Expression, GlobalHaltKey, Move,
    Press, Print, PrintClipboard, Release, Resolution, Scroll, Sleep, Tap, Type,
)
from .keymap import ButtonMaps
from .lexer import Lexer
from .tokens import Span, Token, TokenKind


SKIPPED_KINDS = (TokenKind.WHITESPACE, TokenKind.COMMENT)
FORBIDDEN_IN_BIND = (TokenKind.LBRACE, TokenKind.AWAIT, TokenKind.DEFINE, TokenKind.BIND)


def significant_tokens(tokens: Iterable[Token]) -> Iterator[Token]:
    """Drop whitespace and comments."""
    return (token for token in tokens if token.kind not in SKIPPED_KINDS)


class Parser:
    """
    Builds the list of expressions for ``source``.

    ``tokens`` defaults to the lexer's output for ``source``; nested parsers
    get the already collected tokens of a ``Bind`` body instead.
    """

    def __init__(self, source: str, maps: Optional[ButtonMaps] = None,
                 tokens: Optional[Iterable[Token]] = None, nested: bool = False):
        self.source = source
        self.maps = maps if maps is not None else ButtonMaps.default()
        self.nested = nested
        self.lexer: Optional[Lexer] = None
        if tokens is None:
            self.lexer = Lexer(source)
            tokens = self.lexer
        self._tokens = significant_tokens(tokens)
        self._lookahead: Optional[Token] = None
        self._last_offset = 0
        self._handlers: Dict[TokenKind, Callable[[], Expression]] = {
            TokenKind.MOVE: self._parse_move,
            TokenKind.TAP: lambda: Tap(self._consume_button(TokenKind.TAP)),
            TokenKind.PRESS: lambda: Press(self._consume_button(TokenKind.PRESS)),
            TokenKind.RELEASE: lambda: Release(self._consume_button(TokenKind.RELEASE)),
            TokenKind.SLEEP: self._parse_sleep,
            TokenKind.TYPE: lambda: Type(self._consume_string(TokenKind.TYPE)),
            TokenKind.PRINT: lambda: Print(self._consume_string(TokenKind.PRINT)),
            TokenKind.PRINTLN: lambda: Print(self._consume_string(TokenKind.PRINTLN) + "\n"),
            TokenKind.PRINT_CLIPBOARD: self._parse_print_clipboard,
            TokenKind.SCROLL_UP: lambda: Scroll(self._consume_scroll(TokenKind.SCROLL_UP)),
            TokenKind.SCROLL_DOWN: lambda: Scroll(-self._consume_scroll(TokenKind.SCROLL_DOWN)),
        }
        if not nested:
            self._handlers.update({
                TokenKind.DEFINE: self._parse_definition,
                TokenKind.AWAIT: self._parse_await,
                TokenKind.BIND: self._parse_bind,
            })

    # ---- token primitives ----

    def peek(self) -> TokenKind:
        """Kind of the next token, ``EOF`` once the stream is exhausted."""
        token = self._peek_token()
        return token.kind if token is not None else TokenKind.EOF

    def _peek_token(self) -> Optional[Token]:
        if self._lookahead is None:
            self._lookahead = next(self._tokens, None)
        return self._lookahead

    def _next(self) -> Optional[Token]:
        token = self._peek_token()
        self._lookahead = None
        if token is not None:
            self._last_offset = token.span.end
        return token

    def consume(self, expected: TokenKind) -> Token:
        token = self._next()
        if token is None:
            raise self._error(f"Expected to consume '{expected}', but there was no next token")
        if token.kind is not expected:
            raise self._error(f"Expected to consume '{expected}', but found '{token.kind}'", token)
        return token

    def text(self, token: Token) -> str:
        return token.text(self.source)

    def _error(self, message: str, token: Optional[Token] = None) -> ParseError:
        offset = token.span.start if token is not None else self._last_offset
        return ParseError(message, self.source, offset)

    # ---- entry point ----

    def process(self) -> List[Expression]:
        expressions: List[Expression] = []
        while True:
            expr = self.parse_expression()
            if expr is None:
                return expressions
            expressions.append(expr)

    def parse_expression(self) -> Optional[Expression]:
        kind = self.peek()
        while kind is TokenKind.EOI:
            self.consume(TokenKind.EOI)
            kind = self.peek()

        if kind is TokenKind.EOF:
            return None

        handler = self._handlers.get(kind)
        if handler is None:
            token = self._peek_token()
            if kind is TokenKind.ERROR:
                raise self._error(f"Unrecognized input '{self.text(token)}'", token)
            if self.nested and kind in FORBIDDEN_IN_BIND:
                raise self._error(f"'{kind}' is not allowed inside a Bind block", token)
            raise self._error(f"Undefined parsing behavior for token kind '{kind}'", token)

        expr = handler()
        if self.peek() not in (TokenKind.EOI, TokenKind.EOF):
            token = self._peek_token()
            raise self._error(f"Expected the end of the instruction, but found '{token.kind}'", token)
        return expr

    # ---- statements ----

    def _parse_definition(self) -> Expression:
        self.consume(TokenKind.DEFINE)
        name_token = self.consume(TokenKind.WORD)
        name = self.text(name_token).upper()
        self.consume(TokenKind.EQ)

        if name == "RESOLUTION":
            width, height = self._position(self.consume(TokenKind.POSITION))
            return Resolution(width, height)
        if name == "DELAY_BETWEEN_ACTIONS":
            milliseconds = self._float(self.consume(TokenKind.FLOAT))
            return DelayBetweenActions(int(milliseconds))
        if name == "GLOBAL_HALT_KEY":
            return GlobalHaltKey(self._button(self.consume(TokenKind.WORD)))
        raise self._error(f"Unknown definition '{name}'", name_token)

    def _parse_move(self) -> Expression:
        self.consume(TokenKind.MOVE)
        x, y = self._position(self.consume(TokenKind.POSITION))
        return Move(x, y)

    def _parse_sleep(self) -> Expression:
        self.consume(TokenKind.SLEEP)
        return Sleep(self._float(self.consume(TokenKind.FLOAT)))

    def _parse_print_clipboard(self) -> Expression:
        self.consume(TokenKind.PRINT_CLIPBOARD)
        return PrintClipboard()

    def _parse_await(self) -> Expression:
        self.consume(TokenKind.AWAIT)
        if self.peek() is TokenKind.WORD:
            return AwaitKey(self._button(self.consume(TokenKind.WORD)))
        return Await()

    def _parse_bind(self) -> Expression:
        self.consume(TokenKind.BIND)
        button = self._button(self.consume(TokenKind.WORD))
        self.consume(TokenKind.LBRACE)

        body: List[Token] = []
        while True:
            token = self._next()
            if token is None or token.kind is TokenKind.EOF:
                raise self._error("Unterminated Bind block, expected '}'", token)
            if token.kind is TokenKind.RBRACE:
                break
            if token.kind in FORBIDDEN_IN_BIND:
                raise self._error(f"'{token.kind}' is not allowed inside a Bind block", token)
            body.append(token)

        end = Span(self._last_offset, self._last_offset)
        body.append(Token(TokenKind.EOF, end))
        inner = Parser(self.source, self.maps, tokens=body, nested=True)
        return Bind(button, tuple(inner.process()))

    # ---- operands ----

    def _consume_button(self, keyword: TokenKind) -> Button:
        self.consume(keyword)
        return self._button(self.consume(TokenKind.WORD))

    def _consume_string(self, keyword: TokenKind) -> str:
        self.consume(keyword)
        token = self.consume(TokenKind.STRING)
        return self.text(token)[1:-1]

    def _consume_scroll(self, keyword: TokenKind) -> int:
        self.consume(keyword)
        token = self.consume(TokenKind.FLOAT)
        try:
            return int(self.text(token))
        except ValueError:
            raise self._error(f"Scroll amount must be an integer, got '{self.text(token)}'", token) from None

    def _button(self, token: Token) -> Button:
        try:
            return self.maps.resolve(self.text(token))
        except KeyError:
            raise self._error(
                f"No key or mouse button associated with the name '{self.text(token).lower()}'", token
            ) from None

    def _position(self, token: Token):
        first, _, second = self.text(token).partition(",")
        try:
            return int(first.strip()), int(second.strip())
        except ValueError:
            raise self._error(f"Invalid position '{self.text(token)}'", token) from None

    def _float(self, token: Token) -> float:
        try:
            return float(self.text(token))
        except ValueError:
            raise self._error(f"Invalid number '{self.text(token)}'", token) from None


def parse(source: str, maps: Optional[ButtonMaps] = None) -> List[Expression]:
    """Parse ``source`` into a flat list of expressions."""
    return Parser(source, maps).process()
