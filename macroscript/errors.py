"""
Exception hierarchy shared by the compiler, the engine and the CLI.
"""

from __future__ import annotations

from typing import Optional


class ScriptError(Exception):
    """Base class for every failure reported to the user."""


class ConfigError(ScriptError):
    """An application directory or one of its name tables is unusable."""


class ParseError(ScriptError):
    """
    Compilation failure carrying the position of the offending token.

    The message is built so that it can be shown as-is:
    ``Expected 'Position', found 'Word' (line 3, column 6)``
    followed by a ``Near:`` line with the source text of that line.
    """

    def __init__(self, message: str, source: Optional[str] = None, offset: Optional[int] = None):
        self.offset = offset
        self.line: Optional[int] = None
        self.column: Optional[int] = None
        self.snippet: Optional[str] = None

        full_message = message
        if source is not None and offset is not None:
            offset = max(0, min(offset, len(source)))
            line_start = source.rfind("\n", 0, offset) + 1
            line_end = source.find("\n", offset)
            if line_end == -1:
                line_end = len(source)
            self.line = source.count("\n", 0, offset) + 1
            self.column = offset - line_start + 1
            self.snippet = source[line_start:line_end].strip()
            full_message += f" (line {self.line}, column {self.column})"
            if self.snippet:
                full_message += f"\n  Near: {self.snippet}"

        self.message = message
        super().__init__(full_message)


class EngineError(ScriptError):
    """The parsed program cannot be turned into a runnable engine."""


class ExecutorError(ScriptError):
    """The executor thread stopped without reporting completion."""


class BackendError(ScriptError):
    """The OS input backend is missing or refused an operation."""
