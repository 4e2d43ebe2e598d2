"""
Executable program representation produced by the parser.

Definitions (``Resolution``, ``DelayBetweenActions``, ``GlobalHaltKey``) only
exist at compile time: the engine consumes and strips them. ``Bind`` blocks
are lifted out into hotkey tasks. Everything else runs in place through a
``RunContext``.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Tuple

from .buttons import Button, describe
from .logger import StatusLogger

if TYPE_CHECKING:  # pragma: no cover
    from .backend import InputBackend


class RunContext:
    """Small helper object passed to expressions at runtime."""

    AWAIT_PARK_INTERVAL = 1.0

    def __init__(self, backend: "InputBackend", logger: Optional[StatusLogger] = None,
                 sleep_hook: Optional[Callable[[float], None]] = None):
        self.backend = backend
        self.logger = logger or StatusLogger()
        self._sleep = sleep_hook

    def sleep(self, seconds: float) -> None:
        if self._sleep:
            self._sleep(seconds)
        else:
            time.sleep(seconds)

    def write(self, text: str) -> None:
        print(text, end="", flush=True)


@dataclass(frozen=True)
class Expression:
    """Common interface for all nodes."""

    #: consumed by the engine and never executed
    init_only = False

    def run(self, ctx: RunContext) -> None:  # pragma: no cover - overridden
        raise NotImplementedError


# ---- Definitions ----

@dataclass(frozen=True)
class Resolution(Expression):
    width: int
    height: int

    init_only = True

    def run(self, ctx: RunContext) -> None:
        ctx.logger.log_warning("RESOLUTION definition executed")


@dataclass(frozen=True)
class DelayBetweenActions(Expression):
    milliseconds: int

    init_only = True

    def run(self, ctx: RunContext) -> None:
        ctx.logger.log_warning("DELAY_BETWEEN_ACTIONS definition executed")


@dataclass(frozen=True)
class GlobalHaltKey(Expression):
    button: Button

    init_only = True

    def run(self, ctx: RunContext) -> None:
        ctx.logger.log_warning("GLOBAL_HALT_KEY definition executed")


# ---- Immediate actions ----

@dataclass(frozen=True)
class Move(Expression):
    x: int
    y: int

    def run(self, ctx: RunContext) -> None:
        ctx.backend.move_abs(self.x, self.y)


@dataclass(frozen=True)
class Tap(Expression):
    button: Button

    def run(self, ctx: RunContext) -> None:
        ctx.backend.tap(self.button)


@dataclass(frozen=True)
class Press(Expression):
    button: Button

    def run(self, ctx: RunContext) -> None:
        ctx.backend.press(self.button)


@dataclass(frozen=True)
class Release(Expression):
    button: Button

    def run(self, ctx: RunContext) -> None:
        ctx.backend.release(self.button)


@dataclass(frozen=True)
class Sleep(Expression):
    seconds: float

    def run(self, ctx: RunContext) -> None:
        ctx.sleep(self.seconds)


@dataclass(frozen=True)
class Type(Expression):
    text: str

    def run(self, ctx: RunContext) -> None:
        ctx.backend.send_text(self.text)


@dataclass(frozen=True)
class Print(Expression):
    text: str

    def run(self, ctx: RunContext) -> None:
        ctx.write(self.text)


@dataclass(frozen=True)
class PrintClipboard(Expression):

    def run(self, ctx: RunContext) -> None:
        content = ctx.backend.read_clipboard()
        if content is None:
            ctx.logger.log_warning("Clipboard is empty or does not hold text")
            return
        ctx.write(content)


@dataclass(frozen=True)
class Scroll(Expression):
    """Positive amounts scroll up, negative amounts scroll down."""
    amount: int

    def run(self, ctx: RunContext) -> None:
        ctx.backend.scroll(self.amount)


# ---- Control ----

@dataclass(frozen=True)
class Await(Expression):
    """Block forever; only the halt key ends the run."""

    def run(self, ctx: RunContext) -> None:
        ctx.logger.log_info("Awaiting the halt key")
        while True:
            ctx.sleep(ctx.AWAIT_PARK_INTERVAL)


@dataclass(frozen=True)
class AwaitKey(Expression):
    button: Button

    def run(self, ctx: RunContext) -> None:
        ctx.logger.log_info(f"Awaiting {describe(self.button)}")
        ctx.backend.await_hotkey(self.button)


@dataclass(frozen=True)
class Bind(Expression):
    button: Button
    expressions: Tuple[Expression, ...]

    def run(self, ctx: RunContext) -> None:
        ctx.logger.log_warning(f"Bind on {describe(self.button)} executed in place")


def adapt_expressions(expressions: Iterable[Expression], host_resolution: Tuple[int, int],
                      script_resolution: Tuple[int, int]) -> List[Expression]:
    """
    Strip init-only nodes and rescale every ``Move`` from the script's
    resolution to the host's. Coordinates are floored after scaling.
    """
    width_ratio = host_resolution[0] / script_resolution[0]
    height_ratio = host_resolution[1] / script_resolution[1]
    rescale = not (width_ratio == 1.0 and height_ratio == 1.0)

    adapted: List[Expression] = []
    for expr in expressions:
        if expr.init_only:
            continue
        if rescale and isinstance(expr, Move):
            expr = replace(expr, x=math.floor(expr.x * width_ratio), y=math.floor(expr.y * height_ratio))
        adapted.append(expr)
    return adapted
