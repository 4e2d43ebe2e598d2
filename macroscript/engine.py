"""
Engine turning a parsed program into running threads.

One daemon thread per ``Bind`` runs its block whenever the bound button is
pressed, the ``Watcher`` waits for the halt key, and the executor runs the
main program for the requested number of cycles. The calling thread polls
the watcher and the executor until one of them resolves.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, Type

from .backend import InputBackend
from .buttons import Button, describe
from .errors import BackendError, EngineError, ExecutorError
from .expressions import (
    AwaitKey, Bind, DelayBetweenActions, Expression, GlobalHaltKey, Resolution,
    RunContext, adapt_expressions,
)
from .logger import StatusLogger
from .watcher import OneShot, SignalState, Watcher


class RunOutcome(Enum):
    """How a run ended."""
    COMPLETED = "completed"
    HALTED = "stopped by user"


@dataclass
class HotkeyTask:
    """A bound button, the block it triggers and the thread listening for it."""
    button: Button
    program: Tuple[Expression, ...]
    thread: Optional[threading.Thread] = None


class Engine:
    """
    Compiled, ready-to-start program.

    Construction validates everything before arming anything: a missing or
    duplicated definition, a bad resolution, a button claimed twice or one the
    backend cannot watch raises ``EngineError`` and leaves no hotkey
    registered. If the backend still fails while arming, the hotkeys armed so
    far are disarmed before the error propagates.
    """

    POLL_INTERVAL = 0.05

    def __init__(self, expressions: Sequence[Expression], host_resolution: Tuple[int, int],
                 backend: InputBackend, logger: Optional[StatusLogger] = None,
                 sleep_hook: Optional[Callable[[float], None]] = None):
        self._backend = backend
        self._logger = logger or StatusLogger()
        self._sleep_hook = sleep_hook
        expressions = list(expressions)

        resolution = self._definition(expressions, Resolution, "RESOLUTION")
        delay = self._definition(expressions, DelayBetweenActions, "DELAY_BETWEEN_ACTIONS")
        halt = self._definition(expressions, GlobalHaltKey, "GLOBAL_HALT_KEY")

        if resolution.width <= 0 or resolution.height <= 0:
            raise EngineError(
                f"RESOLUTION must be positive, got {resolution.width}x{resolution.height}"
            )
        script_resolution = (resolution.width, resolution.height)
        self._logger.log_debug(f"script resolution = {resolution.width}x{resolution.height}")
        self._logger.log_debug(f"host resolution = {host_resolution[0]}x{host_resolution[1]}")

        self.delay = max(delay.milliseconds, 0) / 1000.0
        self._logger.log_debug(f"delay between actions = {delay.milliseconds} ms")

        self.halt_button = halt.button
        self._logger.log_debug(f"global halt key = {describe(self.halt_button)}")
        self._check_hotkey(self.halt_button, f"watch the {describe(self.halt_button)} as the halt key")

        self.buttons_in_use: List[Button] = [self.halt_button]
        self.hotkeys: List[HotkeyTask] = []
        while True:
            idx = next((i for i, expr in enumerate(expressions) if isinstance(expr, Bind)), None)
            if idx is None:
                break
            bind = expressions.pop(idx)
            program = tuple(adapt_expressions(bind.expressions, host_resolution, script_resolution))
            self._logger.log_info(f"Attempting to bind {describe(bind.button)} as a hotkey")
            self._logger.log_debug(f"with subexpressions {program}")
            if bind.button in self.buttons_in_use:
                raise EngineError(
                    f"Failed to bind the {describe(bind.button)} as it is already in use"
                )
            self._check_hotkey(bind.button, f"bind the {describe(bind.button)}")
            self.buttons_in_use.append(bind.button)
            self.hotkeys.append(HotkeyTask(bind.button, program))

        self.program: Tuple[Expression, ...] = tuple(
            adapt_expressions(expressions, host_resolution, script_resolution)
        )

        self._disarmed = threading.Event()
        try:
            for task in self.hotkeys:
                self._arm(task)
        except Exception as exc:
            self._logger.log_error(f"Arming the hotkeys failed: {exc}")
            self.disarm()
            raise
        self.watcher = Watcher(self.halt_button, backend, self._logger)

    def disarm(self) -> None:
        """Stop every hotkey task. No block starts after this returns."""
        self._disarmed.set()

    def _check_hotkey(self, button: Button, action: str) -> None:
        try:
            self._backend.check_hotkey(button)
        except BackendError as exc:
            raise EngineError(f"Failed to {action}: {exc}") from exc

    @staticmethod
    def _definition(expressions: List[Expression], kind: Type[Expression], name: str):
        found = [expr for expr in expressions if isinstance(expr, kind)]
        if not found:
            raise EngineError(f"{name} definition missing")
        if len(found) > 1:
            raise EngineError(f"{name} is defined {len(found)} times")
        return found[0]

    def _context(self) -> RunContext:
        return RunContext(self._backend, self._logger, self._sleep_hook)

    def _arm(self, task: HotkeyTask) -> None:
        ctx = self._context()

        def on_press() -> None:
            self._logger.log_info(f"Hotkey {describe(task.button)} triggered")
            try:
                for expr in task.program:
                    expr.run(ctx)
                    ctx.sleep(self.delay)
            except Exception as exc:
                self._logger.log_error(f"Hotkey {describe(task.button)} failed: {exc}")

        task.thread = self._backend.register_hotkey_loop(
            task.button, on_press, name=f"Hotkey-{task.button}", stop=self._disarmed
        )

    def start(self, nb_cycles: int) -> RunOutcome:
        """
        Run the main program ``nb_cycles`` times.

        Returns ``HALTED`` when the halt key was pressed first, ``COMPLETED``
        when the executor finished first. Raises ``ExecutorError`` if the
        executor thread died.
        """
        done = self._spawn_executor(nb_cycles)
        while True:
            # halt wins when both are ready
            if self.watcher.check():
                self.watcher.post_halt()
                self._logger.log_info("Program halted by user")
                return RunOutcome.HALTED
            state = done.try_recv()
            if state is SignalState.RECEIVED:
                self._logger.log_info("Program completed")
                return RunOutcome.COMPLETED
            if state is SignalState.DISCONNECTED:
                self._logger.log_error("Executor thread disconnected")
                raise ExecutorError("Program halted, executor thread stopped unexpectedly")
            time.sleep(self.POLL_INTERVAL)

    def _spawn_executor(self, nb_cycles: int) -> OneShot:
        done = OneShot()
        ctx = self._context()
        program = self.program
        buttons_in_use = tuple(self.buttons_in_use)

        def execute() -> None:
            try:
                self._run_cycles(ctx, program, buttons_in_use, nb_cycles)
            except Exception as exc:
                self._logger.log_error(f"Executor failed: {exc}")
                return
            done.send()

        thread = threading.Thread(target=execute, name="Executor", daemon=True)
        done.bind(thread)
        thread.start()
        return done

    def _run_cycles(self, ctx: RunContext, program: Tuple[Expression, ...],
                    buttons_in_use: Tuple[Button, ...], nb_cycles: int) -> None:
        for cycle_idx in range(nb_cycles):
            self._logger.log_info(f"cycle {cycle_idx + 1}/{nb_cycles}")
            for expr in program:
                if isinstance(expr, AwaitKey) and expr.button in buttons_in_use:
                    # a configuration error: stop every remaining cycle
                    self._logger.log_error(
                        f"Cannot use {describe(expr.button)} to await as it is already in use"
                    )
                    return
                expr.run(ctx)
                ctx.sleep(self.delay)
