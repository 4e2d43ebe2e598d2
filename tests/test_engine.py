"""Tests for engine construction, rescaling and the run loop."""

import threading

import pytest

from conftest import wait_until
from macroscript.buttons import KeyboardKey, MouseButton
from macroscript.engine import Engine, RunOutcome
from macroscript.errors import BackendError, EngineError, ExecutorError
from macroscript.expressions import Move, Sleep, Tap, adapt_expressions
from macroscript.parser import parse


HEADER = (
    "define RESOLUTION = 1000,1000\n"
    "define DELAY_BETWEEN_ACTIONS = 0\n"
    "define GLOBAL_HALT_KEY = Escape\n"
)

ESCAPE = KeyboardKey.from_name("Escape")
F1 = KeyboardKey.from_name("F1")
F2 = KeyboardKey.from_name("F2")
KEY_A = KeyboardKey.from_name("a")


def build(body, backend, logger=None, host=(1000, 1000), header=HEADER, **kwargs):
    return Engine(parse(header + body), host, backend, logger, **kwargs)


class TestConstruction:
    """Definitions, claimed buttons and the cleaned program"""

    @pytest.mark.parametrize("missing", ["RESOLUTION", "DELAY_BETWEEN_ACTIONS", "GLOBAL_HALT_KEY"])
    def test_missing_definition_is_named(self, backend, missing):
        header = "".join(line + "\n" for line in HEADER.splitlines() if missing not in line)
        with pytest.raises(EngineError) as excinfo:
            build("Tap a", backend, header=header)
        assert str(excinfo.value) == f"{missing} definition missing"

    def test_duplicate_definition(self, backend):
        with pytest.raises(EngineError, match="RESOLUTION is defined 2 times"):
            build("define RESOLUTION = 10,10", backend)

    def test_zero_resolution(self, backend):
        header = HEADER.replace("1000,1000", "0,1000")
        with pytest.raises(EngineError, match="RESOLUTION must be positive"):
            build("", backend, header=header)

    def test_definitions_are_stripped(self, backend):
        engine = build("Move 1,2\nTap a", backend)
        assert engine.program == (Move(1, 2), Tap(KEY_A))
        assert engine.halt_button == ESCAPE
        assert engine.delay == 0.0

    def test_delay_in_seconds(self, backend):
        engine = build("", backend, header=HEADER.replace("ACTIONS = 0", "ACTIONS = 250"))
        assert engine.delay == 0.25

    def test_binds_are_lifted_out(self, backend):
        engine = build("Tap a\nBind F1 { Move 10,10 }\nBind lmb { Tap a }", backend)
        assert engine.program == (Tap(KEY_A),)
        assert [task.button for task in engine.hotkeys] == [F1, MouseButton.from_name("LeftClick")]
        assert engine.hotkeys[0].program == (Move(10, 10),)
        assert engine.buttons_in_use == [ESCAPE, F1, MouseButton.from_name("LeftClick")]
        assert all(task.thread is not None and task.thread.is_alive() for task in engine.hotkeys)

    def test_duplicate_bind(self, backend):
        with pytest.raises(EngineError, match="already in use"):
            build("Bind F1 { Tap a }\nBind f1 { Tap a }", backend)

    def test_bind_on_halt_key(self, backend):
        with pytest.raises(EngineError, match="keyboard 'Escape' as it is already in use"):
            build("Bind esc { Tap a }", backend)

    def test_no_hotkey_armed_on_failure(self, backend):
        calls = []
        backend.register_hotkey_loop = lambda *args, **kwargs: calls.append(args)
        with pytest.raises(EngineError):
            build("Bind F1 { Tap a }\nBind F2 { Tap a }\nBind F1 { Tap a }", backend)
        assert calls == []

    def test_unwatchable_bind_arms_nothing(self, backend):
        calls = []
        backend.register_hotkey_loop = lambda *args, **kwargs: calls.append(args)
        backend.unwatchable.add(F2)
        with pytest.raises(EngineError, match="Failed to bind the keyboard 'F2': cannot watch"):
            build("Bind F1 { Tap a }\nBind F2 { Tap b }", backend)
        assert calls == []

    def test_unwatchable_halt_key(self, backend):
        backend.unwatchable.add(ESCAPE)
        with pytest.raises(EngineError, match="Failed to watch the keyboard 'Escape' as the halt key: cannot watch"):
            build("Tap a", backend)

    def test_refused_registration_disarms_earlier_binds(self, backend, logger):
        threads = []
        register = backend.register_hotkey_loop

        def refuse_f2(button, callback, name=None, stop=None):
            if button == F2:
                raise BackendError("cannot hook F2")
            thread = register(button, callback, name=name, stop=stop)
            threads.append(thread)
            return thread

        backend.register_hotkey_loop = refuse_f2
        with pytest.raises(BackendError, match="cannot hook F2"):
            build("Bind F1 { Tap a }\nBind F2 { Tap b }", backend, logger)
        assert any("Arming the hotkeys failed" in m for m in logger.messages("ERROR"))

        backend.trigger(F1)
        assert wait_until(lambda: not threads[0].is_alive())
        assert backend.recorded() == []


class TestRescaling:
    """Move coordinates follow the host resolution"""

    def test_rescale_floors_each_axis(self, backend):
        engine = build("Move 100,200", backend, host=(2000, 500))
        assert engine.program == (Move(200, 100),)

    def test_rescale_inside_binds(self, backend):
        engine = build("Bind F1 { Move 333,333 }", backend, host=(1920, 1080))
        assert engine.hotkeys[0].program == (Move(639, 359),)

    def test_same_resolution_is_untouched(self):
        expressions = [Move(7, 9), Sleep(1.0)]
        assert adapt_expressions(expressions, (800, 600), (800, 600)) == expressions

    def test_negative_coordinates_floor_down(self):
        assert adapt_expressions([Move(-3, 3)], (1500, 1500), (1000, 1000)) == [Move(-5, 4)]


class TestRun:
    """Executor, watcher and the supervising loop"""

    def test_end_to_end_scenario(self, backend, logger):
        source = (
            "define RESOLUTION = 1000,1000\n"
            "define DELAY_BETWEEN_ACTIONS = 10\n"
            "define GLOBAL_HALT_KEY = Escape\n"
            "Move 10,10\n"
            "Sleep 0.01\n"
        )
        sleeps = []
        engine = Engine(parse(source), (1000, 1000), backend, logger, sleep_hook=sleeps.append)
        assert engine.watcher.button == ESCAPE
        assert engine.hotkeys == []

        assert engine.start(1) is RunOutcome.COMPLETED
        assert backend.recorded() == [("move", 10, 10)]
        assert sleeps == [0.01, 0.01, 0.01]
        assert "cycle 1/1" in logger.messages("INFO")

    def test_cycles_repeat_the_program(self, backend):
        engine = build("Tap a\nScrollDown 2", backend)
        assert engine.start(3) is RunOutcome.COMPLETED
        assert backend.recorded() == [("tap", KEY_A), ("scroll", -2)] * 3

    def test_zero_cycles(self, backend):
        engine = build("Tap a", backend)
        assert engine.start(0) is RunOutcome.COMPLETED
        assert backend.recorded() == []

    def test_halt_key_stops_an_awaiting_program(self, backend, logger):
        engine = build("Tap a\nAwait", backend, logger)
        threading.Timer(0.1, backend.trigger, args=(ESCAPE,)).start()
        assert engine.start(1) is RunOutcome.HALTED
        assert "Halt message received" in logger.messages("INFO")

    def test_halt_wins_when_both_are_ready(self, backend):
        engine = build("", backend)
        backend.trigger(ESCAPE)
        assert wait_until(lambda: engine.watcher._signal.try_recv().value == "received")
        assert engine.start(1) is RunOutcome.HALTED

    def test_await_key_blocks_until_pressed(self, backend):
        engine = build("Await F2\nTap a", backend)
        threading.Timer(0.1, backend.trigger, args=(F2,)).start()
        assert engine.start(1) is RunOutcome.COMPLETED
        assert backend.recorded() == [("tap", KEY_A)]

    def test_await_on_claimed_key_ends_every_cycle(self, backend, logger):
        engine = build("Tap a\nAwait F1\nTap b\nBind F1 { Tap c }", backend, logger)
        assert engine.start(3) is RunOutcome.COMPLETED
        assert backend.recorded() == [("tap", KEY_A)]
        assert any("already in use" in m for m in logger.messages("ERROR"))

    def test_executor_failure_is_fatal(self, backend, logger):
        backend.fail_on.add("move")
        engine = build("Move 1,1", backend, logger)
        with pytest.raises(ExecutorError):
            engine.start(1)
        assert any("Executor failed" in m for m in logger.messages("ERROR"))

    def test_bind_runs_on_each_press(self, backend):
        engine = build("Bind F1 { Tap a; Move 5,5 }\nAwait", backend)
        backend.trigger(F1)
        assert wait_until(lambda: len(backend.recorded()) == 2)
        backend.trigger(F1)
        assert wait_until(lambda: len(backend.recorded()) == 4)
        assert backend.recorded() == [("tap", KEY_A), ("move", 5, 5)] * 2
        assert engine.program

    def test_failing_bind_keeps_listening(self, backend, logger):
        backend.fail_on.add("move")
        build("Bind F1 { Move 1,1 }\nBind F2 { Tap a }", backend, logger)
        backend.trigger(F1)
        assert wait_until(lambda: any("failed" in m for m in logger.messages("ERROR")))
        backend.trigger(F2)
        assert wait_until(lambda: backend.recorded() == [("tap", KEY_A)])
        backend.fail_on.clear()
        backend.trigger(F1)
        assert wait_until(lambda: ("move", 1, 1) in backend.recorded())

    def test_print_statements(self, backend, capsys):
        backend.clipboard = "copied"
        engine = build('Print "a"\nPrintln "b"\nPrintClipboard', backend)
        assert engine.start(1) is RunOutcome.COMPLETED
        assert capsys.readouterr().out == "ab\ncopied"

    def test_type_press_release(self, backend):
        engine = build('Type "hi"\nPress LeftShift\nRelease LeftShift', backend)
        engine.start(1)
        shift = KeyboardKey.from_name("LeftShift")
        assert backend.recorded() == [("type", "hi"), ("press", shift), ("release", shift)]
