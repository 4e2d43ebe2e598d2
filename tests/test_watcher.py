"""Tests for the halt watcher and the one-shot signal."""

import threading

from conftest import wait_until
from macroscript.buttons import KeyboardKey
from macroscript.watcher import OneShot, SignalState, Watcher


ESCAPE = KeyboardKey.from_name("Escape")


class TestOneShot:
    """Received, empty and disconnected states"""

    def test_empty_until_sent(self):
        signal = OneShot()
        assert signal.try_recv() is SignalState.EMPTY
        signal.send()
        assert signal.try_recv() is SignalState.RECEIVED

    def test_disconnected_when_owner_ends_silently(self):
        signal = OneShot()
        owner = threading.Thread(target=lambda: None)
        signal.bind(owner)
        owner.start()
        owner.join()
        assert signal.try_recv() is SignalState.DISCONNECTED

    def test_sent_before_owner_ended(self):
        signal = OneShot()
        owner = threading.Thread(target=signal.send)
        signal.bind(owner)
        owner.start()
        owner.join()
        assert signal.try_recv() is SignalState.RECEIVED


class TestWatcher:
    """The halt key press reaches the polling thread"""

    def test_not_halted_before_press(self, backend, logger):
        watcher = Watcher(ESCAPE, backend, logger)
        assert watcher.check() is False

    def test_press_halts(self, backend, logger):
        watcher = Watcher(ESCAPE, backend, logger)
        backend.trigger(ESCAPE)
        assert wait_until(watcher.check)
        watcher.post_halt()
        assert "Halt key pressed" in logger.messages("INFO")

    def test_listener_failure_counts_as_halt(self, backend, logger):
        def broken(button):
            raise RuntimeError("hook refused")

        backend.await_hotkey = broken
        watcher = Watcher(ESCAPE, backend, logger)
        assert wait_until(watcher.check)
        assert "Watcher thread disconnected" in logger.messages("ERROR")
        watcher.post_halt()
        assert any("hook refused" in m for m in logger.messages("WARNING"))
