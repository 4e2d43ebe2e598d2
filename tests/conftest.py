"""Shared fixtures: a recording input backend that lets tests press hotkeys."""

import threading
import time
from collections import defaultdict

import pytest

from macroscript.backend import InputBackend
from macroscript.errors import BackendError
from macroscript.logger import StatusLogger


class FakeBackend(InputBackend):
    """Records injected input; hotkeys fire when a test calls ``trigger``."""

    def __init__(self, size=(1000, 1000)):
        self.calls = []
        self.clipboard = None
        self.size = size
        self.fail_on = set()
        self.unwatchable = set()
        self._lock = threading.Lock()
        self._presses = threading.Condition()
        self._counts = defaultdict(int)
        self._consumed = defaultdict(int)

    def _record(self, *call):
        if call[0] in self.fail_on:
            raise RuntimeError(f"{call[0]} failed")
        with self._lock:
            self.calls.append(call)

    def press(self, button):
        self._record("press", button)

    def release(self, button):
        self._record("release", button)

    def tap(self, button):
        self._record("tap", button)

    def move_abs(self, x, y):
        self._record("move", x, y)

    def scroll(self, amount):
        self._record("scroll", amount)

    def send_text(self, text):
        self._record("type", text)

    def read_clipboard(self):
        return self.clipboard

    def screen_size(self):
        return self.size

    def trigger(self, button):
        """Simulate one press of ``button``."""
        condition = self._presses
        with condition:
            self._counts[button] += 1
            condition.notify_all()

    def await_hotkey(self, button):
        condition = self._presses
        with condition:
            condition.wait_for(lambda: self._counts[button] > self._consumed[button])
            self._consumed[button] += 1

    def check_hotkey(self, button):
        if button in self.unwatchable:
            raise BackendError(f"cannot watch {button}")

    def register_hotkey_loop(self, button, callback, name=None, stop=None):
        def loop():
            while True:
                self.await_hotkey(button)
                if stop is not None and stop.is_set():
                    return
                callback()

        thread = threading.Thread(target=loop, name=name, daemon=True)
        thread.start()
        return thread

    def recorded(self):
        with self._lock:
            return list(self.calls)


def wait_until(predicate, timeout=2.0):
    """Poll ``predicate`` until it holds or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def logger():
    return StatusLogger()
