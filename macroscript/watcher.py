"""
Halt-key watcher and the one-shot signal used between threads.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional

from .backend import InputBackend
from .buttons import Button, describe
from .logger import StatusLogger


class SignalState(Enum):
    EMPTY = "empty"
    RECEIVED = "received"
    DISCONNECTED = "disconnected"


class OneShot:
    """
    Single-use signal sent by one worker thread.

    The signal counts as disconnected when the owning thread has ended
    without sending it.
    """

    def __init__(self) -> None:
        self._sent = threading.Event()
        self._owner: Optional[threading.Thread] = None

    def bind(self, owner: threading.Thread) -> None:
        self._owner = owner

    def send(self) -> None:
        self._sent.set()

    def try_recv(self) -> SignalState:
        """Non-blocking check."""
        if self._sent.is_set():
            return SignalState.RECEIVED
        if self._owner is not None and not self._owner.is_alive():
            # the owner may have sent right before ending
            return SignalState.RECEIVED if self._sent.is_set() else SignalState.DISCONNECTED
        return SignalState.EMPTY


class Watcher:
    """Turns one press of the halt key into a signal the supervising thread can poll."""

    def __init__(self, button: Button, backend: InputBackend, logger: Optional[StatusLogger] = None):
        self.button = button
        self._backend = backend
        self._logger = logger or StatusLogger()
        self._signal = OneShot()
        self._failure: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._listen, name="Watcher", daemon=True)
        self._signal.bind(self._thread)
        self._thread.start()

    def _listen(self) -> None:
        try:
            self._backend.await_hotkey(self.button)
        except Exception as exc:
            self._failure = exc
            self._logger.log_error(f"Watcher failed while waiting for the halt key: {exc}")
            return
        self._logger.log_info("Halt key pressed")
        self._signal.send()
        self._logger.log_debug("Halt message sent")

    def check(self) -> bool:
        """True once the halt key was pressed or the watcher thread died."""
        state = self._signal.try_recv()
        if state is SignalState.RECEIVED:
            self._logger.log_info("Halt message received")
            return True
        if state is SignalState.DISCONNECTED:
            self._logger.log_error("Watcher thread disconnected")
            return True
        return False

    def post_halt(self) -> None:
        """Join the watcher thread; failures are logged, never raised."""
        self._thread.join()
        if self._failure is not None:
            self._logger.log_warning(f"Watcher thread failed: '{self._failure}'")
        else:
            self._logger.log_debug(f"Watcher thread for {describe(self.button)} successfully joined")
