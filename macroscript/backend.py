"""
OS input backend built on top of pynput.

Injection goes through pynput's keyboard and mouse controllers; global
hotkeys are implemented with pynput listeners. The screen size comes from
pyautogui and the clipboard from pyperclip.
"""

from __future__ import annotations

import sys
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from .buttons import WHEEL_DOWN, WHEEL_UP, Button, KeyboardKey, MouseButton, describe
from .errors import BackendError
from .logger import StatusLogger

try:
    from pynput import keyboard, mouse  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore
    mouse = None  # type: ignore


class InputBackend:
    """
    Operations the engine needs from the operating system.

    Hotkey registration is global: the press is observed whatever window has
    the focus.
    """

    def press(self, button: Button) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def release(self, button: Button) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def tap(self, button: Button) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def move_abs(self, x: int, y: int) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def scroll(self, amount: int) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def send_text(self, text: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def read_clipboard(self) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    def await_hotkey(self, button: Button) -> None:  # pragma: no cover - interface
        """Block until ``button`` is pressed once."""
        raise NotImplementedError

    def check_hotkey(self, button: Button) -> None:
        """Raise ``BackendError`` if ``button`` cannot be watched. Nothing is registered."""

    def register_hotkey_loop(self, button: Button, callback: Callable[[], None],
                             name: Optional[str] = None,
                             stop: Optional[threading.Event] = None) -> threading.Thread:  # pragma: no cover
        """
        Call ``callback`` after every press of ``button`` from a daemon thread,
        until ``stop`` is set.
        """
        raise NotImplementedError

    def screen_size(self) -> Tuple[int, int]:  # pragma: no cover - interface
        raise NotImplementedError


# canonical name -> pynput ``Key`` attribute
_PYNPUT_SPECIAL_KEYS: Dict[str, str] = {
    "Backspace": "backspace",
    "Tab": "tab",
    "Enter": "enter",
    "Escape": "esc",
    "Space": "space",
    "PageUp": "page_up",
    "PageDown": "page_down",
    "End": "end",
    "Home": "home",
    "Left": "left",
    "Up": "up",
    "Right": "right",
    "Down": "down",
    "Insert": "insert",
    "Delete": "delete",
    "LeftSuper": "cmd_l",
    "RightSuper": "cmd_r",
    "CapsLock": "caps_lock",
    "NumLock": "num_lock",
    "ScrollLock": "scroll_lock",
    "LeftShift": "shift_l",
    "RightShift": "shift_r",
    "LeftControl": "ctrl_l",
    "RightControl": "ctrl_r",
    "LeftAlt": "alt_l",
    "RightAlt": "alt_r",
    "VolumeMute": "media_volume_mute",
    "VolumeDown": "media_volume_down",
    "VolumeUp": "media_volume_up",
    "MediaNext": "media_next",
    "MediaPrevious": "media_previous",
    "MediaPlay": "media_play_pause",
    **{f"F{idx}": f"f{idx}" for idx in range(1, 25)},
}

# Key codes are Windows virtual-key codes. Outside Windows, pynput reads
# ``KeyCode.vk`` as an X11 keysym or a macOS keycode, so keys without a
# pynput ``Key`` member go through these tables.
_NATIVE_KEY_CODES: Dict[str, Dict[str, int]] = {
    "x11": {
        **{f"NumPad{digit}": 0xFFB0 + digit for digit in range(10)},
        **{f"F{idx}": 0xFFBE + idx - 1 for idx in range(1, 25)},
        "Back": 0x1008FF26,
        "Forward": 0x1008FF27,
        "Refresh": 0x1008FF29,
        "MediaStop": 0x1008FF15,
    },
    "darwin": {
        "NumPad0": 0x52,
        "NumPad1": 0x53,
        "NumPad2": 0x54,
        "NumPad3": 0x55,
        "NumPad4": 0x56,
        "NumPad5": 0x57,
        "NumPad6": 0x58,
        "NumPad7": 0x59,
        "NumPad8": 0x5B,
        "NumPad9": 0x5C,
    },
}


def native_key_code(key: KeyboardKey, platform: Optional[str] = None) -> int:
    """
    Code to hand to ``KeyCode.from_vk`` for ``key`` on ``platform``
    (defaults to ``sys.platform``).

    Windows takes the virtual-key code as is. Elsewhere only keys listed in
    the native tables have a code; ``OtherKey(n)`` is Windows only.
    """
    platform = platform or sys.platform
    if platform == "win32":
        return key.code
    table = _NATIVE_KEY_CODES["darwin" if platform == "darwin" else "x11"]
    if key.is_named and key.canonical_name in table:
        return table[key.canonical_name]
    raise BackendError(f"The {describe(key)} has no key code on {platform}")


_PYNPUT_MOUSE_BUTTONS: Dict[str, str] = {
    "LeftClick": "left",
    "MiddleClick": "middle",
    "RightClick": "right",
    "MouseBackward": "x1",
    "MouseForward": "x2",
}


class _HotkeyListener:
    """Watches one button with pynput listeners and counts presses through an Event."""

    STOP_POLL_INTERVAL = 0.1

    def __init__(self, backend: "PynputBackend", button: Button) -> None:
        self._backend = backend
        self._button = button
        self._pressed = threading.Event()
        self._listeners: List[Any] = []

    def start(self) -> None:
        if isinstance(self._button, KeyboardKey):
            target = self._backend.to_pynput_key(self._button)
            listener = keyboard.Listener(on_press=lambda key, *_: self._on_key(key, target))
        elif self._button.is_wheel:
            listener = mouse.Listener(on_scroll=self._on_scroll)
        else:
            target = self._backend.to_pynput_mouse(self._button)
            listener = mouse.Listener(
                on_click=lambda _x, _y, btn, pressed, *_: self._on_click(btn, pressed, target)
            )
        listener.daemon = True
        listener.start()
        self._listeners.append(listener)

    def wait(self, stop: Optional[threading.Event] = None) -> bool:
        """Block for one press. Returns False instead once ``stop`` is set."""
        if stop is None:
            self._pressed.wait()
        else:
            while not self._pressed.wait(self.STOP_POLL_INTERVAL):
                if stop.is_set():
                    return False
            if stop.is_set():
                return False
        self._pressed.clear()
        return True

    def stop(self) -> None:
        while self._listeners:
            listener = self._listeners.pop()
            listener.stop()

    def _on_key(self, key, target) -> None:
        if _same_key(key, target):
            self._pressed.set()

    def _on_click(self, btn, pressed: bool, target) -> None:
        if pressed and btn == target:
            self._pressed.set()

    def _on_scroll(self, _x, _y, _dx, dy, *_) -> None:
        if (dy > 0 and self._button == WHEEL_UP) or (dy < 0 and self._button == WHEEL_DOWN):
            self._pressed.set()


def _same_key(key, target) -> bool:
    if key == target:
        return True
    char = getattr(key, "char", None)
    target_char = getattr(target, "char", None)
    if char and target_char:
        return char.lower() == target_char.lower()
    vk = getattr(key, "vk", None)
    return vk is not None and vk == getattr(target, "vk", None)


class PynputBackend(InputBackend):
    """
    Injects input and watches hotkeys through pynput.

    Every named key works on Windows. On X11 and macOS, keys without a pynput
    ``Key`` member or a single-character name need an entry in the native
    code tables, otherwise they raise ``BackendError``.
    """

    def __init__(self, logger: Optional[StatusLogger] = None) -> None:
        if keyboard is None or mouse is None:
            raise BackendError("pynput backend not available; install pynput and run inside a desktop session")
        self._logger = logger or StatusLogger()
        self._keyboard = keyboard.Controller()
        self._mouse = mouse.Controller()

    # ---- conversions ----

    def to_pynput_key(self, key: KeyboardKey):
        name = key.canonical_name
        special = _PYNPUT_SPECIAL_KEYS.get(name)
        if special is not None and hasattr(keyboard.Key, special):
            return getattr(keyboard.Key, special)
        if key.is_named and len(name) == 1:
            return keyboard.KeyCode.from_char(name)
        return keyboard.KeyCode.from_vk(native_key_code(key))

    def to_pynput_mouse(self, button: MouseButton):
        attr = _PYNPUT_MOUSE_BUTTONS.get(button.canonical_name)
        if attr is None or not hasattr(mouse.Button, attr):
            raise BackendError(f"The {describe(button)} cannot be used with this backend")
        return getattr(mouse.Button, attr)

    # ---- injection ----

    def press(self, button: Button) -> None:
        if isinstance(button, KeyboardKey):
            self._keyboard.press(self.to_pynput_key(button))
        elif button.is_wheel:
            self._logger.log_warning(f"Cannot hold the {describe(button)}, ignored")
        else:
            self._mouse.press(self.to_pynput_mouse(button))

    def release(self, button: Button) -> None:
        if isinstance(button, KeyboardKey):
            self._keyboard.release(self.to_pynput_key(button))
        elif button.is_wheel:
            self._logger.log_warning(f"Cannot release the {describe(button)}, ignored")
        else:
            self._mouse.release(self.to_pynput_mouse(button))

    def tap(self, button: Button) -> None:
        if isinstance(button, KeyboardKey):
            key = self.to_pynput_key(button)
            self._keyboard.press(key)
            self._keyboard.release(key)
        elif button.is_wheel:
            self.scroll(1 if button == WHEEL_UP else -1)
        else:
            self._mouse.click(self.to_pynput_mouse(button))

    def move_abs(self, x: int, y: int) -> None:
        self._mouse.position = (int(x), int(y))

    def scroll(self, amount: int) -> None:
        self._mouse.scroll(0, int(amount))

    def send_text(self, text: str) -> None:
        self._keyboard.type(text)

    def read_clipboard(self) -> Optional[str]:
        import pyperclip  # local import, the clipboard may be unavailable on headless systems

        try:
            content = pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            self._logger.log_warning(f"Clipboard not readable: {exc}")
            return None
        return content or None

    def screen_size(self) -> Tuple[int, int]:
        import pyautogui  # local import to avoid requiring a display at import time

        width, height = pyautogui.size()
        return int(width), int(height)

    # ---- hotkeys ----

    def await_hotkey(self, button: Button) -> None:
        listener = _HotkeyListener(self, button)
        listener.start()
        try:
            listener.wait()
        finally:
            listener.stop()

    def check_hotkey(self, button: Button) -> None:
        if isinstance(button, KeyboardKey):
            self.to_pynput_key(button)
        elif not button.is_wheel:
            self.to_pynput_mouse(button)

    def register_hotkey_loop(self, button: Button, callback: Callable[[], None],
                             name: Optional[str] = None,
                             stop: Optional[threading.Event] = None) -> threading.Thread:
        listener = _HotkeyListener(self, button)
        listener.start()

        def loop() -> None:
            try:
                while listener.wait(stop):
                    callback()
            finally:
                listener.stop()

        thread = threading.Thread(target=loop, name=name or f"Hotkey-{button}", daemon=True)
        thread.start()
        return thread
