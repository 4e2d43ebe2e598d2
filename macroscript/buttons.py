"""
Keyboard keys and mouse buttons addressed by scripts.

A ``Button`` is either a ``KeyboardKey`` or a ``MouseButton``. Both are small
immutable values identified by a numeric code; the canonical name is the only
textual form written to disk and ``from_name(str(button)) == button`` holds for
every code, including unnamed ones (``OtherKey(<n>)`` / ``MouseButton(<n>)``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Union


class ButtonKind(Enum):
    """Which input device a button belongs to."""
    KEYBOARD = "keyboard"
    MOUSE = "mouse"


# (canonical name, Windows virtual-key code)
KEYBOARD_CANONICAL_NAMES: List[Tuple[str, int]] = [
    ("Backspace", 0x08),
    ("Tab", 0x09),
    ("Enter", 0x0D),
    ("Escape", 0x1B),
    ("Space", 0x20),
    ("PageUp", 0x21),
    ("PageDown", 0x22),
    ("End", 0x23),
    ("Home", 0x24),
    ("Left", 0x25),
    ("Up", 0x26),
    ("Right", 0x27),
    ("Down", 0x28),
    ("Insert", 0x2D),
    ("Delete", 0x2E),
    *[(str(digit), 0x30 + digit) for digit in range(10)],
    *[(chr(ord("a") + idx), 0x41 + idx) for idx in range(26)],
    ("LeftSuper", 0x5B),
    ("RightSuper", 0x5C),
    *[(f"NumPad{digit}", 0x60 + digit) for digit in range(10)],
    *[(f"F{idx}", 0x6F + idx) for idx in range(1, 25)],
    ("CapsLock", 0x14),
    ("NumLock", 0x90),
    ("ScrollLock", 0x91),
    ("LeftShift", 0xA0),
    ("RightShift", 0xA1),
    ("LeftControl", 0xA2),
    ("RightControl", 0xA3),
    ("LeftAlt", 0xA4),
    ("RightAlt", 0xA5),
    ("Back", 0xA6),
    ("Forward", 0xA7),
    ("Refresh", 0xA8),
    ("VolumeMute", 0xAD),
    ("VolumeDown", 0xAE),
    ("VolumeUp", 0xAF),
    ("MediaNext", 0xB0),
    ("MediaPrevious", 0xB1),
    ("MediaStop", 0xB2),
    ("MediaPlay", 0xB3),
    # OEM keys, Swiss-French layout
    ("è", 0xBA),
    (",", 0xBC),
    ("-", 0xBD),
    (".", 0xBE),
    ("§", 0xBF),
    ("\"", 0xC0),
    ("'", 0xDB),
    ("à", 0xDC),
    ("^", 0xDD),
    ("é", 0xDE),
    ("$", 0xDF),
    ("<", 0xE2),
]

KEYBOARD_EXTRA_NAMES: Dict[str, int] = {
    "leftwindows": 0x5B,
    "leftcommand": 0x5B,
}

MOUSE_CANONICAL_NAMES: List[Tuple[str, int]] = [
    ("LeftClick", 1),
    ("MiddleClick", 2),
    ("RightClick", 3),
    ("MouseBackward", 4),
    ("MouseForward", 5),
    ("MousewheelUp", 6),
    ("MousewheelDown", 7),
]

_KEY_BY_NAME = {name.lower(): code for name, code in KEYBOARD_CANONICAL_NAMES}
_KEY_BY_NAME.update(KEYBOARD_EXTRA_NAMES)
_KEY_NAME_BY_CODE = {code: name for name, code in KEYBOARD_CANONICAL_NAMES}

_MOUSE_BY_NAME = {name.lower(): code for name, code in MOUSE_CANONICAL_NAMES}
_MOUSE_NAME_BY_CODE = {code: name for name, code in MOUSE_CANONICAL_NAMES}

_OTHER_KEY_RE = re.compile(r"OtherKey\((\d+)\)", re.IGNORECASE)
_OTHER_MOUSE_RE = re.compile(r"MouseButton\((\d+)\)", re.IGNORECASE)


@dataclass(frozen=True)
class KeyboardKey:
    """A keyboard key identified by its virtual-key code."""
    code: int

    kind = ButtonKind.KEYBOARD

    @property
    def canonical_name(self) -> str:
        return _KEY_NAME_BY_CODE.get(self.code, f"OtherKey({self.code})")

    @property
    def is_named(self) -> bool:
        return self.code in _KEY_NAME_BY_CODE

    def __str__(self) -> str:
        return self.canonical_name

    @staticmethod
    def from_name(name: str) -> "KeyboardKey":
        """Parse a canonical name (any case) or the ``OtherKey(<n>)`` form."""
        code = _KEY_BY_NAME.get(name.lower())
        if code is not None:
            return KeyboardKey(code)
        match = _OTHER_KEY_RE.fullmatch(name.strip())
        if match:
            return KeyboardKey(int(match.group(1)))
        raise ValueError(f"Unknown keyboard key '{name}'")

    @staticmethod
    def all_named() -> List["KeyboardKey"]:
        return [KeyboardKey(code) for _name, code in KEYBOARD_CANONICAL_NAMES]


@dataclass(frozen=True)
class MouseButton:
    """A mouse button identified by a small numeric code."""
    code: int

    kind = ButtonKind.MOUSE

    @property
    def canonical_name(self) -> str:
        return _MOUSE_NAME_BY_CODE.get(self.code, f"MouseButton({self.code})")

    @property
    def is_wheel(self) -> bool:
        return self in (WHEEL_UP, WHEEL_DOWN)

    def __str__(self) -> str:
        return self.canonical_name

    @staticmethod
    def from_name(name: str) -> "MouseButton":
        """Parse a canonical name (any case) or the ``MouseButton(<n>)`` form."""
        code = _MOUSE_BY_NAME.get(name.lower())
        if code is not None:
            return MouseButton(code)
        match = _OTHER_MOUSE_RE.fullmatch(name.strip())
        if match:
            return MouseButton(int(match.group(1)))
        raise ValueError(f"Unknown mouse button '{name}'")

    @staticmethod
    def all_named() -> List["MouseButton"]:
        return [MouseButton(code) for _name, code in MOUSE_CANONICAL_NAMES]


WHEEL_UP = MouseButton(6)
WHEEL_DOWN = MouseButton(7)

Button = Union[KeyboardKey, MouseButton]


def describe(button: Button) -> str:
    """Human readable form used in log and error messages."""
    return f"{button.kind.value} '{button.canonical_name}'"
