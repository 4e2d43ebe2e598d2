"""Name tables used to resolve the words of a script into buttons, and their persistence."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .buttons import Button, KeyboardKey, MouseButton
from .errors import ConfigError
from .logger import StatusLogger


KEYMAP_FILENAME = "keymap.json"
MOUSEMAP_FILENAME = "mousemap.json"

# Aliases carried over from the first releases of the tool, many of them French.
DEFAULT_KEY_ALIASES: List[Tuple[str, str]] = [
    ("esc", "Escape"),
    ("espace", "Space"),
    ("pgup", "PageUp"),
    ("pgdown", "PageDown"),
    ("leftarrow", "Left"),
    ("gauche", "Left"),
    ("flèchegauche", "Left"),
    ("flechegauche", "Left"),
    ("uparrow", "Up"),
    ("haut", "Up"),
    ("flechehaut", "Up"),
    ("rightarrow", "Right"),
    ("droite", "Right"),
    ("flechedroite", "Right"),
    ("downarrow", "Down"),
    ("bas", "Down"),
    ("flechebas", "Down"),
    ("ins", "Insert"),
    ("del", "Delete"),
    *[(f"nr{digit}", str(digit)) for digit in range(10)],
    *[(f"np{digit}", f"NumPad{digit}") for digit in range(10)],
    ("lsuper", "LeftSuper"),
    ("super", "LeftSuper"),
    ("windows", "LeftSuper"),
    ("win", "LeftSuper"),
    ("lshift", "LeftShift"),
    ("shift", "LeftShift"),
    ("lcontrol", "LeftControl"),
    ("lctrl", "LeftControl"),
    ("control", "LeftControl"),
    ("ctrl", "LeftControl"),
    ("lalt", "LeftAlt"),
    ("alt", "LeftAlt"),
    ("browserback", "Back"),
    ("browserforward", "Forward"),
    ("browserrefresh", "Refresh"),
    ("volmute", "VolumeMute"),
    ("voldown", "VolumeDown"),
    ("volup", "VolumeUp"),
    ("virgule", ","),
    ("comma", ","),
    ("point", "."),
    ("period", "."),
    ("tiret", "-"),
    ("moins", "-"),
    ("dash", "-"),
    ("minus", "-"),
]

DEFAULT_MOUSE_ALIASES: List[Tuple[str, str]] = [
    ("lmb", "LeftClick"),
    ("rmb", "RightClick"),
    ("mmb", "MiddleClick"),
    ("x1", "MouseBackward"),
    ("x2", "MouseForward"),
]


@dataclass(frozen=True)
class ButtonMaps:
    """
    Read-only lookup tables from script words to buttons.

    Keys of both tables are lowercase. Built once at startup and handed to the
    parser explicitly.
    """
    keyboard: Dict[str, KeyboardKey] = field(default_factory=dict)
    mouse: Dict[str, MouseButton] = field(default_factory=dict)

    def resolve(self, word: str) -> Button:
        """Lowercase ``word`` and look it up in the keyboard table, then the mouse table."""
        name = word.lower()
        key = self.keyboard.get(name)
        if key is not None:
            return key
        button = self.mouse.get(name)
        if button is not None:
            return button
        raise KeyError(f"No key or mouse button associated with the name '{name}'")

    @staticmethod
    def default() -> "ButtonMaps":
        return ButtonMaps(keyboard=default_keyboard_table(), mouse=default_mouse_table())


def default_keyboard_table() -> Dict[str, KeyboardKey]:
    table = {key.canonical_name.lower(): key for key in KeyboardKey.all_named()}
    for alias, canonical in DEFAULT_KEY_ALIASES:
        table[alias] = KeyboardKey.from_name(canonical)
    return table


def default_mouse_table() -> Dict[str, MouseButton]:
    table = {button.canonical_name.lower(): button for button in MouseButton.all_named()}
    for alias, canonical in DEFAULT_MOUSE_ALIASES:
        table[alias] = MouseButton.from_name(canonical)
    return table


def table_to_pairs(table: Dict[str, Button]) -> List[List[str]]:
    """Serialize a table as sorted ``[alias, canonical_name]`` pairs."""
    return [[alias, button.canonical_name] for alias, button in sorted(table.items())]


class ButtonMapManager:
    """Handles loading and saving the key and mouse maps of an application directory."""

    def __init__(self, app_dir: Path, logger: Optional[StatusLogger] = None) -> None:
        self._app_dir = Path(app_dir)
        self._logger = logger or StatusLogger()

    @property
    def keymap_path(self) -> Path:
        return self._app_dir / KEYMAP_FILENAME

    @property
    def mousemap_path(self) -> Path:
        return self._app_dir / MOUSEMAP_FILENAME

    def load(self) -> ButtonMaps:
        """Load both tables; a missing file falls back to the built-in defaults."""
        keyboard = self._load_table(self.keymap_path, KeyboardKey.from_name, default_keyboard_table)
        self._logger.log_debug(f"KeyMap initialized with {len(keyboard)} names")
        mouse = self._load_table(self.mousemap_path, MouseButton.from_name, default_mouse_table)
        self._logger.log_debug(f"MouseMap initialized with {len(mouse)} names")
        return ButtonMaps(keyboard=keyboard, mouse=mouse)

    def save(self, maps: ButtonMaps) -> None:
        """Persist both tables atomically to disk."""
        self._write_json(self.keymap_path, table_to_pairs(maps.keyboard))
        self._write_json(self.mousemap_path, table_to_pairs(maps.mouse))

    def _load_table(self, path: Path, parse, default_factory) -> Dict:
        if not path.exists():
            self._logger.log_warning(f"'{path}' not found, using the default table")
            return default_factory()

        try:
            raw_data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Failed to read '{path}': {exc}") from exc

        if not isinstance(raw_data, list):
            raise ConfigError(f"'{path}' must contain a list of [name, button] pairs")

        table = {}
        for entry in raw_data:
            if not (isinstance(entry, list) and len(entry) == 2
                    and all(isinstance(part, str) for part in entry)):
                raise ConfigError(f"Invalid entry {entry!r} in '{path}'")
            alias, canonical = entry
            try:
                table[alias.lower()] = parse(canonical)
            except ValueError as exc:
                raise ConfigError(f"Invalid entry {entry!r} in '{path}': {exc}") from exc
        return table

    @staticmethod
    def _write_json(path: Path, payload) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)
