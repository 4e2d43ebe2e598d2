"""
macroscript: a small scripting language for mouse and keyboard automation.

Key parts
---------
- lexer / parser: script text -> list of expressions
- expressions:    the program representation and how each node runs
- engine:         hotkey tasks, halt watcher and the cyclic executor
- backend:        pynput-based input injection and global hotkeys
"""

from .engine import Engine, RunOutcome
from .keymap import ButtonMapManager, ButtonMaps
from .parser import Parser, parse

__all__ = ["Engine", "RunOutcome", "ButtonMapManager", "ButtonMaps", "Parser", "parse"]
