"""
Command line interface.

Usage:
    macroscript new <path>                 create an application folder
    macroscript run <path> [repetitions]   run <path>/main.ba
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .backend import PynputBackend
from .engine import Engine, RunOutcome
from .errors import ConfigError, ScriptError
from .keymap import ButtonMapManager, ButtonMaps
from .logger import LogEntry, StatusLogger
from .parser import Parser


MAIN_FILENAME = "main.ba"
LOG_DIR = Path.home() / ".macroscript" / "logs"

SCAFFOLD = """\
// Screen resolution the coordinates below were recorded on
define RESOLUTION = {width},{height}
// Pause after every action, in milliseconds
define DELAY_BETWEEN_ACTIONS = 50
// Pressing this key stops the whole program
define GLOBAL_HALT_KEY = Escape

Println "Hello from macroscript"
Move {center_x},{center_y}
Sleep 0.5
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="macroscript", description="Mouse and keyboard automation scripts")
    parser.add_argument("-v", "--verbose", action="store_true", help="echo every log entry to stderr")
    subcommands = parser.add_subparsers(dest="command")

    new = subcommands.add_parser("new", aliases=["create"], help="create a new application")
    new.add_argument("path", type=Path, help="path or name of the new application")

    run = subcommands.add_parser("run", aliases=["start", "execute", "launch"],
                                 help="run the specified application")
    run.add_argument("path", type=Path, help="path of the application folder")
    run.add_argument("repetitions", type=int, nargs="?", default=1,
                     help="number of times to repeat the script")
    return parser


def create_application(path: Path, resolution=(1920, 1080), logger: Optional[StatusLogger] = None) -> Path:
    """Create ``path`` with a starter script and the default key and mouse maps."""
    logger = logger or StatusLogger()
    if path.exists():
        raise ConfigError(f"'{path}' already exists")

    path.mkdir(parents=True)
    width, height = resolution
    (path / MAIN_FILENAME).write_text(
        SCAFFOLD.format(width=width, height=height, center_x=width // 2, center_y=height // 2),
        encoding="utf-8",
    )
    ButtonMapManager(path, logger).save(ButtonMaps.default())
    logger.log_info(f"Created application '{path}'")
    return path


def run_application(path: Path, repetitions: int, backend, logger: StatusLogger) -> RunOutcome:
    """Load the maps and script of ``path``, build the engine and run it."""
    if not path.is_dir():
        raise ConfigError(f"'{path}' is not an application folder")
    if path.suffix:
        raise ConfigError(f"Application folder required, got file path '{path}' instead")
    if repetitions < 0:
        raise ConfigError("repetitions cannot be negative")

    maps = ButtonMapManager(path, logger).load()
    main_file = path / MAIN_FILENAME
    try:
        source = main_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read '{main_file}': {exc}") from exc

    parser = Parser(source, maps)
    try:
        expressions = parser.process()
    finally:
        if parser.lexer is not None:
            for diagnostic in parser.lexer.diagnostics:
                logger.log_warning(diagnostic)

    resolution = backend.screen_size()
    logger.log_info(f"primary monitor {resolution[0]}x{resolution[1]}")
    engine = Engine(expressions, resolution, backend, logger)
    return engine.start(repetitions)


def _echo(entry: LogEntry) -> None:
    print(entry, file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command is None:
        build_parser().print_help()
        return 2

    logger = StatusLogger(sink=_echo, sink_level="DEBUG" if args.verbose else "WARNING")
    logger.log_info(datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    try:
        if args.command in ("new", "create"):
            create_application(args.path, logger=logger)
            print(f"Created {args.path}")
            return 0

        backend = PynputBackend(logger)
        outcome = run_application(args.path.absolute(), args.repetitions, backend, logger)
        print(f"DONE: {outcome.value}")
        return 0
    except ScriptError as exc:
        # the sink echoes errors to stderr
        logger.log_error(str(exc))
        return 1
    finally:
        _export_run_log(logger)


def _export_run_log(logger: StatusLogger) -> None:
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
    except OSError:
        return
    logger.export_logs_to_file(str(LOG_DIR / datetime.now().strftime("%Y_%m_%d-%H_%M_%S.log")))
