"""
Main entry point for macroscript.

Usage:
    python main.py run ./my_app 3
"""

from macroscript.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
