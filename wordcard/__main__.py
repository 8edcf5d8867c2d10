"""Entry point for running wordcard as a module.

Usage:
    python -m wordcard <command> [options]
"""
from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
