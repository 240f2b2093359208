"""
Entry point for running LexiDeck as a module.

Usage:
    python -m lexideck.delivery study
    python -m lexideck.delivery stats
    python -m lexideck.delivery --help
"""
from .lexideck_cli import main

if __name__ == "__main__":
    main()
