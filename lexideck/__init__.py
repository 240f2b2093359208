"""
LexiDeck: terminal vocabulary trainer.

Subpackages:
- core: mastery state machine, review queue, shared errors
- delivery: catalog, session selection, enrichment, persistence and the CLI
"""

__version__ = "1.0.0"
