"""Word-card study tool (flashcards).

This package focuses on:
- a persisted card collection (create/delete/migrate)
- turning imported or OCR'd text into cards
- a shuffled quiz loop with super/subscript rendering

Rendering and UI wiring live outside the core modules.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
