"""Bulk import: image/text -> preview cards -> store.

An ImportSession holds the preview between extraction and saving. While a
run is in progress, further runs are ignored and return None.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from .errors import OCRError, StorageError
from .ids import IdGenerator
from .ocr import DEFAULT_MAX_IMAGE_SIZE, TextRecognizer, prepare_image
from .parser import DEFAULT_IMPORT_CATEGORY, parse_text_to_cards
from .sanitize import MAX_TEXT_LENGTH, sanitize
from .store import CardStore
from .types import Card
from .utils import record_error

_EDITABLE_FIELDS = ("question", "answer", "category")


def _is_complete(card: Card) -> bool:
    return bool(card.question and card.answer and card.category)


@dataclass
class ImportSession:
    store: CardStore
    recognizer: TextRecognizer | None = None
    category: str = ""
    default_category: str = DEFAULT_IMPORT_CATEGORY
    max_image_size: int = DEFAULT_MAX_IMAGE_SIZE
    max_text_length: int = MAX_TEXT_LENGTH
    errors_path: Path | None = None
    ids: IdGenerator = field(default_factory=IdGenerator)

    in_progress: bool = False
    extracted: list[Card] = field(default_factory=list)

    def _parse(self, text: str) -> list[Card]:
        cards = parse_text_to_cards(
            text,
            self.category,
            ids=self.ids,
            default_category=self.default_category,
            max_text_length=self.max_text_length,
        )
        return [c for c in cards if _is_complete(c)]

    def run_text(self, text: str) -> list[Card] | None:
        if self.in_progress:
            return None
        self.in_progress = True
        try:
            self.extracted = self._parse(text)
            return list(self.extracted)
        finally:
            self.in_progress = False

    def run_image(self, image: Image.Image) -> list[Card] | None:
        """OCR the image and parse the text. Returns None if a run is already active.

        OCR errors are journaled, clear the preview and propagate.
        """
        if self.recognizer is None:
            raise ValueError("run_image requires a recognizer")
        if self.in_progress:
            return None

        self.in_progress = True
        self.extracted = []
        try:
            text = self.recognizer.recognize(prepare_image(image, self.max_image_size))
            self.extracted = self._parse(text)
            return list(self.extracted)
        except OCRError as e:
            record_error(self.errors_path, stage="import", message=f"{type(e).__name__}: {e}")
            self.extracted = []
            raise
        finally:
            self.in_progress = False

    def edit(self, index: int, field_name: str, value: str) -> Card:
        if field_name not in _EDITABLE_FIELDS:
            raise ValueError(f"not an editable field: {field_name}")
        card = self.extracted[index]
        setattr(card, field_name, sanitize(value))
        return card

    def remove(self, index: int) -> Card:
        return self.extracted.pop(index)

    def save_all(self) -> int:
        """Persist the preview (incomplete cards are left out) and clear it."""
        ready = [c for c in self.extracted if _is_complete(c)]
        if not ready:
            return 0
        try:
            added = self.store.add_many(ready)
        except StorageError as e:
            record_error(self.errors_path, stage="import", message=f"{type(e).__name__}: {e}")
            raise
        self.extracted = []
        return added
