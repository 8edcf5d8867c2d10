"""Card collection persisted as one JSON array under a single storage key.

Every mutation is load -> rebuild list -> write the whole blob. There is no
partial write and no locking: two processes sharing a storage root follow
last-writer-wins.
"""
from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence, TypeVar

from .errors import CardValidationError
from .ids import IdGenerator
from .sanitize import DEFAULT_MAX_LENGTH, sanitize
from .storage import KeyValueStorage
from .types import Card, LoadResult, LoadStatus
from .utils import record_error

CARDS_KEY = "MEMORY"
DEFAULT_CATEGORY = "未分類"

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Fisher-Yates shuffle into a new list; the input is left untouched."""
    rng = rng or random.Random()
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def _migrate(raw: list[Any], ids: IdGenerator) -> tuple[list[dict[str, Any]], int, int]:
    """Give every record a unique id. All other keys and values are kept as stored."""
    records: list[dict[str, Any]] = []
    seen: set[str] = set()
    migrated = 0
    dropped = 0
    for item in raw:
        if not isinstance(item, dict):
            dropped += 1
            continue
        card_id = item.get("id")
        # duplicated ids are re-issued too
        if not card_id or not isinstance(card_id, str) or card_id in seen:
            card_id = ids.generate()
            item = {**item, "id": card_id}
            migrated += 1
        seen.add(card_id)
        records.append(item)
    return records, migrated, dropped


@dataclass
class CardStore:
    storage: KeyValueStorage
    errors_path: Path | None = None
    ids: IdGenerator = field(default_factory=IdGenerator)
    default_category: str = DEFAULT_CATEGORY
    max_field_length: int = DEFAULT_MAX_LENGTH
    key: str = CARDS_KEY

    # -- reading ------------------------------------------------------------

    def load_result(self) -> LoadResult:
        """Read and migrate the stored cards. Never raises.

        Cards without an id get one; the migrated list is written back once.
        If that write fails the error is journaled and returned on the result,
        and the migrated cards are still returned.
        """
        blob = self.storage.get(self.key)
        if blob is None:
            return LoadResult(status=LoadStatus.ABSENT)

        try:
            raw = json.loads(blob)
        except ValueError as e:
            record_error(self.errors_path, stage="load", message=f"corrupt_json: {e}")
            return LoadResult(status=LoadStatus.RECOVERED)

        if not isinstance(raw, list):
            record_error(self.errors_path, stage="load", message=f"not_a_list: {type(raw).__name__}")
            return LoadResult(status=LoadStatus.RECOVERED)

        records, migrated, dropped = _migrate(raw, self.ids)
        cards = [Card.from_dict(r) for r in records]
        result = LoadResult(cards=cards, migrated=migrated, dropped=dropped)
        if migrated or dropped:
            try:
                self._write(records)
            except Exception as e:
                record_error(self.errors_path, stage="migrate", message=f"{type(e).__name__}: {e}")
                result.save_error = e
        return result

    def load(self) -> list[Card]:
        return self.load_result().cards

    def categories(self) -> list[str]:
        return sorted({c.category for c in self.load()})

    def by_category(self) -> dict[str, list[Card]]:
        cards = self.load()
        grouped: dict[str, list[Card]] = {name: [] for name in sorted({c.category for c in cards})}
        for c in cards:
            grouped[c.category].append(c)
        return grouped

    # -- writing ------------------------------------------------------------

    def save(self, cards: Iterable[Card]) -> None:
        """Replace the whole stored sequence. Raises StorageError kinds."""
        self._write([c.to_dict() for c in cards])

    def _write(self, records: list[dict[str, Any]]) -> None:
        self.storage.set(self.key, json.dumps(records, ensure_ascii=False))

    def create(self, category: str | None, question: str | None, answer: str | None) -> Card:
        q = sanitize(question, self.max_field_length)
        a = sanitize(answer, self.max_field_length)
        if not q or not a:
            raise CardValidationError("question and answer are required")
        cat = sanitize(category, self.max_field_length) or self.default_category

        card = Card(id=self.ids.generate(), category=cat, question=q, answer=a)
        cards = self.load()
        cards.append(card)
        self.save(cards)
        return card

    def add_many(self, new_cards: Iterable[Card]) -> int:
        """Append already-built cards (e.g. from an import). Missing ids are filled."""
        cards = self.load()
        known = {c.id for c in cards}
        added = 0
        for c in new_cards:
            if not c.id or c.id in known:
                c = Card(
                    id=self.ids.generate(),
                    category=c.category,
                    question=c.question,
                    answer=c.answer,
                    extra=dict(c.extra),
                )
            known.add(c.id)
            cards.append(c)
            added += 1
        self.save(cards)
        return added

    def delete(self, id_or_index: str | int) -> bool:
        """Remove by id (str) or by legacy position (int). Unknown targets are a no-op.

        Returns True when a card was removed.
        """
        if isinstance(id_or_index, bool):
            raise TypeError("delete expects a card id or an index")
        cards = self.load()

        kept = list(cards)
        if isinstance(id_or_index, int):
            if 0 <= id_or_index < len(kept):
                del kept[id_or_index]
        else:
            for i, c in enumerate(kept):
                if c.id == str(id_or_index):
                    del kept[i]
                    break

        self.save(kept)
        return len(kept) != len(cards)

    def clear(self) -> None:
        self.storage.remove(self.key)
