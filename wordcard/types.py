from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CARD_FIELDS = ("id", "category", "question", "answer")


@dataclass
class Card:
    id: str
    category: str
    question: str
    answer: str
    # keys this version does not know about; written back untouched
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, card_id: str | None = None) -> "Card":
        # Legacy records may lack any of the text fields.
        return cls(
            id=str(card_id if card_id is not None else data.get("id") or ""),
            category=str(data.get("category") or ""),
            question=str(data.get("question") or ""),
            answer=str(data.get("answer") or ""),
            extra={k: v for k, v in data.items() if k not in CARD_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "category": self.category,
            "question": self.question,
            "answer": self.answer,
        }


class LoadStatus(str, Enum):
    OK = "ok"
    ABSENT = "absent"  # nothing stored yet
    RECOVERED = "recovered"  # blob was corrupt; degraded to empty


@dataclass
class LoadResult:
    cards: list[Card] = field(default_factory=list)
    status: LoadStatus = LoadStatus.OK
    migrated: int = 0
    dropped: int = 0  # non-object entries discarded while migrating
    save_error: Exception | None = None

    @property
    def recovered(self) -> bool:
        return self.status is LoadStatus.RECOVERED
