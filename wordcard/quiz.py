from __future__ import annotations

import random
from dataclasses import dataclass, field

from .markup import render
from .store import CardStore, shuffle
from .types import Card


@dataclass
class QuizSession:
    """One pass over the store's cards in shuffled order."""

    cards: list[Card] = field(default_factory=list)
    position: int = 0
    answer_shown: bool = False

    @classmethod
    def start(cls, store: CardStore, rng: random.Random | None = None) -> "QuizSession":
        return cls(cards=shuffle(store.load(), rng))

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def finished(self) -> bool:
        return self.position >= len(self.cards)

    def current(self) -> Card | None:
        if self.finished:
            return None
        return self.cards[self.position]

    def question_html(self) -> str:
        card = self.current()
        return render(card.question) if card else ""

    def answer_html(self) -> str:
        card = self.current()
        if card is None or not self.answer_shown:
            return ""
        return render(card.answer)

    def reveal(self) -> None:
        self.answer_shown = True

    def advance(self) -> Card | None:
        """Move to the next card and hide its answer; None once finished."""
        if not self.finished:
            self.position += 1
        self.answer_shown = False
        return self.current()
