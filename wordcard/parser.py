"""Turn free-form (often OCR'd) text into question/answer cards.

Each non-empty line goes through the matchers below in order; the first one
that produces a pair wins:

1. separator     apple→りんご / apple:りんご / apple-りんご
2. whitespace    apple りんご / apple<TAB>りんご
3. paired lines  apple NEWLINE りんご   (both lines single tokens)

A matcher returns the (question, answer) pair plus the number of lines it
consumed, or None. Lines nobody matches are skipped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Sequence

from .ids import IdGenerator
from .sanitize import MAX_TEXT_LENGTH, sanitize, sanitize_text
from .types import Card

DEFAULT_IMPORT_CATEGORY = "英単語"

# arrow, ASCII/full-width colon, ASCII/full-width hyphen
SEPARATORS_RE = re.compile(r"[→:：\-－]")
WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Match:
    question: str
    answer: str
    consumed: int = 1


Matcher = Callable[[Sequence[str], int], Match | None]


def _tokens(line: str) -> list[str]:
    return [t for t in WHITESPACE_RE.split(line) if t]


def match_separator(lines: Sequence[str], i: int) -> Match | None:
    line = lines[i]
    if not SEPARATORS_RE.search(line):
        return None
    parts = [p.strip() for p in SEPARATORS_RE.split(line)]
    parts = [p for p in parts if p]
    if len(parts) < 2:
        return None
    return Match(question=parts[0], answer=" ".join(parts[1:]))


def match_whitespace(lines: Sequence[str], i: int) -> Match | None:
    parts = _tokens(lines[i])
    if len(parts) < 2:
        return None
    return Match(question=parts[0], answer=" ".join(parts[1:]))


def match_paired_lines(lines: Sequence[str], i: int) -> Match | None:
    if i + 1 >= len(lines):
        return None
    here = _tokens(lines[i])
    nxt = _tokens(lines[i + 1])
    if len(here) == 1 and len(nxt) == 1:
        return Match(question=here[0], answer=nxt[0], consumed=2)
    return None


MATCHERS: tuple[Matcher, ...] = (match_separator, match_whitespace, match_paired_lines)


def split_lines(text: str | None, max_length: int = MAX_TEXT_LENGTH) -> list[str]:
    clean = sanitize_text(text, max_length)
    return [ln.strip() for ln in clean.split("\n") if ln.strip()]


def extract_pairs(lines: Sequence[str], matchers: Sequence[Matcher] = MATCHERS) -> list[Match]:
    out: list[Match] = []
    i = 0
    while i < len(lines):
        for m in matchers:
            hit = m(lines, i)
            if hit is not None:
                out.append(hit)
                i += hit.consumed
                break
        else:
            i += 1
    return out


def resolve_category(category: str | None, default: str = DEFAULT_IMPORT_CATEGORY) -> str:
    return sanitize(category) or default


def parse_text_to_cards(
    text: str | None,
    category: str | None = None,
    *,
    ids: IdGenerator | None = None,
    default_category: str = DEFAULT_IMPORT_CATEGORY,
    max_text_length: int = MAX_TEXT_LENGTH,
) -> list[Card]:
    """Parse raw text into cards, in line order. Never raises on bad lines."""
    ids = ids or IdGenerator()
    cat = resolve_category(category, default_category)
    lines = split_lines(text, max_text_length)
    return [
        Card(id=ids.generate(), category=cat, question=m.question, answer=m.answer)
        for m in extract_pairs(lines)
    ]
