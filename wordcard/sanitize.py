from __future__ import annotations

import html
import re

DEFAULT_MAX_LENGTH = 1000
MAX_TEXT_LENGTH = 100_000

_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
# keeps \t (0x09) and \n (0x0a)
_CONTROL_MULTILINE_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def sanitize(text: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Strip ASCII control characters and DEL, trim, then cut to max_length.

    Idempotent: sanitize(sanitize(x)) == sanitize(x).
    """
    if not text:
        return ""
    cleaned = _CONTROL_RE.sub("", str(text)).strip()
    # truncation can expose trailing whitespace
    return cleaned[:max_length].strip()


def sanitize_text(text: str | None, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Multi-line variant of sanitize(): newlines and tabs survive."""
    if not text:
        return ""
    s = str(text).replace("\r\n", "\n").replace("\r", "\n")
    s = _CONTROL_MULTILINE_RE.sub("", s).strip()
    return s[:max_length].strip()


def escape_html(text: str | None) -> str:
    if not text:
        return ""
    return html.escape(str(text), quote=True)
