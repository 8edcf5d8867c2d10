"""Superscript/subscript markup for card text.

    x^2      -> x<span class="superscript">2</span>
    x^{-5}   -> x<span class="superscript">-5</span>
    H_2O     -> H<span class="subscript">2</span>O
    C_{12}   -> C<span class="subscript">12</span>

Input is HTML-escaped before any substitution, so user text can never
introduce tags of its own.
"""
from __future__ import annotations

import re

from .sanitize import escape_html

# One "character" after ^/_ : an escaped entity counts as one.
_ONE = r"(&(?:[a-zA-Z]+|#[0-9]+|#x[0-9a-fA-F]+);|.)"

_SUP_BRACED = re.compile(r"\^\{([^}]+)\}")
_SUP_SINGLE = re.compile(r"\^" + _ONE)
_SUB_BRACED = re.compile(r"_\{([^}]+)\}")
_SUB_SINGLE = re.compile(r"_" + _ONE)

SUP_TEMPLATE = r'<span class="superscript">\1</span>'
SUB_TEMPLATE = r'<span class="subscript">\1</span>'


def render(text: str | None) -> str:
    s = escape_html(text)
    s = _SUP_BRACED.sub(SUP_TEMPLATE, s)
    s = _SUP_SINGLE.sub(SUP_TEMPLATE, s)
    s = _SUB_BRACED.sub(SUB_TEMPLATE, s)
    s = _SUB_SINGLE.sub(SUB_TEMPLATE, s)
    return s
