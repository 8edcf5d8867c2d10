"""Card identifier generation.

Ids come from uuid4 when the platform can supply random bytes. Otherwise a
fallback id is built from a timestamp plus two independent random draws,
joined with "-" (never part of the base36 alphabet). With no random source at
all, a process-wide counter takes the place of the random parts.
"""
from __future__ import annotations

import itertools
import os
import secrets
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_counter = itertools.count()


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_ALPHABET[r])
    return "".join(reversed(out))


@dataclass
class IdGenerator:
    uuid_factory: Callable[[], uuid.UUID] | None = uuid.uuid4
    random_bits: Callable[[int], int] | None = secrets.randbits
    clock_ns: Callable[[], int] = field(default=time.time_ns)

    def generate(self) -> str:
        if self.uuid_factory is not None:
            try:
                return str(self.uuid_factory())
            except NotImplementedError:
                # os.urandom unavailable
                pass
        return self.fallback()

    def fallback(self) -> str:
        stamp = _base36(self.clock_ns())
        if self.random_bits is not None:
            try:
                a = self.random_bits(64)
                b = self.random_bits(64)
                return f"{stamp}-{_base36(a)}-{_base36(b)}"
            except NotImplementedError:
                pass
        return f"{stamp}-{_base36(os.getpid())}-{_base36(next(_counter))}"


_default = IdGenerator()


def generate_id() -> str:
    return _default.generate()
