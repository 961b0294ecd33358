"""Shared helpers for the apptags package."""

from __future__ import annotations

import random
import string
import time
from typing import Hashable, Iterable, TypeVar

T = TypeVar("T", bound=Hashable)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def unique_in_order(values: Iterable[T]) -> list[T]:
    """Return unique values preserving the original order."""
    seen: set[T] = set()
    output: list[T] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        output.append(value)
    return output


def now_millis() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """Return a fresh tag id such as ``tag_1700000000000_k3j9x0a1b``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"tag_{now_millis()}_{suffix}"


def random_color() -> str:
    """Return a random ``#RRGGBB`` color."""
    return f"#{random.randint(0, 0xFFFFFF):06X}"
