"""Shared types and validation helpers for the tag store.

This module contains:
- Validation mode type (shared across all store operations)
- Hex color validation
- Tag name and application key normalizers

Only the ``"warn"`` and ``"strict"`` validation modes exist. There is no
``"off"`` mode: every write must stay decodable by the next ``load()``, so
invalid colors, names and keys are never stored.
"""

from __future__ import annotations

import logging
import re
from typing import Literal, Sequence

from ..errors import ValidationError
from ..utils import unique_in_order
from .tags_types import RESERVED_KEYS

_logger = logging.getLogger(__name__)

# --- Shared Validation Mode --- #
ValidationMode = Literal["warn", "strict"]


# --- Color Validation --- #
HEX_COLOR_RE = re.compile(r"^#[0-9A-F]{6}$", flags=re.IGNORECASE)


def is_valid_hex_color(value: object) -> bool:
    """Return True for ``#RRGGBB`` strings (case-insensitive)."""
    return isinstance(value, str) and HEX_COLOR_RE.match(value) is not None


def _normalize_color(value: object) -> str:
    """Validate a tag color.

    Parameters
    ----------
    value
        Color input. Only ``#RRGGBB`` hex strings are accepted; case is kept
        as given.

    Returns
    -------
    str
        The color string.

    Raises
    ------
    ValidationError
        If the input is not a ``#RRGGBB`` hex string.
    """
    if not is_valid_hex_color(value):
        raise ValidationError(f"Invalid HEX color {value!r}, use a format like #FF0000")
    return value  # type: ignore[return-value]


# --- Name / Key Normalization --- #
def _normalize_name(value: object) -> str:
    """Strip a tag name and reject empty or non-string names."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Tag name cannot be empty: {value!r}")
    return value.strip()


def _normalize_key(value: object) -> str:
    """Reject empty, non-string or reserved application keys."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"Invalid application key: {value!r}")
    if value in RESERVED_KEYS:
        raise ValidationError(f"Application key {value!r} is reserved for tag records")
    return value


def _normalize_id_sequence(ids: object) -> list[str] | None:
    """Normalize a sequence of tag ids to a deduplicated list of strings.

    Returns ``None`` when the input is not a sequence (or is a plain string);
    empty and non-string members are dropped.
    """
    if not isinstance(ids, Sequence) or isinstance(ids, (str, bytes)):
        return None
    return unique_in_order(tag_id for tag_id in ids if isinstance(tag_id, str) and tag_id)


def _reject(message: str, exc: ValidationError, validation: ValidationMode) -> None:
    """Raise in strict mode, otherwise log a warning."""
    if validation == "strict":
        raise exc
    _logger.warning("%s: %s", message, exc)
