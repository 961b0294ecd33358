"""Exceptions raised by apptags."""

from __future__ import annotations


class ValidationError(ValueError):
    """Rejected input; raised before anything is written to the store."""
