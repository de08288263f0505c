"""Commit-on-blur/Enter numeric text fields.

A ``NumericInputBuffer`` holds whatever the user has typed as an
unvalidated string. Nothing reaches the owned numeric field until
``commit()`` runs (on blur or Enter); a value that does not parse or fails
validation leaves the field untouched and the buffer is reverted to the
last committed text.

Usage::

    bpm_field = NumericInputBuffer(
        lambda bpm: state.set_manual_bpm(bpm, duration),
        validator=lambda v: v > 0,
        initial=120.0,
    )
    bpm_field.text = "128"
    bpm_field.commit()  # → True, grid rebuilt at 128 BPM
"""

from __future__ import annotations

import math
from collections.abc import Callable


def parse_number(text: str) -> float | None:
    """Parse a finite float from user text; None if it is not one."""
    try:
        value = float(text.strip())
    except (AttributeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class NumericInputBuffer:
    """Transient text buffer in front of a numeric setter.

    Args:
        commit_fn: Called with the parsed value on a successful commit.
        validator: Extra check on the parsed value. Defaults to accepting
            any finite number.
        initial: Last committed value, shown as the starting text.
    """

    def __init__(
        self,
        commit_fn: Callable[[float], object],
        *,
        validator: Callable[[float], bool] | None = None,
        initial: float | None = None,
    ) -> None:
        """Initialize with the current committed value."""
        self._commit_fn = commit_fn
        self._validator = validator
        self._committed = initial
        self.text = "" if initial is None else f"{initial:g}"

    @property
    def committed(self) -> float | None:
        """Last value written through ``commit_fn``."""
        return self._committed

    @property
    def dirty(self) -> bool:
        return parse_number(self.text) != self._committed

    def sync(self, value: float) -> None:
        """Show an externally changed value without committing it."""
        self._committed = value
        self.text = f"{value:g}"

    def commit(self) -> bool:
        """Parse, validate and write the buffered text.

        Returns:
            True if the value was written; False (no-op) if it did not
            parse or validate.
        """
        value = parse_number(self.text)
        if value is None or (self._validator is not None and not self._validator(value)):
            self.text = "" if self._committed is None else f"{self._committed:g}"
            return False
        self._commit_fn(value)
        self._committed = value
        return True
