"""Decide whether a run is worth notifying about."""

from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence

from .scraper import AvailabilityRecord


def should_notify(
    current: Sequence[AvailabilityRecord],
    previous: Optional[Sequence[AvailabilityRecord]],
    force: bool = False,
    order_sensitive: bool = True,
) -> bool:
    """True when forced, on the first run, or when the results differ.

    By default a reordering of the same records counts as a change.
    """
    if force or previous is None:
        return True
    if order_sensitive:
        return list(current) != list(previous)
    return Counter(current) != Counter(previous)


__all__ = ["should_notify"]
