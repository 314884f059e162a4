"""
Inclusive day-range conflict predicates.

Ranges are closed intervals of calendar days: [start, end] covers both the
first and the last day, so two ranges sharing a single boundary day
conflict.
"""

from datetime import date


def ranges_conflict(existing_start: date, existing_end: date, start: date, end: date) -> bool:
    """
    Whether an existing range [s, e] conflicts with a candidate [S, E].

    Conflict if any of:
    1. s falls inside [S, E]
    2. e falls inside [S, E]
    3. [s, e] encloses [S, E]
    4. [s, e] strictly encloses [S, E]
    """
    s, e, S, E = existing_start, existing_end, start, end
    return (
        (S <= s <= E)
        or (S <= e <= E)
        or (s <= S and e >= E)
        or (s < S and e > E)
    )


def ranges_overlap(existing_start: date, existing_end: date, start: date, end: date) -> bool:
    """Collapsed overlap test, equivalent to `ranges_conflict` for well-formed ranges."""
    return existing_start <= end and existing_end >= start
