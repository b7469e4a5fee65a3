"""
Time and date utilities for release-age and trace calculations.

Conventions:
  - ``as_of``: every matching run captures one UTC timestamp up front and
    threads it through every age calculation, so repeated runs over the same
    inputs with the same ``as_of`` are reproducible.
  - Months are counted as whole 30-day blocks (``floor(days / 30)``).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware now, used as the default run ``as_of``."""
    return datetime.now(tz=timezone.utc)


def months_since(past: date, as_of: datetime) -> int:
    """Return whole 30-day months elapsed from ``past`` to ``as_of``.

    Negative spans (``past`` after ``as_of``) return 0.

    Args:
        past: Earlier date (release date, first commit, ...).
        as_of: Reference timestamp of the run.

    Returns:
        Non-negative integer month count.
    """
    days = (as_of.date() - past).days
    return max(0, days // 30)


def optional_months_since(past: Optional[date], as_of: datetime) -> Optional[int]:
    """``months_since`` that passes ``None`` through."""
    if past is None:
        return None
    return months_since(past, as_of)


def elapsed_ms(start: float, end: float) -> int:
    """Convert a ``time.perf_counter()`` span to whole milliseconds."""
    return int(round((end - start) * 1000))
