"""Predicate builders for the patient and professional search endpoints."""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date

from dateutil.relativedelta import relativedelta


def contains_ci(term: str) -> Callable[[str | None], bool]:
    """Case-insensitive literal substring match (``None`` never matches)."""
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    return lambda value: value is not None and pattern.search(value) is not None


def birth_date_bounds(
    min_age: int | None, max_age: int | None, today: date | None = None
) -> tuple[date | None, date | None]:
    """Translate an age range into ``(earliest, latest)`` date-of-birth bounds.

    ``latest`` is inclusive: someone born on it has just turned *min_age*.
    ``earliest`` is exclusive: someone born on it has just turned ``max_age + 1``.
    """
    today = today or date.today()
    latest = today - relativedelta(years=min_age) if min_age is not None else None
    earliest = today - relativedelta(years=max_age + 1) if max_age is not None else None
    return earliest, latest


def born_within(earliest: date | None, latest: date | None) -> Callable[[date], bool]:
    def _check(dob: date) -> bool:
        if latest is not None and dob > latest:
            return False
        if earliest is not None and dob <= earliest:
            return False
        return True

    return _check


def matches_filters(doc: object, filters: dict[str, object]) -> bool:
    """Exact-match every ``field: value`` pair in *filters* against *doc*."""
    return all(getattr(doc, field, None) == value for field, value in filters.items())
