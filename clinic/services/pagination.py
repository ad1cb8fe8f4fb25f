"""Page/limit normalisation shared by the list and search services."""

from __future__ import annotations

import math

from clinic.domain.models import Pagination


def normalize_page(page: int | str | None, limit: int | str | None, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Clamp *page* to >= 1 and *limit* to ``[1, max_limit]``.

    Missing or non-numeric values fall back to page 1 / *default_limit*.
    """
    page_num = _to_int(page, 1)
    limit_num = _to_int(limit, default_limit)
    return max(1, page_num), min(max_limit, max(1, limit_num))


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    total_pages = math.ceil(total / limit)
    return Pagination(
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def _to_int(value: int | str | None, fallback: int) -> int:
    if value is None:
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback
