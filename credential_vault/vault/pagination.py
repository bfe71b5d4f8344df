"""Generic pagination and search helpers for Django querysets."""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from functools import reduce
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db.models import Model, Q, QuerySet

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageInfo:
    """Pagination metadata returned alongside a page of results."""

    page: int
    limit: int
    total_count: int
    total_pages: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
        }


def parse_positive_int(value: Any, default: int, maximum: Optional[int] = None) -> int:
    """Parse a query-string value into an integer of at least 1.

    Missing or non-numeric values fall back to ``default``. When ``maximum``
    is given, larger values are clamped to it.
    """

    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    parsed = max(parsed, 1)
    if maximum is not None:
        parsed = min(parsed, maximum)
    return parsed


def build_search_filter(search_term: Optional[str], search_fields: Iterable[str]) -> Optional[Q]:
    """Return an OR of case-insensitive substring matches, or ``None`` when not searching."""

    if not search_term:
        return None
    clauses = [Q(**{f"{field}__icontains": search_term}) for field in search_fields]
    if not clauses:
        return None
    return reduce(operator.or_, clauses)


def paginate(
    source,
    base_filter: Optional[Dict[str, Any]] = None,
    search_term: Optional[str] = None,
    search_fields: Iterable[str] = (),
    *,
    page: Any = DEFAULT_PAGE,
    limit: Any = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> Tuple[List[Any], PageInfo]:
    """Return one page of ``source`` filtered by ``base_filter`` and ``search_term``.

    ``source`` may be a model class or a queryset. Results keep the
    queryset's ordering, falling back to primary key order when unordered.
    ``limit`` is clamped to ``max_limit``. A page past the last result is
    empty and is answered without querying for rows.
    """

    if isinstance(source, QuerySet):
        queryset = source
    elif isinstance(source, type) and issubclass(source, Model):
        queryset = source._default_manager.all()
    else:
        raise TypeError(f"Cannot paginate object of type {type(source).__name__}")

    page = parse_positive_int(page, DEFAULT_PAGE)
    limit = parse_positive_int(limit, DEFAULT_LIMIT, max_limit)

    if base_filter:
        queryset = queryset.filter(**base_filter)
    search_q = build_search_filter(search_term, search_fields)
    if search_q is not None:
        queryset = queryset.filter(search_q)
    if not queryset.ordered:
        queryset = queryset.order_by("pk")

    total_count = queryset.count()
    offset = (page - 1) * limit
    results = list(queryset[offset:offset + limit]) if offset < total_count else []

    page_info = PageInfo(
        page=page,
        limit=limit,
        total_count=total_count,
        total_pages=math.ceil(total_count / limit) if total_count else 0,
    )
    return results, page_info


__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "MAX_LIMIT",
    "PageInfo",
    "build_search_filter",
    "paginate",
    "parse_positive_int",
]
