"""Page and sort query parameters for lists that are sliced in memory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence


class PagingParamError(ValueError):
    """Raised when page, page_size or sort is invalid."""


@dataclass(frozen=True)
class PageRequest:
    page: int
    page_size: int
    sort_field: str
    descending: bool = False

    @property
    def sort(self) -> str:
        """The sort as a client would send it back, e.g. ``-title``."""
        return f"-{self.sort_field}" if self.descending else self.sort_field


def _positive_int(raw: Optional[str], name: str, default: int, maximum: Optional[int] = None) -> int:
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise PagingParamError(f"{name} must be an integer.") from None
    if value < 1:
        raise PagingParamError(f"{name} must be ≥ 1.")
    if maximum is not None and value > maximum:
        raise PagingParamError(f"{name} must be ≤ {maximum}.")
    return value


def parse_page_request(
    args: Mapping[str, str],
    *,
    sort_fields: Sequence[str],
    default_sort: str,
    default_page_size: int = 20,
    max_page_size: int = 100,
) -> PageRequest:
    """Read ``page``, ``page_size`` and ``sort`` (``field`` or ``-field``)."""

    raw_sort = (args.get("sort") or default_sort).strip()
    descending = raw_sort.startswith("-")
    field = raw_sort.lstrip("-")
    if field not in sort_fields:
        choices = ", ".join(sorted(sort_fields))
        raise PagingParamError(f"sort must be one of: {choices} (prefix with - to reverse).")

    return PageRequest(
        page=_positive_int(args.get("page"), "page", 1),
        page_size=_positive_int(args.get("page_size"), "page_size", default_page_size, max_page_size),
        sort_field=field,
        descending=descending,
    )


def paginate(items: Sequence[Any], request: PageRequest) -> Dict[str, Any]:
    """Slice an already sorted list; a page past the end clamps to the last one."""

    total = len(items)
    last_page = max(1, -(-total // request.page_size))
    page = min(request.page, last_page)
    start = (page - 1) * request.page_size

    return {
        "items": list(items[start:start + request.page_size]),
        "page": page,
        "page_size": request.page_size,
        "total": total,
        "has_next": page < last_page,
        "has_prev": page > 1,
        "sort": request.sort,
    }


__all__ = ["PageRequest", "PagingParamError", "paginate", "parse_page_request"]
