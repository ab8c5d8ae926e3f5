"""Course catalog filtering."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .grading import TERM_RANK

_LEVEL_PATTERN = re.compile(r"^(BA|MA)(\d+)$", re.IGNORECASE)

ALL = "ALL"


class CatalogParamError(ValueError):
    """Raised when catalog filter query parameters are invalid."""


def semester_level_value(level: Optional[str]) -> int:
    """Map a study level such as ``BA3`` to an orderable integer.

    Master levels sort after every bachelor level; unknown levels are 0.
    """

    if not level:
        return 0
    match = _LEVEL_PATTERN.match(level.strip())
    if not match:
        return 0
    number = int(match.group(2))
    return number if match.group(1).upper() == "BA" else 100 + number


def _filter_value(args: Mapping[str, Any], name: str) -> Optional[str]:
    value = args.get(name)
    cleaned = str(value).strip() if value is not None else ""
    if not cleaned or cleaned.upper() == ALL:
        return None
    return cleaned


@dataclass(frozen=True)
class CatalogFilters:
    department: Optional[str] = None
    level: Optional[str] = None
    year: Optional[int] = None
    term: Optional[str] = None
    code_query: str = ""

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "CatalogFilters":
        year_raw = _filter_value(args, "year")
        year: Optional[int] = None
        if year_raw is not None:
            try:
                year = int(year_raw)
            except ValueError:
                raise CatalogParamError("year must be an integer.") from None

        term = _filter_value(args, "term")
        if term is not None:
            term = term.capitalize()
            if term not in TERM_RANK:
                raise CatalogParamError(
                    "term must be one of: " + ", ".join(TERM_RANK) + "."
                )

        level = _filter_value(args, "level")
        department = _filter_value(args, "dept")

        return cls(
            department=department.upper() if department else None,
            level=level.upper() if level else None,
            year=year,
            term=term,
            code_query=_filter_value(args, "q") or "",
        )

    def matches(self, offering: Mapping[str, Any]) -> bool:
        if self.department is not None and offering.get("dept_id") != self.department:
            return False
        if self.level is not None and (offering.get("level") or "").upper() != self.level:
            return False
        if self.year is not None and offering.get("year") != self.year:
            return False
        if self.term is not None and offering.get("term") != self.term:
            return False
        code = offering.get("course_id")
        if not isinstance(code, str):
            return False
        return self.code_query.lower() in code.lower()


def filter_offerings(
    offerings: Iterable[Mapping[str, Any]], filters: CatalogFilters
) -> List[Mapping[str, Any]]:
    return [offering for offering in offerings if offering and filters.matches(offering)]


def catalog_facets(offerings: Iterable[Mapping[str, Any]]) -> Dict[str, List[Any]]:
    """Distinct filter values present in the catalog, each sorted for display."""

    offerings = [offering for offering in offerings if offering]
    departments = {o.get("dept_id") for o in offerings if o.get("dept_id")}
    years = {o.get("year") for o in offerings if o.get("year")}
    terms = {o.get("term") for o in offerings if o.get("term")}
    levels = {o.get("level") for o in offerings if o.get("level")}

    return {
        "departments": sorted(departments),
        "years": sorted(years),
        "terms": sorted(terms, key=lambda term: TERM_RANK.get(term, -1)),
        "levels": sorted(levels, key=lambda level: (semester_level_value(level), level)),
    }


__all__ = [
    "CatalogFilters",
    "CatalogParamError",
    "catalog_facets",
    "filter_offerings",
    "semester_level_value",
]
