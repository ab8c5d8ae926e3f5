"""Grade aggregation, term grouping and course deduplication.

Every function here is pure: inputs are never mutated and no I/O happens.
A grade of ``None`` means "not available" throughout.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

SPRING = "Spring"
FALL = "Fall"

# Later terms rank higher within the same year.
TERM_RANK: Dict[str, int] = {SPRING: 0, FALL: 1}

DISPLAY_TIERS: List[Tuple[float, str]] = [
    (5.5, "top"),
    (4.5, "high"),
    (3.5, "mid-high"),
    (2.5, "mid"),
    (1.5, "low"),
    (1.0, "lowest"),
]

UNDEFINED_TIER = "undefined"

_TWO_PLACES = Decimal("0.01")


class TermKey(NamedTuple):
    year: int
    term: str


@dataclass(frozen=True)
class SubScoreSet:
    midterm: Optional[float] = None
    project: Optional[float] = None
    final: Optional[float] = None
    quizzes: Optional[float] = None

    def values(self) -> Tuple[Optional[float], ...]:
        return (self.midterm, self.project, self.final, self.quizzes)


@dataclass(frozen=True)
class CourseTermRecord:
    course_code: str
    course_name: str
    year: int
    term: str
    overall_grade: Optional[float] = None
    section_id: Optional[str] = None
    credits: Optional[int] = None

    @property
    def term_key(self) -> TermKey:
        return TermKey(self.year, self.term)

    @property
    def has_grade(self) -> bool:
        return self.overall_grade is not None


@dataclass
class TermBucket:
    year: int
    term: str
    records: List[CourseTermRecord] = field(default_factory=list)

    @property
    def term_key(self) -> TermKey:
        return TermKey(self.year, self.term)


def round_grade(value: float) -> float:
    """Round to two decimals, halves away from zero.

    The exact binary value of ``value`` is rounded, so ``4.625`` becomes
    ``4.63`` while ``1.005`` (stored as 1.00499...) becomes ``1.0``.
    """

    return float(Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return round_grade(sum(values) / len(values))


def aggregate(sub_scores: Optional[SubScoreSet]) -> Optional[float]:
    """Return the rounded mean of the available sub-scores, or ``None``."""

    if sub_scores is None:
        return None
    available = [value for value in sub_scores.values() if value is not None]
    return _mean(available)


def classify(grade: Optional[float]) -> str:
    if grade is None:
        return UNDEFINED_TIER
    for threshold, tier in DISPLAY_TIERS:
        if grade >= threshold:
            return tier
    return UNDEFINED_TIER


def recency_key(year: int, term: str) -> Tuple[int, int]:
    """Sort key where larger means more recent."""

    return (year, TERM_RANK.get(term, -1))


def term_order(a: Any, b: Any) -> int:
    """Compare two ``(year, term)`` values, most recent first.

    Returns a negative number when ``a`` is more recent than ``b``, zero when
    they denote the same term and a positive number otherwise.
    """

    key_a = recency_key(a[0], a[1])
    key_b = recency_key(b[0], b[1])
    if key_a == key_b:
        return 0
    return -1 if key_a > key_b else 1


def course_name_key(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def _by_course_name(records: Iterable[CourseTermRecord]) -> List[CourseTermRecord]:
    return sorted(records, key=lambda record: course_name_key(record.course_name))


def group_by_term(records: Iterable[CourseTermRecord]) -> List[TermBucket]:
    """Bucket graded records by term, most recent term first.

    Records without an overall grade are left out. Courses inside a bucket are
    ordered by name; equal names keep their input order.
    """

    buckets: Dict[TermKey, TermBucket] = {}
    for record in records:
        if not record.has_grade:
            continue
        key = record.term_key
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = TermBucket(year=key.year, term=key.term)
        bucket.records.append(record)

    for bucket in buckets.values():
        bucket.records = _by_course_name(bucket.records)

    return sorted(
        buckets.values(),
        key=cmp_to_key(lambda left, right: term_order(left.term_key, right.term_key)),
    )


def flatten_buckets(buckets: Iterable[TermBucket]) -> List[CourseTermRecord]:
    return [record for bucket in buckets for record in bucket.records]


def dedupe_by_course(records: Iterable[CourseTermRecord]) -> List[CourseTermRecord]:
    """Keep the most recent record of each course code.

    On a tie the first record seen wins. Output follows the order in which
    each course code first appears.
    """

    latest: Dict[str, CourseTermRecord] = {}
    for record in records:
        current = latest.get(record.course_code)
        if current is None or term_order(record.term_key, current.term_key) < 0:
            latest[record.course_code] = record
    return list(latest.values())


def overall_average(records: Iterable[CourseTermRecord]) -> Optional[float]:
    grades = [record.overall_grade for record in records if record.overall_grade is not None]
    return _mean(grades)


def yearly_averages(records: Iterable[CourseTermRecord]) -> List[Dict[str, Any]]:
    """Average overall grade per calendar year, oldest year first."""

    by_year: Dict[int, List[float]] = {}
    for record in records:
        if record.overall_grade is None or record.year is None:
            continue
        by_year.setdefault(record.year, []).append(record.overall_grade)

    return [
        {"year": year, "average_grade": _mean(grades)}
        for year, grades in sorted(by_year.items())
    ]


def ongoing_records(records: Iterable[CourseTermRecord]) -> List[CourseTermRecord]:
    return [record for record in records if not record.has_grade]


def term_records(
    records: Iterable[CourseTermRecord], term_key: TermKey
) -> List[CourseTermRecord]:
    matching = [
        record
        for record in records
        if record.has_grade and record.term_key == tuple(term_key)
    ]
    return _by_course_name(matching)


def previous_term(term_key: TermKey) -> TermKey:
    year, term = term_key
    if term == FALL:
        return TermKey(year, SPRING)
    return TermKey(year - 1, FALL)


__all__ = [
    "FALL",
    "SPRING",
    "TERM_RANK",
    "CourseTermRecord",
    "SubScoreSet",
    "TermBucket",
    "TermKey",
    "aggregate",
    "classify",
    "course_name_key",
    "dedupe_by_course",
    "flatten_buckets",
    "group_by_term",
    "ongoing_records",
    "overall_average",
    "previous_term",
    "recency_key",
    "round_grade",
    "term_order",
    "term_records",
    "yearly_averages",
]
