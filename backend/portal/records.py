"""Build grading inputs from stored enrollment, section and course documents."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .db import (
    SUB_SCORE_FIELDS,
    get_courses_collection,
    get_departments_collection,
    get_enrollments_collection,
    get_instructors_collection,
    get_sections_collection,
    get_students_collection,
    serialize_course,
    serialize_department,
    serialize_section,
    serialize_student,
)
from .grading import (
    TERM_RANK,
    CourseTermRecord,
    SubScoreSet,
    TermKey,
    aggregate,
    dedupe_by_course,
)

logger = logging.getLogger(__name__)


def parse_score(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or ``None`` when it is not a usable number."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def sub_scores_from_enrollment(document: Mapping[str, Any]) -> SubScoreSet:
    scores = {field: parse_score(document.get(field)) for field in SUB_SCORE_FIELDS}

    # Older enrollments store a single grade string instead of sub-scores.
    if all(value is None for value in scores.values()) and "grade" in document:
        legacy = parse_score(document.get("grade"))
        scores = {field: legacy for field in SUB_SCORE_FIELDS}

    return SubScoreSet(**scores)


def normalize_term(value: Any) -> str:
    cleaned = str(value).strip() if value is not None else ""
    capitalized = cleaned.capitalize()
    return capitalized if capitalized in TERM_RANK else cleaned


def build_course_term_records(
    enrollments: Iterable[Mapping[str, Any]],
    sections_by_id: Mapping[str, Mapping[str, Any]],
    courses_by_id: Mapping[str, Mapping[str, Any]],
) -> List[CourseTermRecord]:
    """Join enrollments with their sections and courses.

    Enrollments whose section is unknown or has no year are skipped.
    """

    records: List[CourseTermRecord] = []
    for enrollment in enrollments:
        section_id = enrollment.get("section_id")
        section = sections_by_id.get(section_id)
        if section is None:
            logger.debug("Skipping enrollment for unknown section %s", section_id)
            continue

        year = section.get("year")
        if year is None:
            logger.debug("Skipping enrollment for section %s without a year", section_id)
            continue

        course_code = section.get("course_id") or ""
        course = courses_by_id.get(course_code) or {}

        records.append(
            CourseTermRecord(
                course_code=course_code,
                course_name=course.get("title") or course_code,
                year=int(year),
                term=normalize_term(section.get("term")),
                overall_grade=aggregate(sub_scores_from_enrollment(enrollment)),
                section_id=section_id,
                credits=course.get("credits"),
            )
        )
    return records


def _instructor_name(document: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not document:
        return None
    parts = [document.get("first_name"), document.get("last_name")]
    name = " ".join(str(part).strip() for part in parts if part)
    return name or None


def build_offering(
    section: Mapping[str, Any],
    course: Optional[Mapping[str, Any]],
    department: Optional[Mapping[str, Any]] = None,
    instructor: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Flatten a section and its course into one catalog entry."""

    course = course or {}
    return {
        "section_id": section.get("_id"),
        "section_no": section.get("section_no"),
        "course_id": section.get("course_id"),
        "title": course.get("title") or section.get("course_id"),
        "description": course.get("description"),
        "credits": course.get("credits"),
        "level": course.get("level"),
        "dept_id": course.get("dept_id"),
        "department_name": department.get("name") if department else None,
        "instructor": _instructor_name(instructor) or course.get("instructor"),
        "year": section.get("year"),
        "term": normalize_term(section.get("term")),
        "capacity": section.get("capacity"),
        "status": section.get("status"),
    }


def load_offerings() -> List[Dict[str, Any]]:
    """Load catalog entries for every section of an active course."""

    sections = [serialize_section(doc) for doc in get_sections_collection().find({})]
    course_ids = list({s["course_id"] for s in sections if s.get("course_id")})
    if not course_ids:
        return []

    courses_by_id = {
        doc["_id"]: serialize_course(doc)
        for doc in get_courses_collection().find({"_id": {"$in": course_ids}})
    }
    dept_ids = list({c["dept_id"] for c in courses_by_id.values() if c.get("dept_id")})
    departments_by_id = {
        doc["_id"]: serialize_department(doc)
        for doc in get_departments_collection().find({"_id": {"$in": dept_ids}})
    }
    instructor_ids = list({s["instructor_id"] for s in sections if s.get("instructor_id")})
    instructors_by_id = {
        doc["_id"]: doc
        for doc in get_instructors_collection().find(
            {"_id": {"$in": instructor_ids}},
            projection={"first_name": 1, "last_name": 1},
        )
    }

    offerings: List[Dict[str, Any]] = []
    for section in sections:
        course = courses_by_id.get(section.get("course_id"))
        if course is None or not course.get("active"):
            continue
        offerings.append(
            build_offering(
                section,
                course,
                departments_by_id.get(course.get("dept_id")),
                instructors_by_id.get(section.get("instructor_id")),
            )
        )
    return offerings


def find_section(section_id: str) -> Optional[Dict[str, Any]]:
    document = get_sections_collection().find_one({"_id": section_id})
    return serialize_section(document) if document else None


def find_course(course_id: str) -> Optional[Dict[str, Any]]:
    document = get_courses_collection().find_one({"_id": course_id})
    return serialize_course(document) if document else None


def find_student(student_id: str) -> Optional[Dict[str, Any]]:
    document = get_students_collection().find_one({"_id": student_id})
    return serialize_student(document) if document else None


def load_course_term_records(student_id: str) -> List[CourseTermRecord]:
    """Load every course offering the student is enrolled in."""

    enrollments = list(get_enrollments_collection().find({"student_id": student_id}))
    section_ids = list({doc.get("section_id") for doc in enrollments if doc.get("section_id")})
    if not section_ids:
        return []

    sections_by_id = {
        doc["_id"]: serialize_section(doc)
        for doc in get_sections_collection().find({"_id": {"$in": section_ids}})
    }
    course_ids = list(
        {section["course_id"] for section in sections_by_id.values() if section.get("course_id")}
    )
    courses_by_id = {
        doc["_id"]: serialize_course(doc)
        for doc in get_courses_collection().find({"_id": {"$in": course_ids}})
    }

    return build_course_term_records(enrollments, sections_by_id, courses_by_id)


def grade_history(student_id: str) -> List[CourseTermRecord]:
    """Every offering the student took, repeated courses included."""

    return load_course_term_records(student_id)


def current_registrations(
    student_id: str, term_key: Optional[TermKey] = None
) -> List[CourseTermRecord]:
    """The most recent offering of each course, optionally limited to one term."""

    records = load_course_term_records(student_id)
    if term_key is not None:
        records = [record for record in records if record.term_key == tuple(term_key)]
    return dedupe_by_course(records)


__all__ = [
    "build_course_term_records",
    "build_offering",
    "current_registrations",
    "find_course",
    "find_section",
    "find_student",
    "grade_history",
    "load_course_term_records",
    "load_offerings",
    "normalize_term",
    "parse_score",
    "sub_scores_from_enrollment",
]
