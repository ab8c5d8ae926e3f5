"""Student portal endpoints: grades, registrations, dashboard and catalog."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import Blueprint, jsonify, request
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..catalog import CatalogFilters, CatalogParamError, catalog_facets, filter_offerings
from ..config import ConfigError, get_current_term
from ..db import get_enrollments_collection
from ..grading import (
    TERM_RANK,
    CourseTermRecord,
    TermBucket,
    TermKey,
    classify,
    group_by_term,
    ongoing_records,
    overall_average,
    previous_term,
    term_records,
    yearly_averages,
)
from ..records import (
    current_registrations,
    find_course,
    find_section,
    find_student,
    grade_history,
    load_offerings,
    normalize_term,
)
from ..registration import RegistrationState, register, unregister
from ..utils.paging import PagingParamError, paginate, parse_page_request

portal_bp = Blueprint("portal", __name__, url_prefix="/api/portal")

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

CATALOG_SORT_FIELDS = ("course_id", "title", "year", "credits")
# Coerced to int or None by the serializers.
NUMERIC_SORT_FIELDS = {"year", "credits"}


class TermParamError(ValueError):
    """Raised when year/term query parameters are invalid."""


def _json_error(message: str, status: int, details: Dict[str, Any] | None = None):
    payload: Dict[str, Any] = {"error": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def _clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _handle_config_error(exc: ConfigError):
    logger.exception("Missing or invalid portal configuration")
    return _json_error(str(exc), 500)


def _handle_db_error(action: str):
    logger.exception("%s due to MongoDB error", action)
    return _json_error("Database unavailable. Please try again later.", 503)


def _format_grade(grade: Optional[float]):
    return grade if grade is not None else NOT_AVAILABLE


def _serialize_record(record: CourseTermRecord) -> Dict[str, Any]:
    return {
        "course_id": record.course_code,
        "title": record.course_name,
        "year": record.year,
        "term": record.term,
        "section_id": record.section_id,
        "credits": record.credits,
        "overall_grade": _format_grade(record.overall_grade),
        "tier": classify(record.overall_grade),
    }


def _serialize_bucket(bucket: TermBucket) -> Dict[str, Any]:
    return {
        "year": bucket.year,
        "term": bucket.term,
        "courses": [_serialize_record(record) for record in bucket.records],
    }


def _term_from_args(args) -> Optional[TermKey]:
    year_raw = _clean_string(args.get("year"))
    term_raw = _clean_string(args.get("term"))
    if not year_raw and not term_raw:
        return None
    if not year_raw or not term_raw:
        raise TermParamError("year and term must be provided together.")

    try:
        year = int(year_raw)
    except ValueError:
        raise TermParamError("year must be an integer.") from None

    term = normalize_term(term_raw)
    if term not in TERM_RANK:
        raise TermParamError("term must be one of: " + ", ".join(TERM_RANK) + ".")
    return TermKey(year, term)


def _student_or_404(student_id: str):
    student_id_clean = _clean_string(student_id)
    if not student_id_clean:
        return None, _json_error("Student ID is required.", 400)
    student = find_student(student_id_clean)
    if not student:
        return None, _json_error("Student not found.", 404)
    return student, None


@portal_bp.get("/students/<student_id>/grades")
def student_grades(student_id: str):
    try:
        student, error = _student_or_404(student_id)
        if error:
            return error

        history = grade_history(student["_id"])
        average = overall_average(history)

        return jsonify(
            {
                "student_id": student["_id"],
                "overall_average": _format_grade(average),
                "overall_tier": classify(average),
                "terms": [_serialize_bucket(bucket) for bucket in group_by_term(history)],
            }
        )
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError:
        return _handle_db_error("Failed to load grades")


@portal_bp.get("/students/<student_id>/registrations")
def list_registrations(student_id: str):
    show_all = _clean_string(request.args.get("all")).lower() in {"1", "true", "yes"}

    try:
        student, error = _student_or_404(student_id)
        if error:
            return error

        term_key: Optional[TermKey] = None
        if not show_all:
            try:
                term_key = _term_from_args(request.args) or get_current_term()
            except TermParamError as exc:
                return _json_error(str(exc), 400)

        records = current_registrations(student["_id"], term_key)
        payload: Dict[str, Any] = {
            "student_id": student["_id"],
            "courses": [_serialize_record(record) for record in records],
        }
        if term_key is not None:
            payload["year"], payload["term"] = term_key
        return jsonify(payload)
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError:
        return _handle_db_error("Failed to list registrations")


@portal_bp.post("/students/<student_id>/registrations")
def create_registration(student_id: str):
    data = request.get_json(silent=True)
    if data is None:
        return _json_error("Request body must be JSON.", 400)

    section_id = _clean_string(data.get("section_id"))
    if not section_id:
        return _json_error(
            "Validation failed.", 400, {"section_id": "Section ID is required."}
        )

    try:
        student, error = _student_or_404(student_id)
        if error:
            return error

        section = find_section(section_id)
        if not section or not section.get("course_id") or section.get("year") is None:
            return _json_error("Class section not found.", 404)

        course = find_course(section["course_id"]) or {}
        term_key = TermKey(section["year"], normalize_term(section.get("term")))
        record = CourseTermRecord(
            course_code=section["course_id"],
            course_name=course.get("title") or section["course_id"],
            year=term_key.year,
            term=term_key.term,
            section_id=section_id,
            credits=course.get("credits"),
        )

        state = RegistrationState.from_records(
            current_registrations(student["_id"], term_key)
        )
        outcome = register(state, record)
        if not outcome.changed:
            return _json_error(outcome.message, 409)

        get_enrollments_collection().insert_one(
            {
                "student_id": student["_id"],
                "section_id": section_id,
                "status": "enrolled",
                "enrolled_at": datetime.now(timezone.utc),
            }
        )
        logger.info("Registered %s for section %s", student["_id"], section_id)
        return (
            jsonify(
                {
                    "ok": True,
                    "message": outcome.message,
                    "course": _serialize_record(record),
                }
            ),
            201,
        )
    except ConfigError as exc:
        return _handle_config_error(exc)
    except DuplicateKeyError:
        return _json_error("Enrollment already exists for this student and section.", 409)
    except PyMongoError:
        return _handle_db_error("Failed to register")


@portal_bp.delete("/students/<student_id>/registrations/<course_id>")
def delete_registration(student_id: str, course_id: str):
    course_id_clean = _clean_string(course_id)

    try:
        student, error = _student_or_404(student_id)
        if error:
            return error

        try:
            term_key = _term_from_args(request.args) or get_current_term()
        except TermParamError as exc:
            return _json_error(str(exc), 400)

        state = RegistrationState.from_records(
            current_registrations(student["_id"], term_key)
        )
        outcome = unregister(state, course_id_clean)
        if not outcome.changed:
            return _json_error(outcome.message, 404)

        section_ids = [r.section_id for r in outcome.removed if r.section_id]
        result = get_enrollments_collection().delete_many(
            {"student_id": student["_id"], "section_id": {"$in": section_ids}}
        )
        if not result.deleted_count:
            logger.warning(
                "No enrollment deleted for %s in sections %s", student["_id"], section_ids
            )
            return _json_error(f"You are not registered for {course_id_clean}.", 404)
        logger.info(
            "Unregistered %s from %s (%d enrollment(s))",
            student["_id"],
            course_id_clean,
            result.deleted_count,
        )
        return jsonify({"ok": True, "message": outcome.message, "deleted": result.deleted_count})
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError:
        return _handle_db_error("Failed to unregister")


@portal_bp.get("/students/<student_id>/dashboard")
def student_dashboard(student_id: str):
    try:
        student, error = _student_or_404(student_id)
        if error:
            return error

        current = get_current_term()
        previous = previous_term(current)
        history = grade_history(student["_id"])

        return jsonify(
            {
                "student": student,
                "current_term": {"year": current.year, "term": current.term},
                "ongoing": [_serialize_record(r) for r in ongoing_records(history)],
                "previous_term": {
                    "year": previous.year,
                    "term": previous.term,
                    "courses": [_serialize_record(r) for r in term_records(history, previous)],
                },
                "yearly_averages": yearly_averages(history),
            }
        )
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError:
        return _handle_db_error("Failed to load dashboard")


def _catalog_sort_key(field: str):
    numeric = field in NUMERIC_SORT_FIELDS

    def key(offering: Dict[str, Any]):
        value = offering.get(field)
        # Missing values sort last in ascending order.
        if value is None:
            return (True, 0 if numeric else "")
        if numeric:
            return (False, value)
        return (False, str(value))

    return key


@portal_bp.get("/catalog")
def course_catalog():
    try:
        filters = CatalogFilters.from_args(request.args)
        paging = parse_page_request(
            request.args,
            sort_fields=CATALOG_SORT_FIELDS,
            default_sort="course_id",
        )
    except (CatalogParamError, PagingParamError) as exc:
        return _json_error(str(exc), 400)

    student_id = _clean_string(request.args.get("student_id"))

    try:
        offerings = load_offerings()
        facets = catalog_facets(offerings)

        matching: List[Dict[str, Any]] = list(filter_offerings(offerings, filters))
        matching.sort(key=_catalog_sort_key(paging.sort_field), reverse=paging.descending)

        if student_id:
            registered = {
                (r.course_code, r.year, r.term) for r in grade_history(student_id)
            }
            matching = [
                {**o, "registered": (o["course_id"], o["year"], o["term"]) in registered}
                for o in matching
            ]

        payload = paginate(matching, paging)
        payload["facets"] = facets
        return jsonify(payload)
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError:
        return _handle_db_error("Failed to load catalog")


__all__ = ["portal_bp"]
