"""MongoDB helpers for the portal."""

from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.collection import Collection

from .config import get_db_name, get_mongo_uri

_MONGO_CLIENT = None
_MONGO_DB = None

SUB_SCORE_FIELDS = ("midterm", "project", "final", "quizzes")


def _get_client():
    """Create (or reuse) a MongoDB client using the configured URI."""

    global _MONGO_CLIENT

    if _MONGO_CLIENT is None:
        _MONGO_CLIENT = MongoClient(get_mongo_uri(), serverSelectionTimeoutMS=5000)
    return _MONGO_CLIENT


def get_db():
    """Return the portal's MongoDB database instance."""

    global _MONGO_DB

    if _MONGO_DB is None:
        _MONGO_DB = _get_client()[get_db_name()]
    return _MONGO_DB


_indexes_created = set()


def _ensure_indexes(collection: Collection, indexes) -> None:
    if collection.name in _indexes_created:
        return
    if indexes:
        collection.create_indexes(indexes)
    _indexes_created.add(collection.name)


def get_students_collection() -> Collection:
    """Return the collection that stores student documents."""

    collection = get_db()["students"]
    _ensure_indexes(
        collection,
        [
            IndexModel(
                [("dept_id", ASCENDING), ("semester_level", ASCENDING)],
                name="dept_level",
                background=True,
            ),
        ],
    )
    return collection


def get_departments_collection() -> Collection:
    return get_db()["departments"]


def get_instructors_collection() -> Collection:
    collection = get_db()["instructors"]
    _ensure_indexes(
        collection,
        [IndexModel([("dept_id", ASCENDING)], name="dept_id_idx", background=True)],
    )
    return collection


def get_courses_collection() -> Collection:
    """Return the courses collection and ensure supporting indexes."""

    collection = get_db()["courses"]
    _ensure_indexes(
        collection,
        [
            IndexModel([("dept_id", ASCENDING)], name="dept_id_idx", background=True),
            IndexModel([("title", ASCENDING)], name="title_idx", background=True),
        ],
    )
    return collection


def get_sections_collection() -> Collection:
    """Return the class sections collection with indexes ensured."""

    collection = get_db()["class_sections"]
    _ensure_indexes(
        collection,
        [
            IndexModel(
                [("course_id", ASCENDING), ("year", DESCENDING), ("term", ASCENDING)],
                name="course_term",
                background=True,
            ),
            IndexModel(
                [("year", DESCENDING), ("term", ASCENDING)],
                name="year_term",
                background=True,
            ),
        ],
    )
    return collection


def get_enrollments_collection() -> Collection:
    """Return the enrollments collection ensuring indexes exist."""

    collection = get_db()["enrollments"]
    _ensure_indexes(
        collection,
        [
            IndexModel([("section_id", ASCENDING)], name="section_id_idx", background=True),
            IndexModel(
                [("student_id", ASCENDING), ("section_id", ASCENDING)],
                name="unique_student_section",
                unique=True,
                background=True,
            ),
        ],
    )
    return collection


def _int_or_none(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def serialize_student(document):
    """Convert a MongoDB student document into a JSON-serialisable dict."""

    return {
        "_id": str(document.get("_id", "")),
        "full_name": document.get("full_name"),
        "email": document.get("email"),
        "dept_id": document.get("dept_id"),
        "semester_level": document.get("semester_level"),
    }


def serialize_department(document):
    return {
        "_id": str(document.get("_id", "")),
        "name": document.get("name"),
        "head": document.get("head"),
    }


def serialize_course(document):
    """Serialize a raw Mongo course document to JSON-friendly dict."""

    prereqs = document.get("prereq_ids", [])
    if not isinstance(prereqs, list):
        prereqs = []

    return {
        "_id": str(document.get("_id", "")),
        "title": document.get("title"),
        "dept_id": document.get("dept_id"),
        "credits": _int_or_none(document.get("credits")),
        "prereq_ids": prereqs,
        "level": document.get("level"),
        "instructor": document.get("instructor"),
        "description": document.get("description"),
        "active": bool(document.get("active", True)),
    }


def serialize_section(document):
    """Serialize a class section document into JSON serialisable dict."""

    return {
        "_id": str(document.get("_id", "")),
        "course_id": document.get("course_id"),
        "year": _int_or_none(document.get("year")),
        "term": document.get("term"),
        "section_no": document.get("section_no"),
        "instructor_id": document.get("instructor_id"),
        "capacity": _int_or_none(document.get("capacity")),
        "status": document.get("status"),
    }


__all__ = [
    "SUB_SCORE_FIELDS",
    "get_db",
    "get_students_collection",
    "get_departments_collection",
    "get_instructors_collection",
    "get_courses_collection",
    "get_sections_collection",
    "get_enrollments_collection",
    "serialize_student",
    "serialize_department",
    "serialize_course",
    "serialize_section",
]
