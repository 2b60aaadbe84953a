"""MongoDB helpers for the application."""

from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.uri_parser import parse_uri

from .config import get_db_name, get_mongo_uri

_MONGO_CLIENT = None
_MONGO_DB = None

_students_indexes_created = False
_courses_indexes_created = False


def _get_client():
    """Create (or reuse) a MongoDB client using the configured URI."""

    global _MONGO_CLIENT

    if _MONGO_CLIENT is None:
        _MONGO_CLIENT = MongoClient(get_mongo_uri(), serverSelectionTimeoutMS=5000)
    return _MONGO_CLIENT


def configure_client(client) -> None:
    """Install an already constructed client (tests, seeding scripts)."""

    global _MONGO_CLIENT, _MONGO_DB
    global _students_indexes_created, _courses_indexes_created

    _MONGO_CLIENT = client
    _MONGO_DB = None
    _students_indexes_created = False
    _courses_indexes_created = False


def get_db():
    """Return the application's MongoDB database instance."""

    global _MONGO_DB

    if _MONGO_DB is None:
        _MONGO_DB = _get_client()[get_db_name()]
    return _MONGO_DB


def ping() -> bool:
    """Return True when the server answers a ping command."""

    _get_client().admin.command("ping")
    return True


def describe_host() -> str:
    """Return the host list of the configured URI, e.g. ``localhost:27017``."""

    nodes = parse_uri(get_mongo_uri()).get("nodelist", [])
    return ",".join(f"{host}:{port}" for host, port in nodes)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value):
    """Return ``ObjectId(value)`` or None when the value is not a valid id."""

    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value).strip())
    except (InvalidId, TypeError):
        return None


def _ensure_students_indexes(collection: Collection) -> None:
    global _students_indexes_created
    if _students_indexes_created:
        return

    collection.create_index("email", unique=True, name="unique_email")
    collection.create_index(
        [("course", ASCENDING)],
        name="course_idx",
        background=True,
    )
    collection.create_index(
        [("createdAt", DESCENDING)],
        name="created_at_desc",
        background=True,
    )
    _students_indexes_created = True


def get_students_collection() -> Collection:
    """Return the collection that stores student documents."""

    collection = get_db()["students"]
    _ensure_students_indexes(collection)
    return collection


def _isoformat(value):
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


def serialize_student(document):
    """Convert a MongoDB student document into a JSON-serialisable dict."""

    grades = document.get("grades") or {}
    if not isinstance(grades, dict):
        grades = {}

    return {
        "_id": str(document.get("_id", "")),
        "studentName": document.get("studentName"),
        "email": document.get("email"),
        "course": document.get("course"),
        "enrollmentDate": _isoformat(document.get("enrollmentDate")),
        "status": document.get("status") or "active",
        "grades": dict(grades),
        "createdAt": _isoformat(document.get("createdAt")),
        "updatedAt": _isoformat(document.get("updatedAt")),
    }


def _ensure_courses_indexes(collection: Collection) -> None:
    global _courses_indexes_created
    if _courses_indexes_created:
        return

    collection.create_index("courseName", unique=True, name="unique_course_name")
    collection.create_index(
        [("status", ASCENDING)],
        name="status_idx",
        background=True,
    )
    _courses_indexes_created = True


def get_courses_collection() -> Collection:
    """Return the courses collection and ensure supporting indexes."""

    collection = get_db()["courses"]
    _ensure_courses_indexes(collection)
    return collection


def serialize_course(document):
    """Serialize a raw Mongo course document to JSON-friendly dict."""

    duration = document.get("duration")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        duration = None
    elif isinstance(duration, float) and duration.is_integer():
        duration = int(duration)

    return {
        "_id": str(document.get("_id", "")),
        "courseName": document.get("courseName"),
        "description": document.get("description"),
        "duration": duration,
        "status": document.get("status") or "active",
        "createdAt": _isoformat(document.get("createdAt")),
        "updatedAt": _isoformat(document.get("updatedAt")),
    }


__all__ = [
    "configure_client",
    "describe_host",
    "get_db",
    "get_students_collection",
    "serialize_student",
    "get_courses_collection",
    "serialize_course",
    "parse_object_id",
    "ping",
    "utcnow",
]
