"""Sample data import shared by the seed script and server start-up."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .db import get_courses_collection, get_students_collection, utcnow

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]
SEED_PATH = ROOT_DIR / "scripts" / "seed.json"


class SeedDataError(ValueError):
    """Raised when the seed file does not have the expected shape."""


def read_seed_file(path: Path | None = None) -> Dict[str, List[Dict[str, Any]]]:
    seed_path = path or SEED_PATH
    with Path(seed_path).open("r", encoding="utf-8") as seed_file:
        data = json.load(seed_file)
    if not isinstance(data, dict):
        raise SeedDataError("Seed file must contain an object of collections")
    for name in ("courses", "students"):
        if not isinstance(data.get(name, []), list):
            raise SeedDataError(f"Seed data for '{name}' must be a list")
    return data


def _parse_seed_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def prepare_students(
    students: List[Dict[str, Any]], course_ids: Dict[str, str]
) -> List[Dict[str, Any]]:
    """Swap course names for the inserted course ids.

    Seed students name their course (and the keys of their grades) by
    ``courseName`` since ids only exist after the courses are inserted;
    run ``check_references`` first.
    """

    now = utcnow()
    prepared = []
    for entry in students:
        grades = {
            course_ids[name]: grade for name, grade in (entry.get("grades") or {}).items()
        }

        prepared.append(
            {
                "studentName": entry["studentName"],
                "email": str(entry["email"]).strip().lower(),
                "course": course_ids[entry["course"]],
                "enrollmentDate": _parse_seed_date(entry["enrollmentDate"]),
                "status": entry.get("status", "active"),
                "grades": grades,
                "createdAt": now,
                "updatedAt": now,
            }
        )
    return prepared


def check_references(seed_data: Dict[str, List[Dict[str, Any]]]) -> None:
    """Ensure every student names a course defined in the same seed data."""

    known = {course.get("courseName") for course in seed_data.get("courses", [])}
    for entry in seed_data.get("students", []):
        course_name = entry.get("course")
        if course_name not in known:
            raise SeedDataError(f"Unknown course {course_name!r} for {entry.get('email')}")
        for name in entry.get("grades") or {}:
            if name not in known:
                raise SeedDataError(f"Unknown graded course {name!r} for {entry.get('email')}")


def import_seed_data(
    data: Dict[str, List[Dict[str, Any]]] | None = None,
    *,
    only_if_empty: bool = False,
) -> Tuple[int, int] | None:
    """Load sample courses and students, returning the inserted counts.

    With ``only_if_empty`` nothing happens unless both collections are
    empty; otherwise existing documents are replaced. Course references
    are checked before anything is deleted.
    """

    courses_collection = get_courses_collection()
    students_collection = get_students_collection()

    if only_if_empty:
        course_count = courses_collection.count_documents({})
        student_count = students_collection.count_documents({})
        if course_count or student_count:
            logger.info(
                "Database already has data (%d courses, %d students), skipping seed import",
                course_count,
                student_count,
            )
            return None

    seed_data = data if data is not None else read_seed_file()
    check_references(seed_data)

    students_collection.delete_many({})
    courses_collection.delete_many({})

    now = utcnow()
    courses = [
        {"status": "active", **course, "createdAt": now, "updatedAt": now}
        for course in seed_data.get("courses", [])
    ]
    course_ids: Dict[str, str] = {}
    if courses:
        result = courses_collection.insert_many(courses)
        for course, inserted_id in zip(courses, result.inserted_ids):
            course_ids[course["courseName"]] = str(inserted_id)

    students = prepare_students(seed_data.get("students", []), course_ids)
    if students:
        students_collection.insert_many(students)

    logger.info("Imported %d courses and %d students", len(courses), len(students))
    return len(courses), len(students)


__all__ = [
    "SEED_PATH",
    "SeedDataError",
    "check_references",
    "import_seed_data",
    "prepare_students",
    "read_seed_file",
]
