"""Letter grade constants and the grade-sheet merge rules."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from .errors import ValidationError

NO_GRADE = "none"
FAILING_GRADE = "F"

GRADE_ORDER: Tuple[str, ...] = (
    "A+",
    "A",
    "A-",
    "B+",
    "B",
    "B-",
    "C+",
    "C",
    "C-",
    "D+",
    "D",
    "D-",
    "F",
)

GRADE_ORDER_INDEX = {grade: index for index, grade in enumerate(GRADE_ORDER)}


def is_passing_grade(grade: Any) -> bool:
    """A grade passes when it is a non-empty string other than ``F`` or ``none``."""

    if not isinstance(grade, str) or not grade:
        return False
    return grade not in (FAILING_GRADE, NO_GRADE)


def count_passing_grades(grades: Any) -> int:
    if not isinstance(grades, Mapping):
        return 0
    return sum(1 for grade in grades.values() if is_passing_grade(grade))


def _validate_course_key(course_id: Any) -> str:
    if not isinstance(course_id, str) or not course_id.strip():
        raise ValidationError(
            "Validation failed.", {"grades": "Course identifiers must be non-empty strings."}
        )
    key = course_id.strip()
    if "." in key or key.startswith("$"):
        raise ValidationError(
            "Validation failed.", {key: "Course identifier contains invalid characters."}
        )
    return key


def normalize_grade(value: Any, *, field: str = "grade") -> str | None:
    """Return the canonical grade for ``value``, or None for "leave untouched".

    Blank strings, ``None`` and the ``none`` sentinel all mean "no change".
    Letters are matched case-insensitively.
    """

    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Validation failed.", {field: "Grades must be strings."})

    cleaned = value.strip()
    if not cleaned or cleaned.lower() == NO_GRADE:
        return None

    letter = cleaned.upper()
    if letter not in GRADE_ORDER_INDEX:
        raise ValidationError(
            "Validation failed.",
            {field: "Grade must be one of: " + ", ".join(GRADE_ORDER) + "."},
        )
    return letter


def merge_grades(existing: Any, proposed: Any) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Apply an additive grade update.

    Returns ``(merged, changes)`` where ``changes`` holds only the course ids
    that received a value. Entries that are blank or ``none`` never clear an
    existing grade. Every entry is validated before anything is merged.
    """

    if not isinstance(proposed, Mapping):
        raise ValidationError(
            "Validation failed.", {"grades": "grades must be an object of courseId to grade."}
        )

    changes: Dict[str, str] = {}
    for course_id, value in proposed.items():
        key = _validate_course_key(course_id)
        letter = normalize_grade(value, field=key)
        if letter is not None:
            changes[key] = letter

    merged: Dict[str, str] = dict(existing) if isinstance(existing, Mapping) else {}
    merged.update(changes)
    return merged, changes


def validate_grade_mapping(value: Any) -> Dict[str, str]:
    """Validate a full grade mapping supplied on student create/update."""

    if value in (None, ""):
        return {}
    _, changes = merge_grades({}, value)
    return changes


__all__ = [
    "FAILING_GRADE",
    "GRADE_ORDER",
    "GRADE_ORDER_INDEX",
    "NO_GRADE",
    "count_passing_grades",
    "is_passing_grade",
    "merge_grades",
    "normalize_grade",
    "validate_grade_mapping",
]
