"""Dashboard figures and the course passing-rate report.

Both computations work on plain lists of student and course documents as
returned by the store and rescan everything on every call. Documents are
trusted as-is: broken course references are not repaired and malformed grade
values simply count as not passing.
"""

from __future__ import annotations

import math
import unicodedata
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping

from .grades import count_passing_grades, is_passing_grade

GRADUATE_MIN_PASSING = 3

ACTIVE = "active"
INACTIVE = "inactive"
STATUSES = (ACTIVE, INACTIVE)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_active(document: Mapping[str, Any]) -> bool:
    """Documents without a status default to active."""

    return (document.get("status") or ACTIVE) == ACTIVE


def _document_id(document: Mapping[str, Any]) -> str:
    return str(document.get("_id", ""))


def is_graduate(student: Mapping[str, Any]) -> bool:
    """A graduate holds passing grades in at least three courses.

    Every grade entry counts, including courses that are inactive or no
    longer exist.
    """

    return count_passing_grades(student.get("grades")) >= GRADUATE_MIN_PASSING


def success_rate(graduates: int, total_students: int) -> int:
    if total_students <= 0:
        return 0
    return _round_half_up(graduates / total_students * 100)


def passing_rate(passing_students: int, total_students: int) -> float:
    if total_students <= 0:
        return 0.0
    return _round_half_up(passing_students / total_students * 1000) / 10


def course_counts(students: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    counter: Counter = Counter(student.get("course") for student in students)
    return [{"_id": course_id, "count": count} for course_id, count in counter.items()]


def dashboard_summary(
    students: Iterable[Mapping[str, Any]],
    courses: Iterable[Mapping[str, Any]],
) -> Dict[str, Any]:
    student_list = list(students)
    course_list = list(courses)

    total_students = len(student_list)
    graduates = sum(1 for student in student_list if is_graduate(student))

    return {
        "totalStudents": total_students,
        "activeStudents": sum(1 for student in student_list if is_active(student)),
        "totalCourses": len(course_list),
        "activeCourses": sum(1 for course in course_list if is_active(course)),
        "graduates": graduates,
        "courseCounts": course_counts(student_list),
        "successRate": success_rate(graduates, total_students),
    }


def _course_name_sort_key(entry: Mapping[str, Any]):
    # accents and case only break ties, so "Éthique" sorts before "Zoology"
    name = entry.get("courseName") or ""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return (base.casefold(), name.casefold(), name)


def course_passing_rates(
    courses: Iterable[Mapping[str, Any]],
    students: Iterable[Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    """Per active course: enrolled students and how many passed that course."""

    student_list = list(students)
    report: List[Dict[str, Any]] = []

    for course in courses:
        if not is_active(course):
            continue

        course_id = _document_id(course)
        enrolled = [student for student in student_list if student.get("course") == course_id]

        passing = 0
        for student in enrolled:
            grades = student.get("grades")
            grade = grades.get(course_id) if isinstance(grades, Mapping) else None
            if is_passing_grade(grade):
                passing += 1

        report.append(
            {
                "courseId": course_id,
                "courseName": course.get("courseName"),
                "totalStudents": len(enrolled),
                "passingStudents": passing,
                "passingRate": passing_rate(passing, len(enrolled)),
            }
        )

    report.sort(key=_course_name_sort_key)
    return report


__all__ = [
    "ACTIVE",
    "GRADUATE_MIN_PASSING",
    "INACTIVE",
    "STATUSES",
    "course_counts",
    "course_passing_rates",
    "dashboard_summary",
    "is_active",
    "is_graduate",
    "passing_rate",
    "success_rate",
]
