"""Grade sheet endpoints for a single student."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_courses_collection, get_students_collection, parse_object_id, utcnow
from ..errors import GENERIC_SERVER_MESSAGE, NotFoundError, ValidationError, json_error
from ..grades import NO_GRADE, merge_grades
from ..stats import is_active

grades_bp = Blueprint("grades", __name__, url_prefix="/api/students")

logger = logging.getLogger(__name__)


def _find_student(student_id: str):
    object_id = parse_object_id(student_id)
    if object_id is None:
        raise NotFoundError("Student not found")

    document = get_students_collection().find_one({"_id": object_id})
    if document is None:
        raise NotFoundError("Student not found")
    return document


@grades_bp.get("/<student_id>/grades")
def get_grades(student_id: str):
    try:
        student = _find_student(student_id)
        courses = get_courses_collection().find({}, projection={"_id": 1, "status": 1})

        recorded = student.get("grades")
        if not isinstance(recorded, dict):
            recorded = {}
        grades = {}
        for course in courses:
            if not is_active(course):
                continue
            course_id = str(course["_id"])
            grade = recorded.get(course_id)
            grades[course_id] = grade if isinstance(grade, str) and grade else NO_GRADE

        logger.info("Loaded %d grades for student %s", len(grades), student_id)
        return jsonify(
            {
                "studentId": str(student["_id"]),
                "studentName": student.get("studentName"),
                "grades": grades,
            }
        )
    except ConfigError:
        logger.exception("Missing configuration for MongoDB")
        return json_error(GENERIC_SERVER_MESSAGE, 500)
    except PyMongoError:
        logger.exception("Failed to fetch grades due to MongoDB error")
        return json_error(GENERIC_SERVER_MESSAGE, 500)


@grades_bp.put("/<student_id>/grades")
def update_grades(student_id: str):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or "grades" not in payload:
        raise ValidationError("Request body must be a JSON object with a grades mapping.")

    try:
        student = _find_student(student_id)
        _, changes = merge_grades(student.get("grades"), payload.get("grades"))

        if changes:
            update = {f"grades.{course_id}": grade for course_id, grade in changes.items()}
            update["updatedAt"] = utcnow()
            get_students_collection().update_one({"_id": student["_id"]}, {"$set": update})

        logger.info(
            "Updated %d of %d submitted grades for student %s",
            len(changes),
            len(payload["grades"]),
            student_id,
        )
        return jsonify(
            {
                "message": "Grades updated successfully",
                "studentId": str(student["_id"]),
                "studentName": student.get("studentName"),
                "updatedCourses": sorted(changes),
            }
        )
    except ConfigError:
        logger.exception("Missing configuration for MongoDB")
        return json_error(GENERIC_SERVER_MESSAGE, 500)
    except PyMongoError:
        logger.exception("Failed to update grades due to MongoDB error")
        return json_error(GENERIC_SERVER_MESSAGE, 500)


__all__ = ["grades_bp"]
