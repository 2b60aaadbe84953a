"""Reports and analytics endpoints."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_courses_collection, get_students_collection
from ..errors import GENERIC_SERVER_MESSAGE, json_error
from ..stats import course_passing_rates, dashboard_summary

reports_bp = Blueprint("reports", __name__, url_prefix="/api")

logger = logging.getLogger(__name__)

_STUDENT_FIELDS = {"course": 1, "grades": 1, "status": 1}
_COURSE_FIELDS = {"courseName": 1, "status": 1}


def _load_students():
    return list(get_students_collection().find({}, projection=_STUDENT_FIELDS))


@reports_bp.get("/dashboard/stats")
def dashboard_stats():
    try:
        students = _load_students()
        courses = list(get_courses_collection().find({}, projection=_COURSE_FIELDS))

        stats = dashboard_summary(students, courses)
        logger.info(
            "Dashboard stats: %d students, %d graduates, success rate %d%%",
            stats["totalStudents"],
            stats["graduates"],
            stats["successRate"],
        )
        return jsonify(stats)
    except ConfigError:
        logger.exception("Missing configuration for MongoDB")
        return json_error(GENERIC_SERVER_MESSAGE, 500)
    except PyMongoError:
        logger.exception("Failed to compute dashboard stats due to MongoDB error")
        return json_error(GENERIC_SERVER_MESSAGE, 500)


@reports_bp.get("/reports/course-passing-rates")
def passing_rates():
    try:
        courses = list(get_courses_collection().find({}, projection=_COURSE_FIELDS))
        students = _load_students()

        report = course_passing_rates(courses, students)
        logger.info("Calculated passing rates for %d courses", len(report))
        return jsonify(report)
    except ConfigError:
        logger.exception("Missing configuration for MongoDB")
        return json_error(GENERIC_SERVER_MESSAGE, 500)
    except PyMongoError:
        logger.exception("Failed to calculate course passing rates due to MongoDB error")
        return json_error(GENERIC_SERVER_MESSAGE, 500)


__all__ = ["reports_bp"]
