from __future__ import annotations

import logging
import math
import platform
import re
import resource
import sys
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, Tuple

from flask import Flask, g, jsonify, request
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from werkzeug.exceptions import HTTPException

from backend.src import config
from backend.src.config import ConfigError
from backend.src.db import (
    describe_host,
    get_courses_collection,
    get_students_collection,
    parse_object_id,
    ping,
    serialize_course,
    serialize_student,
    utcnow,
)
from backend.src.errors import (
    GENERIC_SERVER_MESSAGE,
    ApiError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
    api_error_response,
    json_error,
)
from backend.src.grades import validate_grade_mapping
from backend.src.logging_config import configure_logging
from backend.src.routes import grades_bp, reports_bp
from backend.src.stats import ACTIVE, STATUSES

configure_logging()

app = Flask(__name__)

app.register_blueprint(reports_bp)
app.register_blueprint(grades_bp)

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


def _clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _parse_datetime(value: Any) -> datetime | None:
    """Parse ``YYYY-MM-DD`` or an ISO-8601 date-time into an aware UTC datetime."""

    if isinstance(value, datetime):
        parsed = value
    else:
        text = _clean_string(value)
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                day = date.fromisoformat(text)
            except ValueError:
                return None
            parsed = datetime(day.year, day.month, day.day)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _validate_status(payload: Dict[str, Any], cleaned: Dict[str, Any], errors: Dict[str, str]) -> None:
    if "status" not in payload or payload.get("status") in (None, ""):
        return
    status = _clean_string(payload.get("status")).lower()
    if status not in STATUSES:
        errors["status"] = "Status must be one of: " + ", ".join(STATUSES) + "."
    else:
        cleaned["status"] = status


def _validate_student_payload(
    payload: Dict[str, Any] | None, *, require_all: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    if not isinstance(payload, dict):
        return {}, {"_global": "Request body must be a JSON object."}

    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    def require_field(field: str, message: str) -> bool:
        if field not in payload or _clean_string(payload.get(field)) == "":
            errors[field] = message
            return False
        return True

    if require_all or "studentName" in payload:
        if require_field("studentName", "Student name is required."):
            cleaned["studentName"] = _clean_string(payload.get("studentName"))

    if require_all or "email" in payload:
        if require_field("email", "Email is required."):
            email = _clean_string(payload.get("email"))
            if "@" not in email or "." not in email.split("@")[-1]:
                errors["email"] = "Enter a valid email address."
            else:
                cleaned["email"] = email.lower()

    if require_all or "course" in payload:
        if require_field("course", "Course is required."):
            cleaned["course"] = _clean_string(payload.get("course"))

    if require_all or "enrollmentDate" in payload:
        if require_field("enrollmentDate", "Enrollment date is required."):
            enrolled_on = _parse_datetime(payload.get("enrollmentDate"))
            if enrolled_on is None:
                errors["enrollmentDate"] = "Enrollment date must be an ISO-8601 date."
            else:
                cleaned["enrollmentDate"] = enrolled_on

    _validate_status(payload, cleaned, errors)

    if "grades" in payload:
        try:
            cleaned["grades"] = validate_grade_mapping(payload.get("grades"))
        except ValidationError as exc:
            errors.update(exc.details or {"grades": exc.message})

    return cleaned, errors


def _validate_course_payload(
    payload: Dict[str, Any] | None, *, require_all: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    if not isinstance(payload, dict):
        return {}, {"_global": "Request body must be a JSON object."}

    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    def require_field(field: str, message: str) -> bool:
        if field not in payload or _clean_string(payload.get(field)) == "":
            errors[field] = message
            return False
        return True

    if require_all or "courseName" in payload:
        if require_field("courseName", "Course name is required."):
            cleaned["courseName"] = _clean_string(payload.get("courseName"))

    if require_all or "description" in payload:
        if require_field("description", "Description is required."):
            cleaned["description"] = _clean_string(payload.get("description"))

    if require_all or "duration" in payload:
        raw_duration = payload.get("duration")
        if raw_duration in (None, "") or isinstance(raw_duration, bool):
            errors["duration"] = "Duration is required."
        else:
            try:
                duration = float(raw_duration)
                if not math.isfinite(duration) or duration <= 0:
                    raise ValueError
                cleaned["duration"] = int(duration) if duration.is_integer() else duration
            except (TypeError, ValueError):
                errors["duration"] = "Duration must be a positive number."

    _validate_status(payload, cleaned, errors)

    return cleaned, errors


def _raise_for_errors(errors: Dict[str, str]) -> None:
    if not errors:
        return
    details = {k: v for k, v in errors.items() if k != "_global"}
    message = errors.get("_global", "Validation failed.")
    raise ValidationError(message, details)


def _object_id_or_404(raw_id: str, label: str):
    object_id = parse_object_id(raw_id)
    if object_id is None:
        raise NotFoundError(f"{label} not found")
    return object_id


def _handle_config_error(exc: ConfigError):
    logger.exception("Missing configuration for MongoDB")
    return api_error_response(InternalError())


def _handle_db_error(action: str, exc: PyMongoError):
    logger.exception("%s due to MongoDB error", action)
    return api_error_response(InternalError())


@app.before_request
def _start_request_timer():
    g.request_started = time.perf_counter()


@app.after_request
def _log_request(response):
    started = g.get("request_started")
    duration_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
    body = request.get_json(silent=True) if request.method != "GET" else None
    logger.info(
        "%s %s %s %.1fms query=%s body=%s",
        request.method,
        request.path,
        response.status_code,
        duration_ms,
        request.args.to_dict(),
        body,
    )
    return response


@app.errorhandler(ApiError)
def _api_error(exc: ApiError):
    if exc.status >= 500:
        logger.error("%s %s failed: %s", request.method, request.path, exc.message)
    return api_error_response(exc)


@app.errorhandler(HTTPException)
def _http_error(exc: HTTPException):
    return json_error(exc.description or exc.name, exc.code or 500)


@app.errorhandler(Exception)
def _unhandled_error(exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return api_error_response(InternalError())


def _format_uptime(seconds: float) -> str:
    days, remainder = divmod(int(seconds), 3600 * 24)
    hours, remainder = divmod(remainder, 3600)
    minutes, remaining_seconds = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if remaining_seconds > 0:
        parts.append(f"{remaining_seconds}s")
    return " ".join(parts)


def _max_rss_megabytes() -> int:
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS and kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(usage / divisor)


def _timestamp() -> str:
    return utcnow().isoformat().replace("+00:00", "Z")


@app.get("/health")
def health():
    return jsonify(
        {
            "status": "UP",
            "timestamp": _timestamp(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "environment": config.ENVIRONMENT,
        }
    )


@app.get("/health/detailed")
def health_detailed():
    try:
        try:
            ping()
            db_status = "Connected"
        except (ConfigError, PyMongoError):
            logger.warning("MongoDB ping failed during health check", exc_info=True)
            db_status = "Disconnected"

        uptime = time.monotonic() - _STARTED_AT
        return jsonify(
            {
                "status": "UP",
                "timestamp": _timestamp(),
                "database": {
                    "status": db_status,
                    "name": "MongoDB",
                    "host": describe_host(),
                },
                "system": {
                    "memory": {"maxResident": _max_rss_megabytes(), "unit": "MB"},
                    "uptime": {
                        "seconds": round(uptime),
                        "formatted": _format_uptime(uptime),
                    },
                    "pythonVersion": platform.python_version(),
                    "platform": sys.platform,
                },
                "environment": config.ENVIRONMENT,
            }
        )
    except Exception:
        logger.exception("Detailed health check failed")
        return (
            jsonify({"status": "DOWN", "timestamp": _timestamp(), "message": GENERIC_SERVER_MESSAGE}),
            500,
        )


# Courses


@app.get("/api/courses")
def list_courses():
    try:
        collection = get_courses_collection()
        courses = [
            serialize_course(doc)
            for doc in collection.find({}, sort=[("courseName", 1)])
        ]
        logger.info("Retrieved %d courses", len(courses))
        return jsonify(courses)
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to list courses", exc)


@app.post("/api/courses")
def create_course():
    cleaned, errors = _validate_course_payload(request.get_json(silent=True), require_all=True)
    _raise_for_errors(errors)

    now = utcnow()
    document = {"status": ACTIVE, **cleaned, "createdAt": now, "updatedAt": now}

    try:
        collection = get_courses_collection()
        result = collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("Created course %s (%s)", result.inserted_id, document["courseName"])
        return jsonify(serialize_course(document)), 201
    except ConfigError as exc:
        return _handle_config_error(exc)
    except DuplicateKeyError:
        logger.warning("Duplicate course name %r", document["courseName"])
        raise ValidationError(
            "A course with this name already exists.",
            {"courseName": "Course name already in use."},
        ) from None
    except PyMongoError as exc:
        return _handle_db_error("Failed to create course", exc)


@app.get("/api/courses/<course_id>")
def get_course(course_id: str):
    object_id = _object_id_or_404(course_id, "Course")

    try:
        document = get_courses_collection().find_one({"_id": object_id})
        if document is None:
            raise NotFoundError("Course not found")
        return jsonify(serialize_course(document))
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to fetch course", exc)


@app.put("/api/courses/<course_id>")
def update_course(course_id: str):
    object_id = _object_id_or_404(course_id, "Course")

    cleaned, errors = _validate_course_payload(request.get_json(silent=True), require_all=False)
    _raise_for_errors(errors)
    if not cleaned:
        raise ValidationError("No changes supplied.")

    cleaned["updatedAt"] = utcnow()

    try:
        document = get_courses_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            logger.warning("Course %s not found for update", course_id)
            raise NotFoundError("Course not found")
        logger.info("Updated course %s (%s)", course_id, document.get("courseName"))
        return jsonify(serialize_course(document))
    except ConfigError as exc:
        return _handle_config_error(exc)
    except DuplicateKeyError:
        raise ValidationError(
            "A course with this name already exists.",
            {"courseName": "Course name already in use."},
        ) from None
    except PyMongoError as exc:
        return _handle_db_error("Failed to update course", exc)


@app.delete("/api/courses/<course_id>")
def delete_course(course_id: str):
    object_id = _object_id_or_404(course_id, "Course")

    try:
        # Not atomic: a student may enroll between this count and the delete.
        enrolled = get_students_collection().count_documents({"course": str(object_id)})
        if enrolled > 0:
            logger.warning(
                "Refused to delete course %s with %d enrolled students", course_id, enrolled
            )
            raise ConflictError("Cannot delete course with enrolled students")

        document = get_courses_collection().find_one_and_delete({"_id": object_id})
        if document is None:
            logger.warning("Course %s not found for deletion", course_id)
            raise NotFoundError("Course not found")
        logger.info("Deleted course %s (%s)", course_id, document.get("courseName"))
        return jsonify({"message": "Course deleted successfully"})
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to delete course", exc)


# Students


@app.get("/api/students")
def list_students():
    try:
        collection = get_students_collection()
        students = [
            serialize_student(doc)
            for doc in collection.find({}, sort=[("createdAt", -1), ("_id", -1)])
        ]
        logger.info("Retrieved %d students", len(students))
        return jsonify(students)
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to list students", exc)


@app.get("/api/students/search")
def search_students():
    term = _clean_string(request.args.get("q"))

    filters: Dict[str, Any] = {}
    if term:
        pattern = re.escape(term)
        filters["$or"] = [
            {"studentName": {"$regex": pattern, "$options": "i"}},
            {"course": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]

    try:
        collection = get_students_collection()
        students = [
            serialize_student(doc)
            for doc in collection.find(filters, sort=[("createdAt", -1), ("_id", -1)])
        ]
        logger.info("Student search for %r matched %d", term, len(students))
        return jsonify(students)
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to search students", exc)


@app.post("/api/students")
def create_student():
    cleaned, errors = _validate_student_payload(request.get_json(silent=True), require_all=True)
    _raise_for_errors(errors)

    now = utcnow()
    document = {"status": ACTIVE, "grades": {}, **cleaned, "createdAt": now, "updatedAt": now}

    try:
        collection = get_students_collection()
        result = collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info(
            "Created student %s (%s) in course %s",
            result.inserted_id,
            document["studentName"],
            document["course"],
        )
        return jsonify(serialize_student(document)), 201
    except ConfigError as exc:
        return _handle_config_error(exc)
    except DuplicateKeyError:
        logger.warning("Duplicate email %r on student create", document["email"])
        raise ValidationError(
            "A student with this email already exists.",
            {"email": "Email already in use."},
        ) from None
    except PyMongoError as exc:
        return _handle_db_error("Failed to create student", exc)


@app.get("/api/students/<student_id>")
def get_student(student_id: str):
    object_id = _object_id_or_404(student_id, "Student")

    try:
        document = get_students_collection().find_one({"_id": object_id})
        if document is None:
            raise NotFoundError("Student not found")
        return jsonify(serialize_student(document))
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to fetch student", exc)


@app.put("/api/students/<student_id>")
def update_student(student_id: str):
    object_id = _object_id_or_404(student_id, "Student")

    cleaned, errors = _validate_student_payload(request.get_json(silent=True), require_all=False)
    _raise_for_errors(errors)
    if not cleaned:
        raise ValidationError("No changes supplied.")

    cleaned["updatedAt"] = utcnow()

    try:
        document = get_students_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            logger.warning("Student %s not found for update", student_id)
            raise NotFoundError("Student not found")
        logger.info("Updated student %s (%s)", student_id, document.get("studentName"))
        return jsonify(serialize_student(document))
    except ConfigError as exc:
        return _handle_config_error(exc)
    except DuplicateKeyError:
        raise ValidationError(
            "A student with this email already exists.",
            {"email": "Email already in use."},
        ) from None
    except PyMongoError as exc:
        return _handle_db_error("Failed to update student", exc)


@app.delete("/api/students/<student_id>")
def delete_student(student_id: str):
    object_id = _object_id_or_404(student_id, "Student")

    try:
        document = get_students_collection().find_one_and_delete({"_id": object_id})
        if document is None:
            logger.warning("Student %s not found for deletion", student_id)
            raise NotFoundError("Student not found")
        logger.info("Deleted student %s (%s)", student_id, document.get("studentName"))
        return jsonify({"message": "Student deleted successfully"})
    except ConfigError as exc:
        return _handle_config_error(exc)
    except PyMongoError as exc:
        return _handle_db_error("Failed to delete student", exc)


if __name__ == "__main__":
    if config.SEED_ON_STARTUP:
        from backend.src.seed import import_seed_data

        import_seed_data(only_if_empty=True)
    app.run(port=config.PORT, debug=config.ENVIRONMENT == "development")
