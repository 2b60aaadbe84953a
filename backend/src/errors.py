"""Error types raised by request handlers and their JSON rendering."""

from __future__ import annotations

from typing import Any, Dict

from flask import jsonify

GENERIC_SERVER_MESSAGE = "Internal server error"


class ApiError(Exception):
    """Base class for failures reported to the client with a status code."""

    status = 500

    def __init__(self, message: str, details: Dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or None


class ValidationError(ApiError):
    """Missing or invalid field, or a uniqueness violation."""

    status = 400


class NotFoundError(ApiError):
    status = 404


class ConflictError(ApiError):
    """The request clashes with existing data, e.g. enrolled students."""

    status = 400


class InternalError(ApiError):
    status = 500

    def __init__(self, message: str = GENERIC_SERVER_MESSAGE) -> None:
        super().__init__(message)


def json_error(message: str, status: int, details: Dict[str, Any] | None = None):
    payload: Dict[str, Any] = {"message": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def api_error_response(exc: ApiError):
    return json_error(exc.message, exc.status, exc.details)


__all__ = [
    "ApiError",
    "ConflictError",
    "GENERIC_SERVER_MESSAGE",
    "InternalError",
    "NotFoundError",
    "ValidationError",
    "api_error_response",
    "json_error",
]
