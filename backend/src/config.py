"""Application configuration helpers."""

import os

from dotenv import load_dotenv

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DOTENV_PATH = os.path.join(_BASE_DIR, ".env")

if os.path.exists(_DOTENV_PATH):
    load_dotenv(_DOTENV_PATH)


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


DEFAULT_MONGO_URI = "mongodb://localhost:27017/student-management-app"

_MONGO_URI_CACHE = None
_DB_NAME_CACHE = None


def _int_env(name, default):
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}.") from None


def _bool_env(name, default=False):
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


ENVIRONMENT = os.getenv("APP_ENV", "development")
PORT = _int_env("PORT", 3000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR") or None
SEED_ON_STARTUP = _bool_env("SEED_ON_STARTUP")


def get_mongo_uri():
    """Return the MongoDB connection string from the environment."""

    global _MONGO_URI_CACHE

    if _MONGO_URI_CACHE:
        return _MONGO_URI_CACHE

    uri = os.getenv("MONGODB_URI") or DEFAULT_MONGO_URI

    _MONGO_URI_CACHE = uri
    return uri


def get_db_name():
    """Return the database name derived from the MongoDB URI or env var."""

    global _DB_NAME_CACHE

    if _DB_NAME_CACHE:
        return _DB_NAME_CACHE

    db_name = os.getenv("MONGODB_DB")
    if db_name:
        _DB_NAME_CACHE = db_name
        return db_name

    candidate = parse_db_name(get_mongo_uri())
    _DB_NAME_CACHE = candidate
    return candidate


def parse_db_name(uri):
    """Extract the database path segment from a MongoDB connection string."""

    main = uri.split("?", 1)[0].rstrip("/")
    if not main:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    if "://" in main:
        after_scheme = main.split("://", 1)[1]
    else:
        after_scheme = main

    if "/" not in after_scheme:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    candidate = after_scheme.split("/", 1)[1]
    if not candidate:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    return candidate


def reset_cache():
    """Forget cached connection settings so the environment is re-read."""

    global _MONGO_URI_CACHE, _DB_NAME_CACHE

    _MONGO_URI_CACHE = None
    _DB_NAME_CACHE = None


__all__ = [
    "ConfigError",
    "DEFAULT_MONGO_URI",
    "ENVIRONMENT",
    "LOG_DIR",
    "LOG_LEVEL",
    "PORT",
    "SEED_ON_STARTUP",
    "get_mongo_uri",
    "get_db_name",
    "parse_db_name",
    "reset_cache",
]
