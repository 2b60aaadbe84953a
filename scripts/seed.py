"""Seed helper that loads sample documents into MongoDB."""

from __future__ import annotations

import argparse
from pathlib import Path

from pymongo.errors import PyMongoError

from backend.src.config import ConfigError, get_db_name
from backend.src.logging_config import configure_logging
from backend.src.seed import SEED_PATH, SeedDataError, import_seed_data, read_seed_file


def main() -> None:
    parser = argparse.ArgumentParser(description="Load sample courses and students.")
    parser.add_argument(
        "--if-empty",
        action="store_true",
        help="only import when both collections are empty",
    )
    parser.add_argument("--file", type=Path, default=SEED_PATH, help="seed JSON file")
    args = parser.parse_args()

    configure_logging()

    try:
        db_name = get_db_name()
        seed_data = read_seed_file(args.file)
        counts = import_seed_data(seed_data, only_if_empty=args.if_empty)
    except ConfigError as exc:  # pragma: no cover - simple CLI utility
        print(f"Configuration error: {exc}")
        raise SystemExit(1)
    except SeedDataError as exc:
        print(f"Invalid seed file: {exc}")
        raise SystemExit(1)
    except PyMongoError as exc:  # pragma: no cover - requires Mongo connection
        print(f"MongoDB error: {exc}")
        raise SystemExit(1)

    if counts is None:
        print(f"Database '{db_name}' already has data; nothing imported.")
        return

    courses, students = counts
    print(f"Loaded {courses} course(s) and {students} student(s) into '{db_name}'.")


if __name__ == "__main__":
    main()
