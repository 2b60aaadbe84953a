"""Connection string parsing."""

from __future__ import annotations

import os
import unittest
from unittest import mock

from backend.src import config
from backend.src.config import ConfigError, parse_db_name


class DatabaseNameTestCase(unittest.TestCase):
    def tearDown(self) -> None:
        config.reset_cache()

    def test_name_from_uri_path(self) -> None:
        self.assertEqual(
            "student-management-app",
            parse_db_name("mongodb://localhost:27017/student-management-app"),
        )
        self.assertEqual(
            "school",
            parse_db_name("mongodb+srv://user:pw@cluster.example.net/school?retryWrites=true"),
        )

    def test_uri_without_database(self) -> None:
        for uri in ("mongodb://localhost:27017", "mongodb://localhost:27017/", ""):
            with self.subTest(uri=uri):
                with self.assertRaises(ConfigError):
                    parse_db_name(uri)

    def test_explicit_database_wins(self) -> None:
        config.reset_cache()
        with mock.patch.dict(os.environ, {"MONGODB_DB": "override"}):
            self.assertEqual("override", config.get_db_name())

    def test_default_uri(self) -> None:
        config.reset_cache()
        env = {k: v for k, v in os.environ.items() if k not in ("MONGODB_URI", "MONGODB_DB")}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(config.DEFAULT_MONGO_URI, config.get_mongo_uri())
            self.assertEqual("student-management-app", config.get_db_name())


if __name__ == "__main__":
    unittest.main()
