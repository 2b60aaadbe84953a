"""Shared fixtures for API tests backed by an in-memory MongoDB."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path
from typing import Any, Dict

import mongomock

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from backend.app import app
from backend.src import db


class ApiTestCase(unittest.TestCase):
    """Runs each test against a fresh mongomock client."""

    def setUp(self) -> None:
        app.config["TESTING"] = True
        self.mongo = mongomock.MongoClient()
        db.configure_client(self.mongo)
        self.client = app.test_client()

    def tearDown(self) -> None:
        db.configure_client(None)

    def create_course(self, **overrides: Any) -> Dict[str, Any]:
        payload = {
            "courseName": "Algorithms",
            "description": "Sorting, graphs and dynamic programming.",
            "duration": 12,
        }
        payload.update(overrides)
        response = self.client.post("/api/courses", json=payload)
        self.assertEqual(201, response.status_code, response.get_json())
        return response.get_json()

    def create_student(self, course_id: str, **overrides: Any) -> Dict[str, Any]:
        payload = {
            "studentName": "Ada Lovelace",
            "email": "ada@example.edu",
            "course": course_id,
            "enrollmentDate": "2024-09-02",
        }
        payload.update(overrides)
        response = self.client.post("/api/students", json=payload)
        self.assertEqual(201, response.status_code, response.get_json())
        return response.get_json()

    def put_grades(self, student_id: str, grades: Dict[str, Any]):
        return self.client.put(f"/api/students/{student_id}/grades", json={"grades": grades})

    def student_count(self) -> int:
        return db.get_students_collection().count_documents({})

    def course_count(self) -> int:
        return db.get_courses_collection().count_documents({})
