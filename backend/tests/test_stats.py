"""Dashboard summary and passing-rate report computations."""

from __future__ import annotations

import unittest

from backend.src.stats import (
    course_counts,
    course_passing_rates,
    dashboard_summary,
    is_graduate,
    passing_rate,
    success_rate,
)


def _student(course="c1", grades=None, status="active"):
    return {"course": course, "grades": grades or {}, "status": status}


class GraduateTestCase(unittest.TestCase):
    def test_third_passing_grade_makes_a_graduate(self) -> None:
        student = _student(grades={"c1": "A", "c2": "B"})
        self.assertFalse(is_graduate(student))

        before = dashboard_summary([student], [])["graduates"]
        student["grades"]["c3"] = "C-"
        after = dashboard_summary([student], [])["graduates"]

        self.assertTrue(is_graduate(student))
        self.assertEqual(before + 1, after)

    def test_additional_passing_grades_do_not_double_count(self) -> None:
        student = _student(grades={"c1": "A", "c2": "B", "c3": "C"})
        self.assertEqual(1, dashboard_summary([student], [])["graduates"])

        student["grades"]["c4"] = "D"
        self.assertEqual(1, dashboard_summary([student], [])["graduates"])

    def test_failing_none_and_malformed_grades_do_not_count(self) -> None:
        student = _student(grades={"c1": "A", "c2": "B", "c3": "F", "c4": "none", "c5": 4, "c6": ""})
        self.assertFalse(is_graduate(student))

    def test_grades_for_unknown_courses_still_count(self) -> None:
        student = _student(grades={"deleted-1": "A", "deleted-2": "B", "deleted-3": "C"})
        summary = dashboard_summary([student], [{"_id": "c1", "status": "active"}])
        self.assertEqual(1, summary["graduates"])

    def test_missing_grades_mapping(self) -> None:
        self.assertFalse(is_graduate({"course": "c1"}))
        self.assertFalse(is_graduate({"course": "c1", "grades": ["A", "B", "C"]}))


class DashboardSummaryTestCase(unittest.TestCase):
    def test_counts(self) -> None:
        students = [
            _student("c1", {"c1": "A", "c2": "A", "c3": "A"}),
            _student("c1", status="inactive"),
            _student("c2"),
            {"course": "c2", "grades": {}},
        ]
        courses = [
            {"_id": "c1", "status": "active"},
            {"_id": "c2", "status": "inactive"},
            {"_id": "c3"},
        ]

        summary = dashboard_summary(students, courses)

        self.assertEqual(4, summary["totalStudents"])
        self.assertEqual(3, summary["activeStudents"])
        self.assertEqual(3, summary["totalCourses"])
        self.assertEqual(2, summary["activeCourses"])
        self.assertEqual(1, summary["graduates"])
        self.assertEqual(25, summary["successRate"])
        self.assertCountEqual(
            [{"_id": "c1", "count": 2}, {"_id": "c2", "count": 2}],
            summary["courseCounts"],
        )

    def test_empty_collections(self) -> None:
        summary = dashboard_summary([], [])
        self.assertEqual(0, summary["totalStudents"])
        self.assertEqual(0, summary["graduates"])
        self.assertEqual(0, summary["successRate"])
        self.assertEqual([], summary["courseCounts"])

    def test_success_rate_bounds_and_rounding(self) -> None:
        self.assertEqual(0, success_rate(0, 0))
        self.assertEqual(0, success_rate(0, 5))
        self.assertEqual(100, success_rate(3, 3))
        self.assertEqual(13, success_rate(1, 8))
        self.assertEqual(33, success_rate(1, 3))
        self.assertEqual(67, success_rate(2, 3))
        for graduates in range(0, 8):
            with self.subTest(graduates=graduates):
                self.assertTrue(0 <= success_rate(graduates, 7) <= 100)

    def test_course_counts_groups_by_course(self) -> None:
        counts = course_counts([_student("x"), _student("y"), _student("x")])
        self.assertCountEqual([{"_id": "x", "count": 2}, {"_id": "y", "count": 1}], counts)


class PassingRateReportTestCase(unittest.TestCase):
    def test_algorithms_example(self) -> None:
        courses = [{"_id": "alg", "courseName": "Algorithms", "status": "active"}]
        students = [
            _student("alg", {"alg": "B"}),
            _student("alg", {"alg": "F"}),
            _student("alg", {"alg": "none"}),
        ]

        report = course_passing_rates(courses, students)

        self.assertEqual(
            [
                {
                    "courseId": "alg",
                    "courseName": "Algorithms",
                    "totalStudents": 3,
                    "passingStudents": 1,
                    "passingRate": 33.3,
                }
            ],
            report,
        )

    def test_course_without_students(self) -> None:
        report = course_passing_rates([{"_id": "c1", "courseName": "Empty", "status": "active"}], [])
        self.assertEqual(
            [
                {
                    "courseId": "c1",
                    "courseName": "Empty",
                    "totalStudents": 0,
                    "passingStudents": 0,
                    "passingRate": 0.0,
                }
            ],
            report,
        )

    def test_rate_rounds_to_one_decimal(self) -> None:
        self.assertEqual(66.7, passing_rate(2, 3))
        self.assertEqual(33.3, passing_rate(1, 3))
        self.assertEqual(100.0, passing_rate(4, 4))
        self.assertEqual(0.0, passing_rate(0, 0))

    def test_only_the_grade_for_that_course_counts(self) -> None:
        courses = [{"_id": "c1", "courseName": "Databases", "status": "active"}]
        students = [
            _student("c1", {"c2": "A", "c3": "A"}),
            _student("c1", {"c1": "C"}),
            _student("c2", {"c1": "A"}),
        ]

        entry = course_passing_rates(courses, students)[0]

        self.assertEqual(2, entry["totalStudents"])
        self.assertEqual(1, entry["passingStudents"])
        self.assertEqual(50.0, entry["passingRate"])

    def test_inactive_courses_are_skipped_and_names_sorted(self) -> None:
        courses = [
            {"_id": "1", "courseName": "web Development", "status": "active"},
            {"_id": "2", "courseName": "Algorithms", "status": "active"},
            {"_id": "3", "courseName": "Archived", "status": "inactive"},
            {"_id": "4", "courseName": "databases", "status": "active"},
            {"_id": "5", "courseName": "Zoology", "status": "active"},
            {"_id": "6", "courseName": "Éthique", "status": "active"},
            {"_id": "7", "courseName": "Economics"},
        ]

        names = [entry["courseName"] for entry in course_passing_rates(courses, [])]

        self.assertEqual(
            ["Algorithms", "databases", "Economics", "Éthique", "web Development", "Zoology"],
            names,
        )

    def test_object_ids_are_compared_as_strings(self) -> None:
        from bson import ObjectId

        course_id = ObjectId()
        courses = [{"_id": course_id, "courseName": "Algorithms", "status": "active"}]
        students = [_student(str(course_id), {str(course_id): "A"})]

        entry = course_passing_rates(courses, students)[0]

        self.assertEqual(str(course_id), entry["courseId"])
        self.assertEqual(1, entry["passingStudents"])


if __name__ == "__main__":
    unittest.main()
