"""
Tests for core/attendance.py — student test listing and test details.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.dirname(__file__))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.attendance import get_student_tests, get_test_details, is_not_found
from core.errors import AccessError
from sample_sheets import FakeAccessor


class TestGetStudentTests:
    def test_lists_every_test_sheet_with_status(self, accessor):
        result = get_student_tests(accessor, "TN1002")
        assert result["student"] == {"studentId": "TN1002", "schoolId": "SCH001"}
        assert result["tests"] == [
            {"name": "Math Test 1", "status": "Attended", "hasData": True},
            {"name": "English Test", "status": "Absent", "hasData": False},
        ]

    def test_absent_everywhere(self, accessor):
        result = get_student_tests(accessor, "TN1005", "SCH001")
        assert len(result["tests"]) == 2
        assert all(t["status"] == "Absent" and t["hasData"] is False for t in result["tests"])

    def test_checks_every_sheet_after_an_absence(self, accessor):
        get_student_tests(accessor, "TN1005")
        assert accessor.reads.count("Math Test 1") == 1
        assert accessor.reads.count("English Test") == 1
        assert "Config" not in accessor.reads

    def test_unknown_student(self, accessor):
        result = get_student_tests(accessor, "NOPE")
        assert result == {"error": "Student not found", "tests": []}

    def test_school_mismatch(self, accessor):
        result = get_student_tests(accessor, "TN1001", "SCH002")
        assert result == {"error": "Student not found or school ID mismatch", "tests": []}

    def test_listing_failure_propagates(self, sheets):
        accessor = FakeAccessor(sheets, listing_error=AccessError(403, "forbidden"))
        with pytest.raises(AccessError):
            get_student_tests(accessor, "TN1001")

    def test_unexpected_error_is_structured(self, sheets):
        accessor = FakeAccessor(sheets, read_errors={"English Test": RuntimeError("boom")})
        result = get_student_tests(accessor, "TN1001")
        assert result["error"] == "Failed to fetch student tests: boom"
        assert "Traceback" in result["details"]
        assert not is_not_found(result)

    def test_repeated_calls_are_identical(self, accessor):
        assert get_student_tests(accessor, "TN1001") == get_student_tests(accessor, "TN1001")


class TestGetTestDetails:
    def test_returns_enriched_row(self, accessor):
        result = get_test_details(accessor, "TN1004", "English Test")
        assert result["testName"] == "English Test"
        assert result["data"] == {
            "Learner Details": "TN1004@username.com",
            "Score": "80",
            "School Name": "Govt High School",
            "OpenGrad School Code": "SCH001",
            "UDSIE Code": "U-11",
            "EMIS ID": "E-504",
        }

    def test_student_not_in_test(self, accessor):
        result = get_test_details(accessor, "TN1002", "English Test")
        assert result == {"error": "Student not found in this test", "data": None}

    def test_unknown_test_sheet(self, accessor):
        result = get_test_details(accessor, "TN1001", "No Such Test")
        assert result["error"] == "Student not found in this test"

    def test_unexpected_error_is_structured(self, sheets):
        accessor = FakeAccessor(sheets, read_errors={"Mapping": KeyError("UserName")})
        result = get_test_details(accessor, "TN1001", "English Test")
        assert result["error"].startswith("Failed to fetch test details")
        assert "Traceback" in result["details"]

    def test_not_found_payloads(self, accessor):
        assert is_not_found(get_test_details(accessor, "TN1002", "English Test"))
        assert is_not_found(get_student_tests(accessor, "NOPE"))
        assert is_not_found(get_student_tests(accessor, "TN1001", "SCH002"))
