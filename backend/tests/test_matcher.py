"""
Tests for core/matcher.py — mapping-sheet and test-sheet student matching.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.dirname(__file__))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.identity import build_lookup
from core.matcher import (
    StudentRecord, find_in_master, find_in_test_sheet, identifier_matches, list_test_sheets,
)
from sample_sheets import MAPPING, MATH_TEST


@pytest.fixture
def roster():
    return [
        ["School ID", "Student ID"],
        ["SCHOOL001", "STU001"],
        ["SCHOOL001", "STU002"],
        ["SCHOOL002", "STU003"],
    ]


class TestFindInMaster:
    def test_matches_student_and_school(self, roster):
        assert find_in_master(roster, "STU001", "SCHOOL001") == StudentRecord("STU001", "SCHOOL001")

    def test_school_mismatch_is_not_found(self, roster):
        assert find_in_master(roster, "STU001", "SCHOOL002") is None

    def test_without_school_matches_on_student_alone(self, roster):
        assert find_in_master(roster, "STU003") == StudentRecord("STU003", "SCHOOL002")

    def test_first_duplicate_wins(self, roster):
        roster.append(["SCHOOL009", "STU001"])
        assert find_in_master(roster, "STU001").school_id == "SCHOOL001"

    def test_comparison_is_trimmed_but_case_sensitive(self, roster):
        roster.append([" SCHOOL003 ", " STU010 "])
        match = find_in_master(roster, "STU010", "SCHOOL003")
        assert match is not None
        # literal cell values are returned untouched
        assert match.student_id == " STU010 "
        assert find_in_master(roster, "stu001") is None

    def test_missing_columns_or_empty_grid(self):
        assert find_in_master([], "STU001") is None
        assert find_in_master([["Name", "Grade"], ["A", "1"]], "A") is None

    def test_username_column_preferred(self):
        record = find_in_master(MAPPING, "TN1002", "SCH001")
        assert record.to_dict() == {"studentId": "TN1002", "schoolId": "SCH001"}


class TestIdentifierMatches:
    def test_exact(self):
        assert identifier_matches("TN1", "TN1", "TN1")

    def test_substring(self):
        assert identifier_matches("TN1001@username.com", "TN1001", "1001@user")

    def test_derived_key(self):
        assert identifier_matches("TN1001@username.com", "TN1001", "TN1001")

    def test_blank_cell_never_matches(self):
        assert not identifier_matches("", "", "")

    def test_unrelated(self):
        assert not identifier_matches("TN1001@username.com", "TN1001", "TN2001")


class TestFindInTestSheet:
    def test_learner_details_match_with_enrichment(self):
        match = find_in_test_sheet(MATH_TEST, "TN1001", build_lookup(MAPPING))
        assert match.fields["Section A Score"] == "40"
        assert list(match.fields) == MATH_TEST[0]
        record = match.to_record()
        assert record["School Name"] == "Govt High School"
        assert record["EMIS ID"] == "E-501"
        assert list(record)[-4:] == ["School Name", "OpenGrad School Code", "UDSIE Code", "EMIS ID"]

    def test_no_lookup_means_no_enrichment(self):
        match = find_in_test_sheet(MATH_TEST, "TN1002")
        assert match.identity is None
        assert "School Name" not in match.to_record()

    def test_substring_match_takes_first_row(self):
        # "TN100" is contained in every TN100x row; the first one wins
        match = find_in_test_sheet(MATH_TEST, "TN100")
        assert match.fields["Learner Details"] == "TN1001@username.com"

    def test_absent_student(self):
        assert find_in_test_sheet(MATH_TEST, "TN9999") is None

    def test_student_column_fallback(self):
        grid = [["Student Name", "Score"], ["Asha K", "77"], ["TN1004", "66"]]
        match = find_in_test_sheet(grid, "TN1004", build_lookup(MAPPING))
        assert match.fields == {"Student Name": "TN1004", "Score": "66"}
        assert match.identity.emis_id == "E-504"

    def test_short_rows_are_padded(self):
        grid = [["Learner Details", "Score", "Remarks"], ["TN1@x.com", "5"]]
        match = find_in_test_sheet(grid, "TN1")
        assert match.fields == {"Learner Details": "TN1@x.com", "Score": "5", "Remarks": ""}

    def test_no_identifier_column(self):
        assert find_in_test_sheet([["Name", "Score"], ["TN1", "5"]], "TN1") is None

    def test_empty_grid(self):
        assert find_in_test_sheet([], "TN1") is None


def test_list_test_sheets_excludes_mapping_and_config():
    names = ["Mapping", "Quiz 1", "CONFIG", "Quiz 2", "mapping"]
    assert list_test_sheets(names) == ["Quiz 1", "Quiz 2"]
    assert list_test_sheets(["Roster", "Quiz"], mapping_sheet="Roster") == ["Quiz"]
