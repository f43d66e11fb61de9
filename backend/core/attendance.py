"""
attendance.py — Per-student test listing and test-detail lookup.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from core.errors import AccessError, error_payload
from core.identity import build_lookup
from core.matcher import find_in_master, find_in_test_sheet, list_test_sheets
from core.sheets import GridAccessor

log = logging.getLogger(__name__)

STUDENT_NOT_FOUND = "Student not found"
STUDENT_SCHOOL_MISMATCH = "Student not found or school ID mismatch"
NOT_IN_TEST = "Student not found in this test"


def get_student_tests(
    accessor: GridAccessor,
    student_id: str,
    school_id: Optional[str] = None,
    mapping_sheet: str = "Mapping",
) -> Dict[str, Any]:
    """
    List every test sheet with the student's attendance status.

    The student must exist in the mapping sheet (and belong to `school_id`
    when given). Every test sheet is checked; an absence does not stop the
    scan. AccessError from listing sheets propagates to the caller; any
    other failure comes back as `{error, details}`.
    """
    try:
        mapping_grid = accessor.read_sheet(mapping_sheet)
        student = find_in_master(mapping_grid, student_id, school_id or None)
        if student is None:
            message = STUDENT_SCHOOL_MISMATCH if school_id else STUDENT_NOT_FOUND
            log.warning("%s: student=%s school=%s", message, student_id, school_id)
            return error_payload(message, tests=[])

        sheet_names = list_test_sheets(accessor.list_sheet_names(), mapping_sheet)
        lookup = build_lookup(mapping_grid)

        tests = []
        for name in sheet_names:
            match = find_in_test_sheet(accessor.read_sheet(name), student_id, lookup)
            tests.append({
                "name": name,
                "status": "Attended" if match else "Absent",
                "hasData": match is not None,
            })
    except AccessError:
        raise
    except Exception as exc:
        log.exception("Unexpected error getting tests for student %s", student_id)
        return error_payload(f"Failed to fetch student tests: {exc}", details=traceback.format_exc())

    attended = sum(1 for t in tests if t["hasData"])
    log.info("Student %s attended %d of %d tests", student_id, attended, len(tests))
    return {"student": student.to_dict(), "tests": tests}


def get_test_details(
    accessor: GridAccessor,
    student_id: str,
    test_name: str,
    mapping_sheet: str = "Mapping",
) -> Dict[str, Any]:
    """The student's full row in one test sheet, with identity columns merged in."""
    try:
        lookup = build_lookup(accessor.read_sheet(mapping_sheet))
        match = find_in_test_sheet(accessor.read_sheet(test_name), student_id, lookup)
    except AccessError:
        raise
    except Exception as exc:
        log.exception("Unexpected error getting test %s for student %s", test_name, student_id)
        return error_payload(f"Failed to fetch test details: {exc}", details=traceback.format_exc())

    if match is None:
        return error_payload(NOT_IN_TEST, data=None)
    return {"testName": test_name, "data": match.to_record()}


def is_not_found(result: Dict[str, Any]) -> bool:
    """True when an error payload means the student or test row is absent."""
    return result.get("error") in (STUDENT_NOT_FOUND, STUDENT_SCHOOL_MISMATCH, NOT_IN_TEST)
