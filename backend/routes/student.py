"""
Student routes — test attendance listing and per-test details.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from core.attendance import get_student_tests, get_test_details, is_not_found
from core.errors import AccessError
from routes.common import MAPPING_SHEET, access_error_response, get_accessor, not_initialized_response

log = logging.getLogger(__name__)

router = APIRouter()


def _error_response(result: dict, **context) -> JSONResponse:
    """404 for a missing student or row; 500 with request context otherwise."""
    if is_not_found(result):
        return JSONResponse(status_code=404, content=result)
    return JSONResponse(status_code=500, content=dict(result, **context))


@router.get("/tests")
def student_tests(request: Request, studentId: Optional[str] = None, schoolId: Optional[str] = None):
    """Every test sheet with Attended/Absent status for one student."""
    accessor = get_accessor(request)
    if accessor is None:
        return not_initialized_response()
    if not studentId or not studentId.strip():
        raise HTTPException(400, "Student ID is required")

    log.info("Fetching tests for student %s%s", studentId, f", school {schoolId}" if schoolId else "")
    try:
        result = get_student_tests(accessor, studentId, schoolId or None, mapping_sheet=MAPPING_SHEET)
    except AccessError as exc:
        return access_error_response(exc, "fetch student tests", studentId=studentId)

    if "error" in result:
        return _error_response(result, studentId=studentId)
    return result


@router.get("/test-details")
def student_test_details(request: Request, studentId: Optional[str] = None, testName: Optional[str] = None):
    """The student's full row in one test, enriched from the mapping sheet."""
    accessor = get_accessor(request)
    if accessor is None:
        return not_initialized_response()
    if not studentId or not studentId.strip() or not testName:
        raise HTTPException(400, "Student ID and test name are required")

    log.info("Fetching test details for student %s, test %s", studentId, testName)
    try:
        result = get_test_details(accessor, studentId, testName, mapping_sheet=MAPPING_SHEET)
    except AccessError as exc:
        return access_error_response(exc, "fetch test details", studentId=studentId, testName=testName)

    if "error" in result:
        return _error_response(result, studentId=studentId, testName=testName)
    return result
