"""
School routes — aggregate statistics for one school.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from core.school_stats import compute_school_stats
from routes.common import MAPPING_SHEET, get_accessor, not_initialized_response

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats")
def school_stats(request: Request, schoolId: Optional[str] = None):
    """Attendance, average score and top performers per test for a school."""
    accessor = get_accessor(request)
    if accessor is None:
        return not_initialized_response()
    if not schoolId or not schoolId.strip():
        raise HTTPException(400, "School ID is required")

    result = compute_school_stats(accessor, schoolId, mapping_sheet=MAPPING_SHEET)
    if "error" in result:
        log.error("Error for school %s: %s", schoolId, result["error"])
        status = 404 if "has no students" in result["error"] else 500
        return JSONResponse(status_code=status, content=dict(result, schoolId=schoolId))

    log.info("Fetched stats for school %s: %d students, %d tests",
             schoolId, result["totalStudents"], len(result["testStats"]))
    return result
