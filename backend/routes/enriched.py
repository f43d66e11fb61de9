"""
Enriched test routes — whole test sheets with mapping-sheet identity columns.
"""

import logging
import re
import traceback
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from core.enrich import enrich_sheet, grid_to_excel
from core.errors import error_payload
from routes.common import MAPPING_SHEET, get_accessor, not_initialized_response

log = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _safe_token(value: str, fallback: str = "test") -> str:
    """Create filesystem-safe token for filenames."""
    token = re.sub(r"[^A-Za-z0-9._-]+", "_", str(value)).strip("._-")
    return token or fallback


def _failure_response(exc: Exception, test_name: str) -> JSONResponse:
    log.exception("Error building enriched data for test %s", test_name)
    return JSONResponse(
        status_code=500,
        content=error_payload(
            f"Failed to fetch enriched test data: {exc}",
            details=traceback.format_exc(),
            testName=test_name,
        ),
    )


@router.get("/enriched")
def enriched_test(request: Request, testName: Optional[str] = None):
    """Test sheet rows with School Name, school codes and EMIS ID appended."""
    accessor = get_accessor(request)
    if accessor is None:
        return not_initialized_response()
    if not testName:
        raise HTTPException(400, "Test name is required")

    try:
        grid = enrich_sheet(accessor, testName, mapping_sheet=MAPPING_SHEET)
    except Exception as exc:
        return _failure_response(exc, testName)

    return {
        "testName": testName,
        "data": grid,
        "rowCount": max(len(grid) - 1, 0),
    }


@router.get("/enriched/export")
def enriched_test_export(request: Request, testName: Optional[str] = None):
    """Download the enriched test sheet as an Excel workbook."""
    accessor = get_accessor(request)
    if accessor is None:
        return not_initialized_response()
    if not testName:
        raise HTTPException(400, "Test name is required")

    try:
        grid = enrich_sheet(accessor, testName, mapping_sheet=MAPPING_SHEET)
        content = grid_to_excel(grid, sheet_title=testName) if grid else None
    except Exception as exc:
        return _failure_response(exc, testName)
    if content is None:
        raise HTTPException(404, f"Test sheet '{testName}' is empty or could not be read.")

    filename = f"{_safe_token(testName)}_enriched.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
