"""
Debug routes — inspect how the mapping sheet headers are being read.
"""

from fastapi import APIRouter, Request

from core.diagnostics import describe_mapping_sheet
from routes.common import MAPPING_SHEET, get_accessor, not_initialized_response

router = APIRouter()


@router.get("/master")
def debug_master(request: Request):
    """Mapping sheet headers, resolved column roles, school ids and sample rows."""
    accessor = get_accessor(request)
    if accessor is None:
        return not_initialized_response()
    return describe_mapping_sheet(accessor, default=MAPPING_SHEET)
