"""
diagnostics.py — Diagnostics for the mapping sheet.

Shows which sheet is treated as the mapping sheet, which column each role
resolves to, and a sample of school ids and rows. Intended for operators
troubleshooting header naming.
"""

import logging
from typing import Any, Dict, List, Optional

from core.errors import AccessError
from core.headers import SCHOOL_IDENTIFIER, cell, describe, raw_cell
from core.sheets import GridAccessor

log = logging.getLogger(__name__)

MAX_SCHOOL_IDS = 50
SAMPLE_ROWS = 5


def find_mapping_sheet(sheet_names: List[str], default: str = "Mapping") -> str:
    """Exact "mapping", then "master", then titles containing either word."""
    lowered = [(name, name.lower()) for name in sheet_names]
    for test in (
        lambda s: s == "mapping",
        lambda s: s == "master",
        lambda s: "mapping" in s,
        lambda s: "master" in s,
    ):
        for name, low in lowered:
            if test(low):
                return name
    return default


def describe_mapping_sheet(accessor: GridAccessor, default: str = "Mapping") -> Dict[str, Any]:
    all_sheets: List[str] = []
    try:
        all_sheets = accessor.list_sheet_names()
    except AccessError as exc:
        log.error("Error getting sheet names: %s", exc)

    sheet_name = find_mapping_sheet(all_sheets, default)
    grid = accessor.read_sheet(sheet_name)
    if not grid:
        return {
            "error": "Master sheet is empty or could not be read",
            "rowCount": 0,
            "headers": [],
            "availableSheets": all_sheets,
            "masterSheetName": sheet_name,
        }

    header = [str(h) for h in grid[0]]
    indices = describe(header)
    school_idx: Optional[int] = indices[SCHOOL_IDENTIFIER]

    school_ids = set()
    if school_idx is not None:
        school_ids = {cell(row, school_idx) for row in grid[1:]}
        school_ids.discard("")

    return {
        "rowCount": len(grid),
        "availableSheets": all_sheets,
        "masterSheetName": sheet_name,
        "headers": header,
        "columnIndices": {
            role: {"index": idx, "columnName": header[idx] if idx is not None else None}
            for role, idx in indices.items()
        },
        "uniqueSchoolIds": sorted(school_ids)[:MAX_SCHOOL_IDS],
        "sampleRows": [
            {col: raw_cell(row, idx) for idx, col in enumerate(header)}
            for row in grid[1:1 + SAMPLE_ROWS]
        ],
    }
