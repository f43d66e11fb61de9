"""
enrich.py — Append mapping-sheet identity columns to a whole test sheet.

Adds School Name, OpenGrad School Code, UDSIE Code and EMIS ID to every row
whose learner key is known, and can render the result as an Excel workbook.
"""

import io
import logging
from typing import Dict

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from core.headers import LEARNER_DETAILS, cell, locate
from core.identity import ENRICHMENT_COLUMNS, IdentityRecord, build_lookup, extract_key
from core.sheets import Grid, GridAccessor

log = logging.getLogger(__name__)


def enrich_grid(test_grid: Grid, lookup: Dict[str, IdentityRecord]) -> Grid:
    """
    Return a copy of `test_grid` with the identity columns filled in.

    Columns already present in the header are reused instead of appended.
    Unmatched rows keep whatever those columns held (blank when appended).
    Sheets without a learner-details column are returned unchanged.
    """
    if not test_grid:
        return test_grid

    header = [str(h) for h in test_grid[0]]
    learner_idx = locate(header, LEARNER_DETAILS)
    if learner_idx is None:
        log.info("No learner details column; sheet returned as-is")
        return test_grid

    enriched_header = list(header)
    for name in ENRICHMENT_COLUMNS:
        if name not in enriched_header:
            enriched_header.append(name)
    target_idx = [enriched_header.index(name) for name in ENRICHMENT_COLUMNS]
    width = len(enriched_header)

    enriched = [enriched_header]
    matched = 0
    for row in test_grid[1:]:
        out = [str(v) for v in row] + [""] * max(0, width - len(row))
        identity = lookup.get(extract_key(cell(row, learner_idx)))
        if identity is not None:
            matched += 1
            for idx, value in zip(target_idx, identity.enrichment_values()):
                out[idx] = value
        enriched.append(out)

    log.info("Enriched %d of %d rows", matched, len(test_grid) - 1)
    return enriched


def enrich_sheet(accessor: GridAccessor, test_name: str, mapping_sheet: str = "Mapping") -> Grid:
    """Read a test sheet and enrich it from the mapping sheet."""
    test_grid = accessor.read_sheet(test_name)
    if not test_grid:
        return test_grid
    lookup = build_lookup(accessor.read_sheet(mapping_sheet))
    return enrich_grid(test_grid, lookup)


def grid_to_excel(grid: Grid, sheet_title: str = "Sheet1") -> bytes:
    """Render a grid as an .xlsx workbook with a styled header row."""
    wb = Workbook()
    ws = wb.active
    # Excel limits sheet titles to 31 characters and forbids a few symbols
    ws.title = "".join(ch for ch in sheet_title if ch not in "[]:*?/\\")[:31] or "Sheet1"

    for row in grid:
        ws.append(list(row))

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="1a1a2e", end_color="1a1a2e", fill_type="solid")
    thin_border = Border(
        left=Side(style="thin"), right=Side(style="thin"),
        top=Side(style="thin"), bottom=Side(style="thin"),
    )
    if grid:
        for c in ws[1]:
            c.font = header_font
            c.fill = header_fill
            c.alignment = Alignment(horizontal="center")
            c.border = thin_border

    for column in ws.columns:
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
        ws.column_dimensions[column[0].column_letter].width = min(max(longest + 2, 10), 50)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
