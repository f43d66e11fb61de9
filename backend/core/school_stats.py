"""
school_stats.py — Per-school attendance and score statistics across all tests.

Computes, for every test sheet:
- Attendance count and percentage against the school roster
- Average score (sum of every score/mark/total column per row)
- Top 5 performers

and school-wide means of those figures. Scores of 0 or less count as
"no score recorded" and are left out of averages and leaderboards.
"""

import logging
import traceback
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence, Set

import numpy as np
import pandas as pd

from core.errors import AccessError, NotFoundError, error_payload, not_initialized_payload
from core.headers import (
    LEARNER_DETAILS, SCHOOL_CODE_PRIMARY, SCORE_BEARING, STUDENT_NAME,
    TEST_STUDENT_IDENTIFIER, USER_NAME, cell, locate, locate_all, raw_cell,
)
from core.identity import extract_key
from core.matcher import StudentRecord, list_test_sheets, roster_columns
from core.sheets import Grid, GridAccessor

log = logging.getLogger(__name__)

TOP_PERFORMERS = 5


# ── Helpers ─────────────────────────────────────────────────────────

def round2(value) -> float:
    """Round half-up to 2 decimals."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def grid_to_frame(grid: Grid) -> pd.DataFrame:
    """Data rows as a DataFrame with positional column labels, padded with ""."""
    width = max((len(r) for r in grid), default=0)
    rows = [["" if v is None else str(v) for v in r] + [""] * (width - len(r)) for r in grid[1:]]
    return pd.DataFrame(rows, columns=range(width), dtype=str)


def row_scores(frame: pd.DataFrame, score_columns: List[int]) -> pd.Series:
    """Sum of all score columns per row; non-numeric or non-finite cells count as 0."""
    if not score_columns or frame.empty:
        return pd.Series(0.0, index=frame.index)
    numeric = frame[score_columns].apply(
        lambda col: pd.to_numeric(col.str.strip(), errors="coerce")
    )
    numeric = numeric.replace([np.inf, -np.inf], np.nan)
    return numeric.fillna(0).sum(axis=1)


# ── Roster ──────────────────────────────────────────────────────────

def collect_school_students(mapping_grid: Grid, school_id: str) -> List[StudentRecord]:
    """
    Every mapping row whose school cell equals `school_id` (trimmed,
    case-insensitive) and whose student cell is filled. Duplicates are kept.
    """
    if not mapping_grid:
        log.warning("Mapping sheet is empty or could not be read")
        return []

    school_idx, student_idx = roster_columns(mapping_grid[0])
    if school_idx is None or student_idx is None:
        log.warning("Could not find required columns in mapping sheet. Header: %s", mapping_grid[0])
        return []

    log.info("Looking for school %r using column %r", school_id, mapping_grid[0][school_idx])
    wanted = str(school_id).strip().upper()
    students = []
    for row in mapping_grid[1:]:
        if not row:
            continue
        if cell(row, school_idx).upper() == wanted and cell(row, student_idx):
            students.append(StudentRecord(
                student_id=raw_cell(row, student_idx),
                school_id=raw_cell(row, school_idx),
            ))
    return students


def known_school_ids(mapping_grid: Grid, limit: int = 10) -> List[str]:
    """Sorted distinct school ids in the mapping sheet, for troubleshooting."""
    if not mapping_grid:
        return []
    school_idx, _ = roster_columns(mapping_grid[0])
    if school_idx is None:
        return []
    ids = {cell(row, school_idx) for row in mapping_grid[1:]}
    ids.discard("")
    return sorted(ids)[:limit]


@dataclass
class SchoolDirectory:
    """Usernames of one school, and student name → username for fallback matching."""

    usernames: Set[str] = field(default_factory=set)
    name_to_username: Dict[str, str] = field(default_factory=dict)


def build_school_directory(mapping_grid: Grid, school_id: str) -> SchoolDirectory:
    directory = SchoolDirectory()
    if not mapping_grid:
        return directory

    header = mapping_grid[0]
    user_idx = locate(header, USER_NAME)
    code_idx = locate(header, SCHOOL_CODE_PRIMARY)
    name_idx = locate(header, STUDENT_NAME)
    if user_idx is None or code_idx is None:
        log.warning("Mapping sheet has no UserName or OpenGrad school code column; "
                    "learner matching disabled")
        return directory

    wanted = str(school_id).strip().upper()
    for row in mapping_grid[1:]:
        if not row or cell(row, code_idx).upper() != wanted:
            continue
        user_name = cell(row, user_idx)
        if not user_name:
            continue
        directory.usernames.add(user_name)
        student_name = cell(row, name_idx)
        if student_name:
            directory.name_to_username[student_name] = user_name
    return directory


# ── Per-test statistics ─────────────────────────────────────────────

def summarize_test_sheet(
    test_name: str,
    grid: Grid,
    roster: Sequence[StudentRecord],
    directory: SchoolDirectory,
) -> Optional[Dict[str, Any]]:
    """Statistics for one test sheet, or None when the sheet cannot be used."""
    if not grid:
        log.info("Test sheet %s is empty; skipped", test_name)
        return None

    header = grid[0]
    learner_idx = locate(header, LEARNER_DETAILS)
    id_idx = learner_idx if learner_idx is not None else locate(header, TEST_STUDENT_IDENTIFIER)
    if id_idx is None:
        log.warning("No student identifier column found in test sheet: %s", test_name)
        return None

    scores = row_scores(grid_to_frame(grid), locate_all(header, SCORE_BEARING))
    roster_ids = {s.student_id.strip() for s in roster}

    attended = 0
    scored: List[Dict[str, Any]] = []
    for pos, row in enumerate(grid[1:]):
        row_value = cell(row, id_idx)
        user_name = None
        if learner_idx is not None:
            user_name = extract_key(row_value)
            matched = bool(user_name) and user_name in directory.usernames
        else:
            matched = row_value in roster_ids
            if not matched and row_value:
                candidate = directory.name_to_username.get(row_value)
                if candidate and candidate in directory.usernames:
                    matched = True
                    user_name = candidate

        if not matched:
            continue
        attended += 1
        score = float(scores.iloc[pos])
        if score > 0:
            scored.append({"studentId": user_name or row_value, "score": score})

    canonical: Dict[str, str] = {}
    for s in roster:
        canonical.setdefault(s.student_id.strip(), s.student_id)

    leaders = sorted(scored, key=lambda s: s["score"], reverse=True)[:TOP_PERFORMERS]
    total_students = len(roster)
    avg_score = _mean([s["score"] for s in scored])
    attendance = attended / total_students * 100 if total_students else 0

    return {
        "testName": test_name,
        "totalStudents": total_students,
        "attendedCount": attended,
        "attendancePercent": round2(attendance),
        "avgScore": round2(avg_score),
        "topPerformers": [
            {
                "studentId": canonical.get(str(s["studentId"]).strip(), s["studentId"]),
                "score": s["score"],
            }
            for s in leaders
        ],
    }


# ── School aggregate ────────────────────────────────────────────────

def _load_roster(mapping_grid: Grid, school_id: str, mapping_sheet: str) -> List[StudentRecord]:
    students = collect_school_students(mapping_grid, school_id)
    if students:
        log.info("Found %d students for school %s", len(students), school_id)
        return students

    available = known_school_ids(mapping_grid)
    log.warning("No students found for school %s; known schools: %s", school_id, ", ".join(available))
    details = (
        f"Verify the School ID is correct and exists in the {mapping_sheet} sheet "
        "of your Google Spreadsheet."
    )
    if available:
        details += f" Available school IDs (first 10): {', '.join(available)}"
    raise NotFoundError(
        f'School "{school_id}" not found or has no students in the {mapping_sheet} sheet',
        details=details,
    )


def compute_school_stats(
    accessor: Optional[GridAccessor],
    school_id: Optional[str],
    mapping_sheet: str = "Mapping",
) -> Dict[str, Any]:
    """
    Attendance and score statistics for every test sheet of one school.

    Failures come back as `{error, details?}`; nothing is raised.
    """
    if accessor is None:
        return not_initialized_payload()
    if not school_id or not str(school_id).strip():
        return error_payload("School ID is required")

    try:
        log.info("Getting stats for school: %s", school_id)
        mapping_grid = accessor.read_sheet(mapping_sheet)
        roster = _load_roster(mapping_grid, school_id, mapping_sheet)

        try:
            sheet_names = list_test_sheets(accessor.list_sheet_names(), mapping_sheet)
        except AccessError as exc:
            log.error("Error fetching sheet names for school %s: %s", school_id, exc)
            return error_payload(
                f"Failed to fetch sheet names: {exc}",
                details="This could be due to permission issues or the spreadsheet not being accessible.",
            )
        log.info("Found %d test sheets", len(sheet_names))

        directory = build_school_directory(mapping_grid, school_id)
        log.info("Found %d usernames for school %s", len(directory.usernames), school_id)

        test_stats = []
        for name in sheet_names:
            stats = summarize_test_sheet(name, accessor.read_sheet(name), roster, directory)
            if stats is not None:
                test_stats.append(stats)

        log.info("Calculated stats for school %s: %d tests processed", school_id, len(test_stats))
        return {
            "schoolId": school_id,
            "totalStudents": len(roster),
            "overallStats": {
                "avgAttendance": round2(_mean([t["attendancePercent"] for t in test_stats])),
                "avgScore": round2(_mean([t["avgScore"] for t in test_stats])),
            },
            "testStats": test_stats,
        }
    except NotFoundError as exc:
        return error_payload(exc.message, details=exc.details)
    except Exception as exc:
        log.exception("Unexpected error getting school stats for %s", school_id)
        return error_payload(f"Unexpected error: {exc}", details=traceback.format_exc())
