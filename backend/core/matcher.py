"""
matcher.py — Locate one student in the mapping sheet or in a test sheet.

Matching in test sheets favours recall: a row matches when its identifier
cell equals the student id, contains it, or yields it as the learner key.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from core.headers import (
    LEARNER_DETAILS, SCHOOL_IDENTIFIER, STUDENT_IDENTIFIER, TEST_STUDENT_IDENTIFIER,
    cell, locate, raw_cell,
)
from core.identity import IdentityRecord, extract_key

log = logging.getLogger(__name__)

NON_TEST_SHEETS = {"mapping", "config"}


@dataclass
class StudentRecord:
    student_id: str
    school_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"studentId": self.student_id, "schoolId": self.school_id}


@dataclass
class SheetRowMatch:
    """One matched test-sheet row as header → cell, plus optional identity."""

    fields: Dict[str, str] = field(default_factory=dict)
    identity: Optional[IdentityRecord] = None

    def to_record(self) -> Dict[str, str]:
        """Flatten into a single dict with identity columns appended."""
        record = dict(self.fields)
        if self.identity is not None:
            record.update(self.identity.as_enrichment())
        return record


def list_test_sheets(sheet_names: Iterable[str], mapping_sheet: str = "Mapping") -> List[str]:
    """Every sheet that is not the mapping/config sheet, in listed order."""
    excluded = NON_TEST_SHEETS | {mapping_sheet.lower()}
    return [name for name in sheet_names if name.lower() not in excluded]


def roster_columns(header: Sequence[str]):
    """(school column, student column) of the mapping sheet."""
    return locate(header, SCHOOL_IDENTIFIER), locate(header, STUDENT_IDENTIFIER)


def find_in_master(
    mapping_grid: Sequence[Sequence[str]],
    student_id: str,
    school_id: Optional[str] = None,
) -> Optional[StudentRecord]:
    """
    Find a student in the mapping sheet.

    With `school_id` both the student and school cells must match; without
    it the first row with the student id wins, even if others follow.
    Comparison is on trimmed text and is case-sensitive.
    """
    if not mapping_grid:
        return None

    school_idx, student_idx = roster_columns(mapping_grid[0])
    if school_idx is None or student_idx is None:
        log.warning("Mapping sheet lacks a school or student column: %s", mapping_grid[0])
        return None

    wanted_student = str(student_id).strip()
    wanted_school = str(school_id).strip() if school_id is not None else None

    for row in mapping_grid[1:]:
        if cell(row, student_idx) != wanted_student:
            continue
        if wanted_school is not None and cell(row, school_idx) != wanted_school:
            continue
        return StudentRecord(
            student_id=raw_cell(row, student_idx),
            school_id=raw_cell(row, school_idx),
        )
    return None


def identifier_matches(row_value: str, row_key: str, student_id: str) -> bool:
    """Exact match, substring match, or derived-key match; blank cells never match."""
    if not row_value:
        return False
    return (
        row_value == student_id
        or student_id in row_value
        or row_key == student_id
    )


def find_in_test_sheet(
    test_grid: Sequence[Sequence[str]],
    student_id: str,
    lookup: Optional[Dict[str, IdentityRecord]] = None,
) -> Optional[SheetRowMatch]:
    """
    Find the first row of a test sheet that belongs to `student_id`.

    Prefers the learner-details column (key = text before "@"); otherwise
    falls back to a "student" column whose raw value is also the key.
    """
    if not test_grid:
        return None

    header = test_grid[0]
    learner_idx = locate(header, LEARNER_DETAILS)
    id_idx = learner_idx if learner_idx is not None else locate(header, TEST_STUDENT_IDENTIFIER)
    if id_idx is None:
        return None

    wanted = str(student_id)
    lookup = lookup or {}

    for row in test_grid[1:]:
        row_value = cell(row, id_idx)
        row_key = extract_key(row_value) if learner_idx is not None else row_value
        if not identifier_matches(row_value, row_key, wanted):
            continue

        fields = {str(col): raw_cell(row, idx) for idx, col in enumerate(header)}
        return SheetRowMatch(fields=fields, identity=lookup.get(row_key) if row_key else None)

    return None
