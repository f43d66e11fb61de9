"""
headers.py — Column role detection over free-text spreadsheet headers.

Every role is an ordered list of keyword rules. The first rule that matches
any column wins; later rules are only consulted when all earlier ones found
nothing. Comparison is case-insensitive on stripped header text.

Supports:
- Single-column roles (school code, username, learner details, ...)
- Multi-column roles (every score-bearing column)
- A diagnostic view of all roles for a header row
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple


# ── Roles ───────────────────────────────────────────────────────────

STUDENT_IDENTIFIER = "student_identifier"
SCHOOL_IDENTIFIER = "school_identifier"
SCHOOL_CODE_PRIMARY = "school_code_primary"
USER_NAME = "user_name"
SCORE_BEARING = "score_bearing"
SCHOOL_NAME = "school_name"
STUDENT_NAME = "student_name"
UDSIE_CODE = "udsie_code"
EMIS_ID = "emis_id"
LEARNER_DETAILS = "learner_details"
TEST_STUDENT_IDENTIFIER = "test_student_identifier"


@dataclass(frozen=True)
class Rule:
    """A named predicate over one normalised header cell."""

    description: str
    test: Callable[[str], bool]

    def __call__(self, text: str) -> bool:
        return self.test(text)


def contains_all(*words: str) -> Callable[[str], bool]:
    return lambda text: all(w in text for w in words)


def contains_any(*words: str) -> Callable[[str], bool]:
    return lambda text: any(w in text for w in words)


def equals(word: str) -> Callable[[str], bool]:
    return lambda text: text == word


_OPENGRAD_CODE = Rule("contains opengrad + school + code", contains_all("opengrad", "school", "code"))

ROLE_RULES: Dict[str, Tuple[Rule, ...]] = {
    SCHOOL_IDENTIFIER: (
        _OPENGRAD_CODE,
        Rule("contains school", contains_all("school")),
    ),
    SCHOOL_CODE_PRIMARY: (
        _OPENGRAD_CODE,
    ),
    STUDENT_IDENTIFIER: (
        Rule("equals username", equals("username")),
        Rule("equals emis_id or contains emis", lambda t: t == "emis_id" or "emis" in t),
        Rule("contains student id", contains_all("student id")),
        Rule("contains student, not school", lambda t: "student" in t and "school" not in t),
    ),
    SCORE_BEARING: (
        Rule("contains score / mark / total", contains_any("score", "mark", "total")),
    ),
    LEARNER_DETAILS: (
        Rule("contains learner + details", contains_all("learner", "details")),
    ),
    TEST_STUDENT_IDENTIFIER: (
        Rule("contains student", contains_all("student")),
    ),
    SCHOOL_NAME: (
        Rule("contains school + name", contains_all("school", "name")),
    ),
    STUDENT_NAME: (
        Rule("contains student + name, not school",
             lambda t: "student" in t and "name" in t and "school" not in t),
    ),
    USER_NAME: (
        Rule("equals username", equals("username")),
    ),
    EMIS_ID: (
        Rule("equals emis_id or contains emis", lambda t: t == "emis_id" or "emis" in t),
    ),
    UDSIE_CODE: (
        Rule("contains udsie, or school + code without opengrad",
             lambda t: "udsie" in t or ("school" in t and "code" in t and "opengrad" not in t)),
    ),
}


def normalize_header(value) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _rules_for(role: str) -> Tuple[Rule, ...]:
    try:
        return ROLE_RULES[role]
    except KeyError:
        raise ValueError(f"Unknown column role: {role}") from None


# ── Lookups ─────────────────────────────────────────────────────────

def locate(header: Sequence[str], role: str) -> Optional[int]:
    """
    Return the index of the column that plays `role`, or None.

    Rules are tried in order; within a rule the leftmost matching column wins.
    """
    normalized = [normalize_header(h) for h in header]
    for rule in _rules_for(role):
        for idx, text in enumerate(normalized):
            if rule(text):
                return idx
    return None


def locate_all(header: Sequence[str], role: str) -> List[int]:
    """Return every column index matched by the first rule that matches anything."""
    normalized = [normalize_header(h) for h in header]
    for rule in _rules_for(role):
        hits = [idx for idx, text in enumerate(normalized) if rule(text)]
        if hits:
            return hits
    return []


def describe(header: Sequence[str]) -> Dict[str, Optional[int]]:
    """Resolve every single-column role; used for diagnostics."""
    return {
        role: locate(header, role)
        for role in ROLE_RULES
        if role != SCORE_BEARING
    }


def raw_cell(row: Sequence, idx: Optional[int]) -> str:
    """Text of `row[idx]` as stored; missing or out-of-range cells read as ""."""
    if idx is None or not row or idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx])


def cell(row: Sequence, idx: Optional[int]) -> str:
    """Trimmed text of `row[idx]`."""
    return raw_cell(row, idx).strip()
