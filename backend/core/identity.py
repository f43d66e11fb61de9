"""
identity.py — Mapping-sheet identity lookup and learner key extraction.

The mapping sheet keys students by a username-like token; test sheets embed
the same token in a "Learner Details" cell such as
"TN1015257176@username.com". This module bridges the two.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from core.headers import (
    EMIS_ID, SCHOOL_CODE_PRIMARY, SCHOOL_NAME, UDSIE_CODE, USER_NAME,
    cell, locate,
)

log = logging.getLogger(__name__)

# Output column names used when identity data is merged into a row
ENRICHMENT_COLUMNS = ("School Name", "OpenGrad School Code", "UDSIE Code", "EMIS ID")


@dataclass
class IdentityRecord:
    raw_key: str
    school_name: str = ""
    school_code_primary: str = ""
    school_code_secondary: str = ""
    emis_id: str = ""

    def enrichment_values(self) -> List[str]:
        """Values in ENRICHMENT_COLUMNS order."""
        return [
            self.school_name,
            self.school_code_primary,
            self.school_code_secondary,
            self.emis_id,
        ]

    def as_enrichment(self) -> Dict[str, str]:
        return dict(zip(ENRICHMENT_COLUMNS, self.enrichment_values()))


def extract_key(learner_details: Optional[str]) -> str:
    """
    Extract the username from a learner-details cell.

    "TN1015257176@username.com" -> "TN1015257176"; a cell without "@" is
    returned trimmed; None or "" gives "".
    """
    if not learner_details:
        return ""
    text = str(learner_details).strip()
    at = text.find("@")
    if at != -1:
        return text[:at]
    return text


def build_lookup(mapping_grid: Sequence[Sequence[str]]) -> Dict[str, IdentityRecord]:
    """
    Build `{username: IdentityRecord}` from the mapping sheet.

    Rows with a blank username are skipped; a repeated username keeps the
    last row. Without a username column the lookup is empty.
    """
    if not mapping_grid:
        return {}

    header = mapping_grid[0]
    user_idx = locate(header, USER_NAME)
    if user_idx is None:
        log.warning("Could not find UserName column in mapping sheet; enrichment disabled")
        return {}

    school_name_idx = locate(header, SCHOOL_NAME)
    school_code_idx = locate(header, SCHOOL_CODE_PRIMARY)
    udsie_idx = locate(header, UDSIE_CODE)
    emis_idx = locate(header, EMIS_ID)

    lookup: Dict[str, IdentityRecord] = {}
    for row in mapping_grid[1:]:
        if not row:
            continue
        user_name = cell(row, user_idx)
        if not user_name:
            continue
        lookup[user_name] = IdentityRecord(
            raw_key=user_name,
            school_name=cell(row, school_name_idx),
            school_code_primary=cell(row, school_code_idx),
            school_code_secondary=cell(row, udsie_idx),
            emis_id=cell(row, emis_idx),
        )

    log.info("Built student lookup map with %d students", len(lookup))
    return lookup
