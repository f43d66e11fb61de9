"""
Tests for core/identity.py — learner key extraction and the mapping lookup.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.dirname(__file__))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.identity import ENRICHMENT_COLUMNS, IdentityRecord, build_lookup, extract_key
from sample_sheets import MAPPING


class TestExtractKey:
    @pytest.mark.parametrize("value,expected", [
        ("TN1015257176@username.com", "TN1015257176"),
        ("PLAINID", "PLAINID"),
        ("", ""),
        (None, ""),
        ("  TN1@a.com  ", "TN1"),
        ("  PLAIN  ", "PLAIN"),
        ("a@b@c", "a"),
        ("@nobody.com", ""),
    ])
    def test_extract_key(self, value, expected):
        assert extract_key(value) == expected


class TestBuildLookup:
    def test_one_record_per_username(self):
        lookup = build_lookup(MAPPING)
        assert len(lookup) == 6
        record = lookup["TN1001"]
        assert record.school_name == "Govt High School"
        assert record.school_code_primary == "SCH001"
        assert record.school_code_secondary == "U-11"
        assert record.emis_id == "E-501"

    def test_missing_username_column_gives_empty_lookup(self):
        grid = [["School ID", "Student ID"], ["S1", "A"]]
        assert build_lookup(grid) == {}

    def test_empty_grid(self):
        assert build_lookup([]) == {}

    def test_blank_usernames_skipped_and_last_duplicate_wins(self):
        grid = [
            ["UserName", "School Name"],
            ["", "Ignored"],
            ["U1", "First"],
            ["U1 ", "Second"],
        ]
        lookup = build_lookup(grid)
        assert list(lookup) == ["U1"]
        assert lookup["U1"].school_name == "Second"

    def test_missing_optional_columns_read_blank(self):
        lookup = build_lookup([["UserName"], ["U1"]])
        assert lookup["U1"] == IdentityRecord(raw_key="U1")


def test_enrichment_uses_output_column_names():
    record = IdentityRecord("U1", "Sch", "P1", "S1", "E1")
    assert record.as_enrichment() == dict(zip(ENRICHMENT_COLUMNS, ["Sch", "P1", "S1", "E1"]))
