"""
Shared fixtures — an in-memory spreadsheet holding a small school dataset.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(__file__))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sample_sheets import FakeAccessor, school_sheets


@pytest.fixture
def sheets():
    return school_sheets()


@pytest.fixture
def accessor(sheets):
    return FakeAccessor(sheets)
