"""
Test suite for date normalization to ISO YYYY-MM-DD.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from evidence.utils.dates import normalize_date


class TestNormalizeDate:

    @pytest.mark.parametrize("raw,expected", [
        ("2026-01-06", "2026-01-06"),
        ("2026-1-6", "2026-01-06"),
        ("01/06/2026", "2026-01-06"),
        ("1/6/26", "2026-01-06"),
        ("01-06-2026", "2026-01-06"),
        ("January 6, 2026", "2026-01-06"),
        ("Jan. 6 2026", "2026-01-06"),
        ("Sept 21st, 2025", "2025-09-21"),
        ("6 Jan 2026", "2026-01-06"),
        ("Tue, 6 Jan 2026 09:12:00 -0800", "2026-01-06"),
    ])
    def test_supported_formats(self, raw, expected):
        assert normalize_date(raw) == expected

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "not a date",
        "13/45/2026",
        "1999-12-31",
        "Smarch 6, 2026",
    ])
    def test_rejected_inputs(self, raw):
        assert normalize_date(raw) is None

    def test_idempotent(self):
        for raw in ("1/6/26", "January 6, 2026", "6 Jan 2026"):
            once = normalize_date(raw)
            assert normalize_date(once) == once

    def test_no_timezone_shift(self):
        """Late-evening dates in far-west offsets keep their calendar day."""
        assert normalize_date("Mon, 31 Dec 2029 23:59:59 -1200") == "2029-12-31"
        assert normalize_date("Thu, 1 Jan 2026 00:00:01 +1400") == "2026-01-01"
