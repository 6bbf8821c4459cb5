"""Tests for project code normalization (MY-XXX-YYYY)."""

import pytest
from supplier_eval.utils.project_codes import normalize_project_code


class TestNormalizeProjectCode:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("MY-014-2026", "MY-014-2026"),
            ("MY-7-2024", "MY-007-2024"),
            ("MY-012", "MY-012-2026"),
            ("0122025", "MY-012-2025"),
            ("123", "MY-123-2026"),
            ("  MY-45-2025 ", "MY-045-2025"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert normalize_project_code(raw, current_year=2026) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "12", "MY-"])
    def test_unusable_is_none(self, raw):
        assert normalize_project_code(raw, current_year=2026) is None

    def test_prefixed_without_number_kept_as_typed(self):
        assert normalize_project_code("MY-PILOTO", current_year=2026) == "MY-PILOTO"
