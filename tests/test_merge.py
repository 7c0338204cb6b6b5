"""Tests for table scoring and direct/OCR merging."""

import pytest

import fintab
from fintab.pipeline.stage_merge import merge_text_results, score_table_data

SAMPLE_TABLES = [
    [["a"]],
    [[""]],
    [["סכום", "1,234.56"], ["יתרה", "500.00"]],
    [["x"], ["y", "z", "w", "v"]],
    [["₪100"] * 8 for _ in range(30)],
]


class TestScoreTableData:
    """Tests for the table quality score."""

    def test_empty_scores_zero(self):
        assert score_table_data([]) == 0.0

    @pytest.mark.parametrize("table", SAMPLE_TABLES)
    def test_bounded(self, table):
        assert 0.0 <= score_table_data(table) <= 1.0

    def test_richer_content_scores_higher(self):
        plain = [["ab", "cd"]]
        rich = [["סכום", "1,234.56"]]
        assert score_table_data(rich) > score_table_data(plain)

    def test_components(self):
        # volume 0.1, consistency 1, content 1
        assert score_table_data([["abc", "def"]]) == pytest.approx(0.03 + 0.3 + 0.4)

    def test_exported_at_package_level(self):
        assert fintab.score_table is score_table_data


class TestMergeTextResults:
    """Tests for picking between direct and OCR tables."""

    @pytest.mark.parametrize("table", [t for t in SAMPLE_TABLES if t != [[""]]])
    def test_empty_side_yields_other(self, table):
        assert merge_text_results(table, []) == table
        assert merge_text_results([], table) == table

    def test_decisive_ocr_wins(self):
        direct = [["abc def ghi jkl"]]
        ocr = [["תאריך", "01/01/2024"], ["סכום", "1,234.56 ₪"]]
        assert merge_text_results(direct, ocr) == ocr

    def test_decisive_direct_wins(self):
        direct = [["תאריך", "01/01/2024"], ["סכום", "1,234.56 ₪"]]
        ocr = [["x"]]
        assert merge_text_results(direct, ocr) == direct

    def test_close_scores_prefer_more_columns(self):
        direct = [["abc", "def"]]
        ocr = [["abc def"]]
        assert merge_text_results(direct, ocr) == direct

    def test_tie_goes_to_ocr(self):
        direct = [["abc", "def"]]
        ocr = [["ghi", "jkl"]]
        assert merge_text_results(direct, ocr) is ocr
