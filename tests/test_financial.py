"""Tests for financial cell classification and statement parsing."""

import pytest

from fintab.models import CellType
from fintab.pipeline.stage_financial import (
    analyze_column_types,
    classify_cell,
    classify_table,
    determine_column_type,
    is_account_number,
    is_amount,
    is_date,
    is_financial_header_row,
    is_table_border,
    normalize_amount,
    normalize_date,
    parse_financial_table,
    smart_split_financial_line,
)

STATEMENT = (
    "תאריך\t\tתיאור\t\tסכום\n"
    "15/01/2024\t\tמשכורת\t\t1,234.50\n"
    "------------\n"
    "20/01/2024\t\tשכירות\t\t(500.00)"
)


class TestPredicates:
    """Tests for cell type patterns."""

    @pytest.mark.parametrize("value", ["1,234.50", "₪1,234.50", "(500.00)", "-1,000", "12 ₪"])
    def test_amounts(self, value):
        assert is_amount(value)

    @pytest.mark.parametrize("value", ["15/01/2024", "1.2.24", "01-02-2024", "2024/01/15"])
    def test_dates(self, value):
        assert is_date(value)

    @pytest.mark.parametrize("value", ["12345", "12-345-678", "123.4567"])
    def test_accounts(self, value):
        assert is_account_number(value)

    def test_border_lines(self):
        assert is_table_border("|-------|")
        assert not is_table_border("---")
        assert not is_table_border("סכום ----")

    def test_header_row_needs_two_keywords(self):
        assert is_financial_header_row("תאריך תיאור סכום")
        assert not is_financial_header_row("סכום כולל")


class TestNormalizers:
    def test_amount(self):
        assert normalize_amount("₪ (1,234.50)") == "-1234.50"
        assert normalize_amount("1,000") == "1000"
        assert normalize_amount("abc") == "abc"

    def test_date(self):
        assert normalize_date("15.01.2024") == "15/01/2024"
        assert normalize_date("2024-01-15") == "2024/01/15"
        assert normalize_date("soon") == "soon"


class TestClassifyCell:
    """Tests for cell classification and validation."""

    def test_amount(self):
        cell = classify_cell("(1,234.50)")
        assert cell.cell_type == CellType.AMOUNT
        assert cell.is_valid
        assert cell.value == pytest.approx(-1234.5)
        assert cell.text == "-1234.50"

    def test_huge_amount_invalid(self):
        cell = classify_cell("99,999,999,999.00")
        assert cell.cell_type == CellType.AMOUNT
        assert not cell.is_valid
        assert cell.error == "Amount seems unreasonably large"

    def test_dotted_date_is_not_an_amount(self):
        cell = classify_cell("01.02.2024")
        assert cell.cell_type == CellType.DATE
        assert cell.is_valid
        assert cell.text == "01/02/2024"

    def test_year_first_date(self):
        cell = classify_cell("2024-01-15")
        assert cell.cell_type == CellType.DATE
        assert cell.is_valid

    def test_date_out_of_range(self):
        cell = classify_cell("32/13/2024")
        assert not cell.is_valid
        assert cell.error == "Date values out of valid range"

    def test_account(self):
        cell = classify_cell("12345")
        assert cell.cell_type == CellType.ACCOUNT
        assert cell.value == "12345"

    def test_long_digit_run_is_numeric(self):
        cell = classify_cell("123456789012")
        assert cell.cell_type == CellType.NUMERIC
        assert cell.value == 123456789012.0

    def test_text_control_chars_removed(self):
        cell = classify_cell("שכירות\x07")
        assert cell.cell_type == CellType.TEXT
        assert cell.text == "שכירות"

    def test_long_text_truncated(self):
        cell = classify_cell("א" * 1200)
        assert not cell.is_valid
        assert len(cell.text) == 1003

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty(self, value):
        cell = classify_cell(value)
        assert cell.cell_type == CellType.TEXT
        assert cell.is_valid
        assert cell.text == ""

    def test_classify_table_is_read_only(self):
        table = [["(1,234.50)", "שכירות"]]
        cells = classify_table(table)
        assert table == [["(1,234.50)", "שכירות"]]
        assert [c.cell_type for c in cells[0]] == [CellType.AMOUNT, CellType.TEXT]


class TestColumnTypes:
    """Tests for column majority typing."""

    def test_amount_column(self):
        column = determine_column_type(["1,234.50", "500.00", "(20.00)"])
        assert column.cell_type == CellType.AMOUNT
        assert column.confidence == pytest.approx(1.0)

    def test_no_majority(self):
        column = determine_column_type(["1,234.50", "שכירות", "משכורת"])
        assert column.cell_type == CellType.TEXT

    def test_analyze_indexes_columns(self):
        columns = analyze_column_types([["15/01/2024", "משכורת", "100.00"]])
        assert [c.index for c in columns] == [0, 1, 2]
        assert [c.cell_type for c in columns] == [CellType.DATE, CellType.TEXT, CellType.AMOUNT]


class TestParseFinancialTable:
    """Tests for statement parsing."""

    def test_statement(self):
        assert parse_financial_table(STATEMENT) == [
            ["תאריך", "תיאור", "סכום"],
            ["15/01/2024", "משכורת", "1234.50"],
            ["20/01/2024", "שכירות", "-500.00"],
        ]

    def test_smart_split_without_separators(self):
        cells = smart_split_financial_line("משכורת ינואר 1,234.50 15/01/2024")
        assert cells == ["משכורת ינואר", "1,234.50", "15/01/2024"]

    def test_without_header(self):
        table = parse_financial_table("משכורת   1,000.00\nשכירות   (250.00)")
        assert table == [["משכורת", "1000.00"], ["שכירות", "-250.00"]]

    def test_empty(self):
        assert parse_financial_table("") == []
        assert parse_financial_table("---------\n=========") == []
