"""Tests for CSV, TSV and XLSX exporters."""

from datetime import date

import openpyxl
import pytest
from docx import Document
from docx.oxml.ns import qn

from fintab.errors import ExportError
from fintab.export import (
    BaseExporter,
    CSVExporter,
    DocxExporter,
    ExcelExporter,
    ExportOptions,
    TSVExporter,
    clean_hebrew_text,
    generate_file_name,
    get_exporter,
    normalize_data,
    to_tsv,
)

TABLE = [
    ["תאריך", "תיאור", "סכום"],
    ["15/01/2024", "משכורת", "1,234.50"],
    ["20/01/2024", "שכירות", "-500.00"],
]


class TestBaseHelpers:
    """Tests for shared exporter helpers."""

    def test_generate_file_name(self):
        assert generate_file_name("report", "csv", date(2024, 1, 15)) == "report_2024-01-15.csv"

    def test_clean_hebrew_text_removes_bidi_marks(self):
        assert clean_hebrew_text("\u200fסכום\u200e") == "סכום"

    def test_normalize_data_pads_and_strips(self):
        assert normalize_data([[" a ", None], ["b"]]) == [["a", ""], ["b", ""]]

    @pytest.mark.parametrize("table", [[], [[]]])
    def test_no_data(self, table):
        with pytest.raises(ExportError):
            normalize_data(table)


class TestRegistry:
    def test_known_formats(self):
        assert isinstance(get_exporter("csv"), CSVExporter)
        assert isinstance(get_exporter("TSV"), TSVExporter)
        assert isinstance(get_exporter("xlsx"), ExcelExporter)
        assert isinstance(get_exporter("docx"), DocxExporter)

    def test_unknown_format(self):
        with pytest.raises(ExportError):
            get_exporter("pdf")


class TestCSVExporter:
    """Tests for delimited text output."""

    def test_writes_bom_and_rows(self, output_dir):
        result = CSVExporter().export(TABLE, ExportOptions(output_dir=output_dir, file_name="out.csv"))

        assert result.format == "csv"
        assert result.rows == 3
        raw = result.path.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        lines = raw.decode("utf-8-sig").splitlines()
        assert lines[0] == "תאריך,תיאור,סכום"
        assert lines[1] == '15/01/2024,משכורת,"1,234.50"'

    def test_without_bom(self, output_dir):
        options = ExportOptions(output_dir=output_dir, file_name="out.csv", bom=False)
        result = CSVExporter().export(TABLE, options)
        assert not result.path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_default_file_name(self, output_dir):
        result = CSVExporter().export(TABLE, ExportOptions(output_dir=output_dir, base_name="bank"))
        assert result.file_name.startswith("bank_")
        assert result.file_name.endswith(".csv")
        assert result.path.exists()

    def test_cells_flattened_and_cleaned(self):
        text = CSVExporter().to_string([["line one\nline two", "a\x00b", "\u202bסכום"]])
        assert text == "line one line two,ab,סכום\n"

    def test_custom_delimiter_and_quoting(self):
        text = CSVExporter().to_string([["a;b", 'say "hi"']], ExportOptions(delimiter=";"))
        assert text == '"a;b";"say ""hi"""\n'

    def test_tsv(self):
        assert to_tsv([["a\tb", "c"]]) == "a b\tc\n"

    def test_empty_table(self, output_dir):
        with pytest.raises(ExportError):
            CSVExporter().export([], ExportOptions(output_dir=output_dir))


class TestExcelExporter:
    """Tests for XLSX output."""

    @pytest.fixture
    def sheet(self, output_dir):
        options = ExportOptions(output_dir=output_dir, file_name="out.xlsx", typed_cells=True)
        result = ExcelExporter().export(TABLE, options)
        return openpyxl.load_workbook(result.path).active

    def test_right_to_left(self, sheet):
        assert sheet.sheet_view.rightToLeft

    def test_header_styled_and_frozen(self, sheet):
        assert sheet["A1"].value == "תאריך"
        assert sheet["A1"].font.bold
        assert sheet.freeze_panes == "A2"

    def test_hebrew_cells_right_aligned(self, sheet):
        assert sheet["B2"].alignment.horizontal == "right"
        assert sheet["B2"].alignment.readingOrder == 2

    def test_typed_amounts(self, sheet):
        assert sheet["C2"].value == pytest.approx(1234.5)
        assert sheet["C3"].value == pytest.approx(-500.0)
        # Dates stay text
        assert sheet["A2"].value == "15/01/2024"

    def test_column_widths(self, sheet):
        assert sheet.column_dimensions["A"].width == len("15/01/2024") + 3

    def test_plain_text_without_headers(self, output_dir):
        options = ExportOptions(output_dir=output_dir, file_name="plain.xlsx", has_headers=False, rtl=False)
        result = ExcelExporter().export(TABLE, options)
        ws = openpyxl.load_workbook(result.path).active

        assert not ws.sheet_view.rightToLeft
        assert not ws["A1"].font.bold
        assert ws.freeze_panes is None
        assert ws["C2"].value == "1,234.50"

    def test_equals_rules_stay_text(self, output_dir):
        options = ExportOptions(output_dir=output_dir, file_name="rules.xlsx")
        result = ExcelExporter().export([["Total", "x"], ["=====", "100"]], options)
        ws = openpyxl.load_workbook(result.path).active

        assert ws["A2"].value == "====="
        assert ws["A2"].data_type == "s"

    def test_control_characters_removed(self, output_dir):
        options = ExportOptions(output_dir=output_dir, file_name="ctrl.xlsx", has_headers=False)
        result = ExcelExporter().export([["a\x01b", "x"]], options)
        ws = openpyxl.load_workbook(result.path).active

        assert ws["A1"].value == "ab"


class TestWriteFailures:
    def test_any_write_error_becomes_export_error(self, output_dir):
        class BrokenExporter(BaseExporter):
            format = extension = "bin"

            def _write(self, data, path, options):
                raise RuntimeError("writer exploded")

        with pytest.raises(ExportError, match="writer exploded"):
            BrokenExporter().export(TABLE, ExportOptions(output_dir=output_dir))


class TestDocxExporter:
    """Tests for Word output."""

    @pytest.fixture
    def document(self, output_dir):
        options = ExportOptions(
            output_dir=output_dir, file_name="out.docx", font_name="Arial", font_size=11
        )
        result = DocxExporter().export(TABLE, options)
        assert result.format == "docx"
        return Document(str(result.path))

    def test_title_paragraph(self, document):
        title = document.paragraphs[0]
        assert title.text == "מסמך מומר מ-PDF"
        assert title.runs[0].bold
        assert title.runs[0].font.size.pt == 15

    def test_bordered_table(self, document):
        assert len(document.tables) == 1
        table = document.tables[0]
        assert table.style.name == "Table Grid"
        assert [cell.text for cell in table.rows[1].cells] == ["15/01/2024", "משכורת", "1,234.50"]
        assert table._tbl.tblPr.find(qn("w:bidiVisual")) is not None

    def test_header_bold_and_fonts(self, document):
        header_run = document.tables[0].rows[0].cells[0].paragraphs[0].runs[0]
        body_run = document.tables[0].rows[1].cells[1].paragraphs[0].runs[0]

        assert header_run.bold
        assert not body_run.bold
        assert body_run.font.name == "Arial"
        assert body_run.font.size.pt == 11

    def test_paragraphs_right_to_left(self, document):
        paragraph = document.tables[0].rows[1].cells[1].paragraphs[0]
        assert paragraph._p.pPr.find(qn("w:bidi")) is not None

    def test_paragraph_mode(self, output_dir):
        options = ExportOptions(
            output_dir=output_dir, file_name="lines.docx", as_table=False, title=None
        )
        result = DocxExporter().export(TABLE, options)
        document = Document(str(result.path))

        texts = [p.text for p in document.paragraphs if p.text]
        assert texts == [
            "תאריך | תיאור | סכום",
            "15/01/2024 | משכורת | 1,234.50",
            "20/01/2024 | שכירות | -500.00",
        ]
        assert not document.tables
