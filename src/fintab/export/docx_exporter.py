"""DOCX writer built on python-docx.

Tables are written as a bordered Word table with a bold header row, or
as one paragraph per row (cells joined with `` | ``) when
``as_table`` is off. Hebrew paragraphs and the table itself are marked
right-to-left.
"""

from pathlib import Path

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, Twips

from fintab.models import Table

from .base import BaseExporter, ExportOptions, clean_hebrew_text, contains_hebrew

TABLE_STYLE = "Table Grid"
TITLE_SIZE_INCREASE = 4

# Column widths in twips
TWIPS_PER_CHAR = 200
MIN_COLUMN_WIDTH = 1000
MAX_COLUMN_WIDTH = 4000

PARAGRAPH_SEPARATOR = " | "

# Elements that follow <w:bidi> in <w:pPr>
_PPR_AFTER_BIDI = (
    "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)
# Elements that follow <w:bidiVisual> in <w:tblPr>
_TBLPR_AFTER_BIDI = (
    "w:tblStyleRowBandSize", "w:tblStyleColBandSize", "w:tblW", "w:jc",
    "w:tblCellSpacing", "w:tblInd", "w:tblBorders", "w:shd", "w:tblLayout",
    "w:tblCellMar", "w:tblLook", "w:tblCaption", "w:tblDescription", "w:tblPrChange",
)


def column_widths(data: Table) -> list[int]:
    """Per-column width in twips from the longest cell, held to [1000, 4000]."""
    widths = []
    for col in range(len(data[0])):
        longest = max(len(row[col]) for row in data)
        widths.append(min(max(longest * TWIPS_PER_CHAR, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH))
    return widths


def set_paragraph_rtl(paragraph) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    if p_pr.find(qn("w:bidi")) is None:
        p_pr.insert_element_before(OxmlElement("w:bidi"), *_PPR_AFTER_BIDI)


def set_table_rtl(table) -> None:
    tbl_pr = table._tbl.tblPr
    if tbl_pr.find(qn("w:bidiVisual")) is None:
        tbl_pr.insert_element_before(OxmlElement("w:bidiVisual"), *_TBLPR_AFTER_BIDI)


def add_text(paragraph, text: str, options: ExportOptions, bold: bool = False, size: int = 0):
    """Append a styled run, marking the paragraph RTL where needed."""
    rtl = options.rtl or contains_hebrew(text)
    # Direction must be set before alignment so <w:bidi> precedes <w:jc>
    if rtl:
        set_paragraph_rtl(paragraph)
    paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT if rtl else WD_ALIGN_PARAGRAPH.LEFT

    run = paragraph.add_run(text)
    run.bold = bold
    run.font.name = options.font_name
    run.font.size = Pt(size or options.font_size)
    run.font.rtl = rtl
    # Hebrew is a complex script; Word picks its font from w:cs
    run._element.rPr.rFonts.set(qn("w:cs"), options.font_name)
    return run


class DocxExporter(BaseExporter):
    format = "docx"
    extension = "docx"

    def _write(self, data: Table, path: Path, options: ExportOptions) -> None:
        document = Document()

        if options.title:
            add_text(
                document.add_paragraph(),
                clean_hebrew_text(options.title),
                options,
                bold=True,
                size=options.font_size + TITLE_SIZE_INCREASE,
            )

        if options.as_table:
            self._write_table(document, data, options)
        else:
            self._write_paragraphs(document, data, options)

        document.save(str(path))

    def _write_table(self, document, data: Table, options: ExportOptions) -> None:
        table = document.add_table(rows=len(data), cols=len(data[0]))
        table.style = TABLE_STYLE
        table.autofit = False
        if options.rtl:
            set_table_rtl(table)

        widths = column_widths(data)
        for row_idx, row in enumerate(data):
            is_header = options.has_headers and row_idx == 0
            cells = table.rows[row_idx].cells
            for col_idx, raw in enumerate(row):
                cell = cells[col_idx]
                cell.width = Twips(widths[col_idx])
                add_text(cell.paragraphs[0], clean_hebrew_text(raw), options, bold=is_header)

    def _write_paragraphs(self, document, data: Table, options: ExportOptions) -> None:
        for row_idx, row in enumerate(data):
            text = PARAGRAPH_SEPARATOR.join(clean_hebrew_text(c) for c in row if c)
            if text:
                add_text(document.add_paragraph(), text, options)
            if row_idx < len(data) - 1:
                document.add_paragraph()
