"""XLSX writer built on openpyxl."""

from pathlib import Path
from typing import Union

import openpyxl
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from fintab.models import CellType, Table
from fintab.pipeline.stage_financial import classify_cell

from .base import BaseExporter, ExportOptions, clean_hebrew_text, contains_hebrew

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
HEBREW_ALIGNMENT = Alignment(horizontal="right", readingOrder=2)

MAX_COLUMN_WIDTH = 60
SHEET_NAME_LIMIT = 31

NUMBER_TYPES = {CellType.AMOUNT, CellType.NUMERIC}


def typed_value(text: str) -> Union[float, str]:
    """Numeric cells become floats; everything else stays text."""
    cell = classify_cell(text)
    if cell.cell_type in NUMBER_TYPES and cell.is_valid and isinstance(cell.value, float):
        return cell.value
    return text


class ExcelExporter(BaseExporter):
    format = "xlsx"
    extension = "xlsx"

    def _write(self, data: Table, path: Path, options: ExportOptions) -> None:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = options.sheet_name[:SHEET_NAME_LIMIT]
        ws.sheet_view.rightToLeft = options.rtl

        for row_idx, row in enumerate(data, start=1):
            is_header = options.has_headers and row_idx == 1
            for col_idx, raw in enumerate(row, start=1):
                text = ILLEGAL_CHARACTERS_RE.sub("", clean_hebrew_text(raw))
                value = typed_value(text) if options.typed_cells and not is_header else text
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                if isinstance(value, str) and value.startswith("="):
                    # Rules like "=====" are text, never formulas
                    cell.data_type = "s"

                if is_header:
                    cell.font = HEADER_FONT
                    cell.fill = HEADER_FILL
                    cell.alignment = Alignment(horizontal="center")
                elif contains_hebrew(text):
                    cell.alignment = HEBREW_ALIGNMENT

        # Auto-fit column widths (approximate)
        for col_idx in range(1, len(data[0]) + 1):
            max_len = max(min(MAX_COLUMN_WIDTH, len(row[col_idx - 1])) for row in data)
            ws.column_dimensions[get_column_letter(col_idx)].width = max_len + 3

        if options.has_headers:
            ws.freeze_panes = "A2"

        wb.save(str(path))
