"""CSV / TSV writer.

Written with a UTF-8 byte order mark by default so that spreadsheet
applications pick the right encoding for Hebrew text.
"""

import csv
import io
import re
from pathlib import Path
from typing import Optional

from fintab.models import Table

from .base import BaseExporter, ExportOptions, clean_hebrew_text, normalize_data

LINE_BREAKS = re.compile(r"\r\n|\r|\n")
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")


def clean_cell_value(value: str) -> str:
    """Flatten a cell to one line without control or bidi characters."""
    value = LINE_BREAKS.sub(" ", value)
    value = value.replace("\t", " ")
    value = CONTROL_CHARS.sub("", value)
    return clean_hebrew_text(value).strip()


def _write_rows(handle, data: Table, delimiter: str) -> None:
    writer = csv.writer(
        handle, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator="\n"
    )
    for row in data:
        writer.writerow([clean_cell_value(cell) for cell in row])


class CSVExporter(BaseExporter):
    format = "csv"
    extension = "csv"

    def _delimiter(self, options: ExportOptions) -> str:
        return options.delimiter

    def _write(self, data: Table, path: Path, options: ExportOptions) -> None:
        encoding = "utf-8-sig" if options.bom else "utf-8"
        with open(path, "w", encoding=encoding, newline="") as f:
            _write_rows(f, data, self._delimiter(options))

    def to_string(self, table: Table, options: Optional[ExportOptions] = None) -> str:
        """Render the table as delimited text without touching the disk."""
        options = options or ExportOptions()
        buffer = io.StringIO()
        _write_rows(buffer, normalize_data(table), self._delimiter(options))
        return buffer.getvalue()


class TSVExporter(CSVExporter):
    """Tab-separated variant."""

    format = "tsv"
    extension = "tsv"

    def _delimiter(self, options: ExportOptions) -> str:
        return "\t"


def to_tsv(table: Table) -> str:
    return TSVExporter().to_string(table)
