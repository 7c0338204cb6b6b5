"""Shared exporter contract.

Every exporter takes a finished table plus ``ExportOptions`` and writes
one file, returning an ``ExportResult`` that names it.
"""

import logging
import re
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from fintab.errors import ExportError
from fintab.models import Table

logger = logging.getLogger(__name__)

BIDI_MARKS = re.compile(r"[\u200E\u200F\u202A-\u202E]")
HEBREW = re.compile(r"[\u0590-\u05FF]")


class ExportOptions(BaseModel):
    """Writer options common to all output formats."""

    output_dir: Path = Path(".")
    file_name: Optional[str] = Field(None, description="Explicit file name, extension included")
    base_name: str = "financial_data"
    has_headers: bool = True
    rtl: bool = True
    delimiter: str = Field(",", min_length=1, max_length=1)
    bom: bool = True
    typed_cells: bool = False
    sheet_name: str = "Data"
    # Document formats
    title: Optional[str] = "מסמך מומר מ-PDF"
    font_name: str = "David"
    font_size: int = Field(12, ge=1, le=72)
    as_table: bool = True


class ExportResult(BaseModel):
    """Where an export landed."""

    file_name: str
    format: str
    path: Path
    rows: int = Field(default=0, ge=0)


def clean_hebrew_text(text: str) -> str:
    """Remove explicit bidi control marks."""
    return BIDI_MARKS.sub("", text)


def contains_hebrew(text: str) -> bool:
    return bool(HEBREW.search(text))


def generate_file_name(base_name: str, extension: str, today: Optional[date] = None) -> str:
    """``<base>_<YYYY-MM-DD>.<ext>``"""
    stamp = (today or date.today()).isoformat()
    return f"{base_name}_{stamp}.{extension}"


def normalize_data(table: Table) -> Table:
    """Rectangular copy of the table with stringified, stripped cells.

    Raises:
        ExportError: If there is nothing to write.
    """
    if not table or not any(table):
        raise ExportError("No data to export")

    width = max(len(row) for row in table)
    return [
        [str(cell).strip() if cell is not None else "" for cell in row]
        + [""] * (width - len(row))
        for row in table
    ]


class BaseExporter:
    """Template for a single-format writer.

    Subclasses set ``format`` and ``extension`` and implement ``_write``.
    """

    format: str = ""
    extension: str = ""

    def export(self, table: Table, options: Optional[ExportOptions] = None) -> ExportResult:
        options = options or ExportOptions()
        data = normalize_data(table)

        file_name = options.file_name or generate_file_name(options.base_name, self.extension)
        options.output_dir.mkdir(parents=True, exist_ok=True)
        path = options.output_dir / file_name

        try:
            self._write(data, path, options)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Failed to write {path}: {e}") from e

        logger.info(f"Exported {len(data)} rows to {path}")
        return ExportResult(file_name=file_name, format=self.format, path=path, rows=len(data))

    def _write(self, data: Table, path: Path, options: ExportOptions) -> None:
        raise NotImplementedError
