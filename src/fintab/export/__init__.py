"""Table exporters."""

from fintab.errors import ExportError

from .base import (
    BaseExporter,
    ExportOptions,
    ExportResult,
    clean_hebrew_text,
    generate_file_name,
    normalize_data,
)
from .csv_exporter import CSVExporter, TSVExporter, to_tsv
from .docx_exporter import DocxExporter
from .excel_exporter import ExcelExporter

EXPORTERS: dict[str, type[BaseExporter]] = {
    "csv": CSVExporter,
    "tsv": TSVExporter,
    "xlsx": ExcelExporter,
    "excel": ExcelExporter,
    "docx": DocxExporter,
    "word": DocxExporter,
}


def get_exporter(format: str) -> BaseExporter:
    """Exporter instance for a format name (case-insensitive)."""
    try:
        return EXPORTERS[format.lower()]()
    except KeyError:
        raise ExportError(f"Unsupported export format: {format}") from None


__all__ = [
    "BaseExporter",
    "CSVExporter",
    "DocxExporter",
    "EXPORTERS",
    "ExcelExporter",
    "ExportOptions",
    "ExportResult",
    "TSVExporter",
    "clean_hebrew_text",
    "generate_file_name",
    "get_exporter",
    "normalize_data",
    "to_tsv",
]
