"""IR models for the financial table extraction engine.

Pydantic models for the values flowing between pipeline stages:

- TextRun: positioned text from the PDF text layer
- ContentAnalysis / ImageCharacteristics: what a rendered page looks like
- OCRRequest / OCRResponse / OCRAttempt: one recognize call and its result
- ExtractionResult / DocumentResult: per-page and per-file output
- FinancialCell: read-only typed annotation of a table cell

Tables themselves are plain ``list[list[str]]`` values.
"""

from .analysis import (
    ContentAnalysis,
    ContentMetrics,
    ImageCharacteristics,
    TextQuality,
)
from .base import (
    CellType,
    ContentType,
    EngineMode,
    ExtractionMethod,
    PageSegMode,
    Table,
    TextRun,
)
from .financial import ColumnType, FinancialCell
from .ocr import OCRAttempt, OCRRequest, OCRResponse
from .result import (
    DocumentResult,
    ExtractionResult,
    MethodTiming,
    ProcessingStats,
    ValidationLevel,
    ValidationMessage,
)

__all__ = [
    # Base types
    "CellType",
    "ContentType",
    "EngineMode",
    "ExtractionMethod",
    "PageSegMode",
    "Table",
    "TextRun",
    # Analysis
    "ContentAnalysis",
    "ContentMetrics",
    "ImageCharacteristics",
    "TextQuality",
    # OCR
    "OCRAttempt",
    "OCRRequest",
    "OCRResponse",
    # Results
    "DocumentResult",
    "ExtractionResult",
    "MethodTiming",
    "ProcessingStats",
    "ValidationLevel",
    "ValidationMessage",
    # Financial
    "ColumnType",
    "FinancialCell",
]
