"""Base models and common types for the extraction engine."""

from enum import Enum

from pydantic import BaseModel, Field

# A table is an ordered list of rows, each an ordered list of cell strings.
Table = list[list[str]]


class ContentType(str, Enum):
    """Content-type label assigned to a rendered page."""

    TABLE = "table"
    HEBREW_TEXT = "hebrew_text"
    MIXED = "mixed"
    FALLBACK = "fallback"


class ExtractionMethod(str, Enum):
    """Strategy that produced a page's final table."""

    DIRECT = "direct"
    HYBRID = "hybrid"
    OCR_ONLY = "ocr_only"
    FALLBACK_OCR = "fallback_ocr"


class PageSegMode(int, Enum):
    """Tesseract page segmentation modes used by the engine."""

    AUTO_OSD = 1  # automatic + orientation detection
    AUTO = 3  # fully automatic
    SINGLE_BLOCK = 6  # uniform block of text
    SINGLE_WORD = 8


class EngineMode(int, Enum):
    """Tesseract OCR engine modes."""

    LEGACY = 0
    LSTM = 1


class CellType(str, Enum):
    """Inferred type of a financial table cell."""

    AMOUNT = "amount"
    DATE = "date"
    ACCOUNT = "account"
    NUMERIC = "numeric"
    TEXT = "text"


class TextRun(BaseModel):
    """Positioned text fragment from a PDF text layer.

    Coordinates follow the PDF convention: y grows upward, so a larger y
    is higher on the page.
    """

    text: str
    x: float = Field(..., description="Left edge X coordinate")
    y: float = Field(..., description="Baseline Y coordinate (PDF space)")
    width: float = Field(default=0.0, ge=0.0, description="Run width")
    height: float = Field(default=0.0, ge=0.0, description="Run height")

    @property
    def x2(self) -> float:
        """Right edge X coordinate."""
        return self.x + self.width

    class Config:
        frozen = True
