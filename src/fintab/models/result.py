"""Per-page and per-document extraction results."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .base import ContentType, ExtractionMethod, Table


class MethodTiming(BaseModel):
    """Timing of one extraction method on a page."""

    type: str
    time_ms: float = Field(default=0.0, ge=0.0)
    rows: int = Field(default=0, ge=0)
    error: Optional[str] = None


class ExtractionResult(BaseModel):
    """Final table for a single page and how it was produced."""

    page_index: int = Field(default=0, ge=0)
    data: Table = Field(default_factory=list)
    method: ExtractionMethod
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    content_type: Optional[ContentType] = None
    state_trace: list[str] = Field(
        default_factory=list, description="States visited by the page state machine"
    )
    timings: list[MethodTiming] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.data)


class ValidationLevel(str, Enum):
    """Severity of a data validation message."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ValidationMessage(BaseModel):
    """One finding from the extracted data report."""

    level: ValidationLevel
    message: str


class ProcessingStats(BaseModel):
    """Aggregate timing and strategy counts for a document."""

    total_pages: int = Field(default=0, ge=0)
    total_time_ms: float = Field(default=0.0, ge=0.0)
    average_page_time_ms: float = Field(default=0.0, ge=0.0)
    methods_used: dict[str, int] = Field(default_factory=dict)


class DocumentResult(BaseModel):
    """Concatenated extraction output for one PDF file."""

    file_name: str
    source_hash: Optional[str] = Field(None, description="SHA-256 of source file")
    page_count: int = Field(default=0, ge=0)
    data: Table = Field(default_factory=list)
    pages: list[ExtractionResult] = Field(default_factory=list)
    validation: list[ValidationMessage] = Field(default_factory=list)
    stats: ProcessingStats = Field(default_factory=ProcessingStats)
    processed_at: datetime = Field(default_factory=datetime.now)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
