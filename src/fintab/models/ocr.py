"""OCR request/response value objects."""

from typing import Optional

import numpy as np
from pydantic import BaseModel, Field

from .base import ContentType, EngineMode, PageSegMode, Table


class OCRRequest(BaseModel):
    """Immutable description of a single recognize call.

    Each call carries its own engine parameters instead of mutating
    shared engine state.
    """

    canvas: np.ndarray
    language: str = "heb+eng"
    engine_mode: EngineMode = EngineMode.LSTM
    psm: PageSegMode = PageSegMode.SINGLE_BLOCK
    whitelist: Optional[str] = None
    timeout: float = Field(default=30.0, ge=0.0, description="Seconds, 0 disables")
    content_type: ContentType = ContentType.MIXED

    class Config:
        frozen = True
        arbitrary_types_allowed = True


class OCRResponse(BaseModel):
    """Recognized text with mean word confidence."""

    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)


class OCRAttempt(BaseModel):
    """One candidate result in a multi-pass run."""

    type: str
    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    data: Table = Field(default_factory=list)
    data_score: float = Field(default=0.0, ge=0.0, le=1.0)
    processing_time: float = Field(default=0.0, ge=0.0, description="Milliseconds")
    text_length: int = Field(default=0, ge=0)
    failed: bool = False
    error: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.data)

    class Config:
        frozen = True
