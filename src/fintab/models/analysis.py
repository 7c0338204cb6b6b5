"""Models describing page text quality and image content analysis."""

from pydantic import BaseModel, Field

from .base import ContentType


class TextQuality(BaseModel):
    """Quality score of an embedded PDF text layer."""

    score: float = Field(..., ge=0.0, le=1.0)
    reason: str = ""


class ContentMetrics(BaseModel):
    """Pixel-level measurements behind a content classification."""

    text_density: float = Field(default=0.0, ge=0.0, description="Black pixels / total pixels")
    horizontal_line_ratio: float = Field(default=0.0, ge=0.0)
    vertical_line_ratio: float = Field(default=0.0, ge=0.0)
    text_block_ratio: float = Field(default=0.0, ge=0.0, description="Short runs per 100 pixels")
    structured_content_ratio: float = Field(default=0.0, ge=0.0)


class ContentAnalysis(BaseModel):
    """Content-type label for a canvas with its confidence and metrics."""

    type: ContentType
    confidence: float = Field(..., ge=0.0, le=1.0)
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)


class ImageCharacteristics(BaseModel):
    """Coarse line structure used to override page segmentation."""

    text_density: float = Field(default=0.0, ge=0.0)
    has_strong_lines: bool = False
    horizontal_lines: int = Field(default=0, ge=0)
    vertical_lines: int = Field(default=0, ge=0)
