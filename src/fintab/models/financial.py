"""Financial cell annotation models."""

from typing import Optional, Union

from pydantic import BaseModel, Field

from .base import CellType


class FinancialCell(BaseModel):
    """Classified and normalized view of a raw table cell.

    Produced by a read-only annotation pass; never written back into
    the table it was derived from.
    """

    raw: str
    value: Union[float, str, None] = None
    text: str = Field(default="", description="Normalized string form")
    cell_type: CellType = CellType.TEXT
    is_valid: bool = True
    error: Optional[str] = Field(None, description="Validation failure reason")


class ColumnType(BaseModel):
    """Majority cell type detected for a table column."""

    index: int = Field(..., ge=0)
    cell_type: CellType = CellType.TEXT
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
