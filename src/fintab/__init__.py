"""Hebrew/English financial PDF table extraction."""

from fintab.models import ExtractionResult, Table
from fintab.pipeline import PageOrchestrator, classify_content, score_table_data

__version__ = "0.1.0"

score_table = score_table_data

_orchestrator = None


def extract_page(page) -> ExtractionResult:
    """Extract one page with the default orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = PageOrchestrator()
    return _orchestrator.extract_page(page)


__all__ = ["ExtractionResult", "Table", "classify_content", "extract_page", "score_table"]
