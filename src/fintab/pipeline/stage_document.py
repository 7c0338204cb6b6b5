"""Document Stage - Run every page of every file, in order.

Pages within a file, and files within a batch, are processed strictly
sequentially because they share one OCR engine. A failing page yields
an empty table; a failing file yields a DocumentResult with ``error``
set. Neither stops its siblings.
"""

import logging
import re
import time
from collections import Counter
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from fintab.config import settings
from fintab.models import (
    DocumentResult,
    ExtractionMethod,
    ExtractionResult,
    ProcessingStats,
    Table,
    ValidationLevel,
    ValidationMessage,
)
from fintab.pipeline.stage_page import PageOrchestrator
from fintab.pipeline.stage_render import PDFDocumentSource, compute_file_hash

logger = logging.getLogger(__name__)

HEBREW = re.compile(r"[\u0590-\u05FF]")
DIGIT = re.compile(r"\d")


def validate_data(table: Table) -> list[ValidationMessage]:
    """Summarize problems and detected content in an extracted table."""
    if not table:
        return [ValidationMessage(level=ValidationLevel.ERROR, message="No data found to process")]

    messages = []

    empty_rows = sum(1 for row in table if all(not cell.strip() for cell in row))
    if empty_rows:
        messages.append(
            ValidationMessage(level=ValidationLevel.WARNING, message=f"Found {empty_rows} empty rows")
        )

    if len({len(row) for row in table}) > 1:
        messages.append(
            ValidationMessage(
                level=ValidationLevel.WARNING,
                message="Inconsistent column count between rows",
            )
        )

    if any(HEBREW.search(cell) for row in table for cell in row):
        messages.append(
            ValidationMessage(level=ValidationLevel.SUCCESS, message="Hebrew content detected")
        )

    if any(DIGIT.search(cell) for row in table for cell in row):
        messages.append(
            ValidationMessage(level=ValidationLevel.SUCCESS, message="Numeric data detected")
        )

    return messages


def build_stats(pages: list[ExtractionResult], total_ms: float) -> ProcessingStats:
    methods = Counter(page.method.value for page in pages)
    return ProcessingStats(
        total_pages=len(pages),
        total_time_ms=total_ms,
        average_page_time_ms=total_ms / len(pages) if pages else 0.0,
        methods_used=dict(methods),
    )


class DocumentProcessor:
    """Extracts and concatenates the tables of whole PDF files."""

    def __init__(
        self,
        orchestrator: Optional[PageOrchestrator] = None,
        data_validation: Optional[bool] = None,
    ):
        """Initialize processor.

        Args:
            orchestrator: Page orchestrator (default: standard engines).
            data_validation: Attach a validation report (default from settings).
        """
        self.orchestrator = orchestrator or PageOrchestrator()
        self.data_validation = (
            settings.data_validation if data_validation is None else data_validation
        )

    def process_source(
        self,
        source,
        file_name: str,
        source_hash: Optional[str] = None,
    ) -> DocumentResult:
        """Process every page of an open source.

        Args:
            source: Object with ``get_page_count()`` and ``get_page(n)``.
            file_name: Name reported in the result.
            source_hash: Optional content hash of the file.
        """
        start = time.perf_counter()
        page_count = source.get_page_count()
        pages = []

        for index in range(page_count):
            logger.info(f"Processing page {index + 1} of {page_count} - {file_name}")
            try:
                page = source.get_page(index)
            except Exception as e:
                logger.exception(f"Could not load page {index + 1} of {file_name}: {e}")
                pages.append(
                    ExtractionResult(
                        page_index=index,
                        method=ExtractionMethod.FALLBACK_OCR,
                        error=str(e),
                    )
                )
                continue
            pages.append(self.orchestrator.extract_page(page))

        data = [row for page in pages for row in page.data]
        total_ms = (time.perf_counter() - start) * 1000

        return DocumentResult(
            file_name=file_name,
            source_hash=source_hash,
            page_count=page_count,
            data=data,
            pages=pages,
            validation=validate_data(data) if self.data_validation else [],
            stats=build_stats(pages, total_ms),
        )

    def process(self, pdf_path: Union[str, Path]) -> DocumentResult:
        """Process one PDF file; failures are reported, not raised."""
        pdf_path = Path(pdf_path)
        logger.info(f"Processing file: {pdf_path.name}")

        try:
            source_hash = compute_file_hash(pdf_path)
            with PDFDocumentSource(pdf_path) as source:
                result = self.process_source(source, pdf_path.name, source_hash)
        except Exception as e:
            logger.exception(f"Failed to process {pdf_path.name}: {e}")
            return DocumentResult(file_name=pdf_path.name, error=str(e))

        logger.info(
            f"{pdf_path.name}: {len(result.data)} rows from {result.page_count} pages "
            f"in {result.stats.total_time_ms:.0f}ms {result.stats.methods_used}"
        )
        return result

    def process_batch(
        self,
        pdf_paths: Iterable[Union[str, Path]],
        on_result: Optional[Callable[[DocumentResult], None]] = None,
    ) -> list[DocumentResult]:
        """Process files one after another in the given order.

        Args:
            pdf_paths: Files to process.
            on_result: Called with each result as soon as it is ready.
        """
        results = []
        for pdf_path in pdf_paths:
            result = self.process(pdf_path)
            results.append(result)
            if on_result:
                on_result(result)
        return results
