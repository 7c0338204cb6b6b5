"""Page Orchestration Stage - Per-page extraction state machine.

States::

    START -> ASSESS_TEXT -> DIRECT_ONLY | HYBRID | OCR_ONLY
          -> NORMALIZE -> VALIDATE -> DONE

Any exception moves the page to ERROR_FALLBACK, which runs one last
OCR-only attempt. The terminal state always yields a table (possibly
empty) and a method tag.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

from fintab.errors import OCRUnavailableError
from fintab.models import (
    ContentType,
    ExtractionMethod,
    ExtractionResult,
    MethodTiming,
    Table,
)
from fintab.pipeline.stage_direct import DirectTextExtractor
from fintab.pipeline.stage_merge import merge_text_results
from fintab.pipeline.stage_normalize import (
    clean_table,
    merge_header_rows,
    normalize_table,
    validate_table_structure,
)
from fintab.pipeline.stage_ocr_table import OCRTableExtractor
from fintab.pipeline.stage_quality import assess_text_quality, select_strategy

logger = logging.getLogger(__name__)


class PageState(str, Enum):
    """States of the page extraction state machine."""

    START = "start"
    ASSESS_TEXT = "assess_text"
    DIRECT_ONLY = "direct_only"
    HYBRID = "hybrid"
    OCR_ONLY = "ocr_only"
    NORMALIZE = "normalize"
    VALIDATE = "validate"
    DONE = "done"
    ERROR_FALLBACK = "error_fallback"


STRATEGY_STATES = {
    ExtractionMethod.DIRECT: PageState.DIRECT_ONLY,
    ExtractionMethod.HYBRID: PageState.HYBRID,
    ExtractionMethod.OCR_ONLY: PageState.OCR_ONLY,
}


class _PageRun:
    """Mutable bookkeeping for one pass through the state machine."""

    def __init__(self, page_index: int):
        self.page_index = page_index
        self.trace: list[PageState] = []
        self.timings: list[MethodTiming] = []
        self.content_type: Optional[ContentType] = None

    def enter(self, state: PageState) -> None:
        logger.debug(f"Page {self.page_index + 1}: {state.value}")
        self.trace.append(state)

    def timed(self, label: str, step: Callable[[], Table]) -> Table:
        start = time.perf_counter()
        try:
            table = step()
        except Exception as e:
            self.timings.append(
                MethodTiming(
                    type=label,
                    time_ms=(time.perf_counter() - start) * 1000,
                    error=str(e),
                )
            )
            raise
        self.timings.append(
            MethodTiming(
                type=label,
                time_ms=(time.perf_counter() - start) * 1000,
                rows=len(table),
            )
        )
        return table


class PageOrchestrator:
    """Chooses and runs the extraction strategy for each page.

    Pages must provide ``index``, ``get_text_runs()`` and
    ``render_to_canvas(scale)``.
    """

    def __init__(
        self,
        direct_extractor: Optional[DirectTextExtractor] = None,
        ocr_extractor: Optional[OCRTableExtractor] = None,
    ):
        self.direct_extractor = direct_extractor or DirectTextExtractor()
        self.ocr_extractor = ocr_extractor or OCRTableExtractor()

    def _ocr(self, page, run: _PageRun) -> Table:
        extraction = self.ocr_extractor.extract(page)
        run.content_type = extraction.content_analysis.type
        # Glyph repair is for recognized text only; text-layer cells are exact
        return clean_table(extraction.data)

    def _direct(self, runs) -> Table:
        return normalize_table(self.direct_extractor.extract(runs))

    def _hybrid(self, page, runs, run: _PageRun) -> Table:
        direct = run.timed("direct_extraction", lambda: self._direct(runs))
        try:
            ocr = run.timed("ocr_extraction", lambda: self._ocr(page, run))
        except OCRUnavailableError as e:
            logger.warning(f"OCR unavailable, keeping direct text only: {e}")
            return direct
        return merge_text_results(direct, ocr)

    @staticmethod
    def normalize(table: Table) -> Table:
        """Pad and rejoin split headers."""
        return normalize_table(merge_header_rows(normalize_table(table)))

    def extract_page(self, page) -> ExtractionResult:
        """Extract one page's table.

        Args:
            page: Page exposing text runs and rendering.

        Returns:
            ExtractionResult with the final table and method tag.
        """
        page_index = getattr(page, "index", 0)
        run = _PageRun(page_index)
        start = time.perf_counter()
        quality_score = 0.0
        error = None

        run.enter(PageState.START)
        try:
            run.enter(PageState.ASSESS_TEXT)
            runs = page.get_text_runs()
            quality = assess_text_quality(runs)
            quality_score = quality.score
            method = select_strategy(quality.score)
            logger.info(
                f"Page {page_index + 1}: text quality {quality.score:.3f} "
                f"({quality.reason}) -> {method.value}"
            )

            run.enter(STRATEGY_STATES[method])
            if method == ExtractionMethod.DIRECT:
                table = run.timed("direct_extraction", lambda: self._direct(runs))
            elif method == ExtractionMethod.HYBRID:
                table = self._hybrid(page, runs, run)
            else:
                table = run.timed("ocr_only", lambda: self._ocr(page, run))

            run.enter(PageState.NORMALIZE)
            table = self.normalize(table)
            run.enter(PageState.VALIDATE)
            table = validate_table_structure(table)

        except Exception as e:
            logger.exception(f"Error processing page {page_index + 1}: {e}")
            error = str(e)
            method = ExtractionMethod.FALLBACK_OCR
            table = self._fallback(page, run)

        run.enter(PageState.DONE)
        total_ms = (time.perf_counter() - start) * 1000
        self._log_summary(page_index, method, table, total_ms, run.timings)

        return ExtractionResult(
            page_index=page_index,
            data=table,
            method=method,
            quality_score=quality_score,
            content_type=run.content_type,
            state_trace=[state.value for state in run.trace],
            timings=run.timings,
            error=error,
        )

    def _fallback(self, page, run: _PageRun) -> Table:
        """Last-resort OCR-only pass; an empty table if it fails too."""
        run.enter(PageState.ERROR_FALLBACK)
        run.enter(PageState.OCR_ONLY)
        try:
            table = run.timed("fallback_ocr", lambda: self._ocr(page, run))
            run.enter(PageState.NORMALIZE)
            table = self.normalize(table)
            run.enter(PageState.VALIDATE)
            return validate_table_structure(table)
        except Exception as e:
            logger.error(f"Fallback OCR also failed on page {run.page_index + 1}: {e}")
            return []

    @staticmethod
    def _log_summary(
        page_index: int,
        method: ExtractionMethod,
        table: Table,
        total_ms: float,
        timings: list[MethodTiming],
    ) -> None:
        breakdown = ", ".join(
            f"{t.type} {t.time_ms:.0f}ms "
            f"({f'{t.rows} rows' if t.error is None else 'failed'})"
            for t in timings
        )
        logger.info(
            f"Page {page_index + 1} done: {method.value}, {len(table)} rows, "
            f"{total_ms:.0f}ms [{breakdown}]"
        )
