"""Multi-Pass OCR Stage - Retry low-confidence recognition and vote.

Up to four attempts run strictly one after another:

1. enhanced     - the content-type preprocessed canvas
2. conservative - original at scale 2.0, no denoise/sharpen, fallback PSM
3. legacy       - original canvas, legacy engine, uniform-block PSM
4. high_scale   - original at scale 4.0 with full preprocessing

Each attempt is parsed and scored; the best weighted score wins and
ties keep the earlier attempt. A failing attempt scores zero instead of
stopping the sequence.
"""

import logging
import time
from typing import Callable, Optional

import numpy as np

from fintab.models import (
    ContentType,
    EngineMode,
    OCRAttempt,
    OCRRequest,
    OCRResponse,
    PageSegMode,
)
from fintab.pipeline.stage_merge import score_table_data
from fintab.pipeline.stage_ocr import OCRInvoker
from fintab.pipeline.stage_parse import parse_ocr_text
from fintab.pipeline.stage_preprocess import (
    CONSERVATIVE_OPTIONS,
    HIGH_SCALE_OPTIONS,
    enhance_for_ocr,
)

logger = logging.getLogger(__name__)

CONFIDENCE_WEIGHT = 0.4
DATA_WEIGHT = 0.35
TEXT_LENGTH_WEIGHT = 0.15
TIME_WEIGHT = 0.10
ROW_BONUS = 0.1

FULL_TEXT_LENGTH = 500
TIME_BUDGET_MS = 30_000
ROW_BONUS_MIN_ROWS = 5


def make_attempt(
    attempt_type: str,
    response: OCRResponse,
    parse_as: ContentType,
    processing_time: float,
) -> OCRAttempt:
    """Parse and score one recognition result."""
    data = parse_ocr_text(response.text, parse_as)
    data_score = score_table_data(data)
    logger.debug(
        f"{attempt_type} pass: confidence={response.confidence:.1f}, "
        f"data_score={data_score:.3f}, time={processing_time:.0f}ms"
    )
    return OCRAttempt(
        type=attempt_type,
        text=response.text,
        confidence=response.confidence,
        data=data,
        data_score=data_score,
        processing_time=processing_time,
        text_length=len(response.text),
    )


def score_attempt(attempt: OCRAttempt) -> float:
    """Weighted selection score; failed attempts score zero."""
    if attempt.failed:
        return 0.0

    score = CONFIDENCE_WEIGHT * (attempt.confidence / 100)
    score += DATA_WEIGHT * attempt.data_score
    score += TEXT_LENGTH_WEIGHT * min(attempt.text_length / FULL_TEXT_LENGTH, 1.0)
    score += TIME_WEIGHT * max(0.0, 1 - attempt.processing_time / TIME_BUDGET_MS)
    if attempt.row_count > ROW_BONUS_MIN_ROWS:
        score += ROW_BONUS
    return score


def select_best_attempt(attempts: list[OCRAttempt]) -> OCRAttempt:
    """Highest-scoring attempt, first one on ties.

    An empty list yields an empty failed attempt.
    """
    if not attempts:
        return OCRAttempt(type="none", failed=True)

    best = attempts[0]
    best_score = score_attempt(best)
    for attempt in attempts[1:]:
        score = score_attempt(attempt)
        if score > best_score:
            best, best_score = attempt, score

    logger.info(
        "OCR attempts scoring: "
        + ", ".join(
            f"{a.type}: {score_attempt(a):.3f} "
            f"(conf:{a.confidence:.0f}, data:{a.data_score:.3f})"
            for a in attempts
        )
    )
    return best


class MultiPassOCR:
    """Runs the retry sequence against one OCR invoker."""

    def __init__(self, invoker: OCRInvoker):
        self.invoker = invoker

    def _attempt(
        self,
        attempt_type: str,
        parse_as: ContentType,
        build_request: Callable[[], OCRRequest],
    ) -> OCRAttempt:
        try:
            request = build_request()
            start = time.perf_counter()
            response = self.invoker.execute(request)
            elapsed = (time.perf_counter() - start) * 1000
            return make_attempt(attempt_type, response, parse_as, elapsed)
        except Exception as e:
            logger.warning(f"Single pass OCR error ({attempt_type}): {e}")
            return OCRAttempt(type=attempt_type, failed=True, error=str(e))

    def attempts(
        self,
        original: np.ndarray,
        processed: np.ndarray,
        content_type: ContentType,
        first: Optional[OCRAttempt] = None,
    ) -> list[OCRAttempt]:
        """Run every pass and return the attempts in order.

        Args:
            original: Canvas as rendered, before preprocessing.
            processed: Content-type preprocessed canvas.
            content_type: Detected content type.
            first: Already-computed ``enhanced`` attempt to reuse.
        """
        invoker = self.invoker

        enhanced = first or self._attempt(
            "enhanced",
            content_type,
            lambda: invoker.build_request(processed, content_type),
        )
        conservative = self._attempt(
            "conservative",
            ContentType.FALLBACK,
            lambda: invoker.build_request(
                enhance_for_ocr(original, CONSERVATIVE_OPTIONS), ContentType.FALLBACK
            ),
        )
        legacy = self._attempt(
            "legacy",
            ContentType.MIXED,
            lambda: invoker.build_request(
                original,
                ContentType.FALLBACK,
                engine_mode=EngineMode.LEGACY,
                psm=PageSegMode.SINGLE_BLOCK,
            ),
        )
        high_scale = self._attempt(
            "high_scale",
            content_type,
            lambda: invoker.build_request(
                enhance_for_ocr(original, HIGH_SCALE_OPTIONS), content_type
            ),
        )
        return [enhanced, conservative, legacy, high_scale]

    def run(
        self,
        original: np.ndarray,
        processed: np.ndarray,
        content_type: ContentType,
        first: Optional[OCRAttempt] = None,
    ) -> OCRAttempt:
        """Run all passes and return the winning attempt."""
        logger.info("Starting multi-pass OCR strategy")
        attempts = self.attempts(original, processed, content_type, first)
        best = select_best_attempt(attempts)
        logger.info(
            f"Selected best result from {len(attempts)} attempts: "
            f"{best.type} (confidence: {best.confidence:.1f})"
        )
        return best
