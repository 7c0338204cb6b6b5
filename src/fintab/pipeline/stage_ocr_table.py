"""OCR Table Stage - Render, classify, preprocess, recognize, parse."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from fintab.config import settings
from fintab.errors import OCRTimeoutError
from fintab.models import ContentAnalysis, OCRAttempt, Table
from fintab.pipeline.stage_classify import classify_content
from fintab.pipeline.stage_multipass import MultiPassOCR, make_attempt
from fintab.pipeline.stage_ocr import LOW_CONFIDENCE, OCRInvoker
from fintab.pipeline.stage_parse import parse_ocr_text
from fintab.pipeline.stage_preprocess import select_preprocessing

logger = logging.getLogger(__name__)


@dataclass
class OCRExtraction:
    """Table recovered from a page image and how it was obtained."""

    data: Table
    content_analysis: ContentAnalysis
    confidence: float
    attempt_type: str


class OCRTableExtractor:
    """Extracts a table from a page by OCR.

    A first recognition uses content-type preprocessing and engine
    parameters. Confidence below 30 (or a timeout) hands over to
    multi-pass OCR, with the first result kept as the ``enhanced``
    attempt.
    """

    def __init__(
        self,
        invoker: Optional[OCRInvoker] = None,
        render_scale: Optional[float] = None,
    ):
        """Initialize extractor.

        Args:
            invoker: OCR invoker (default: shared Tesseract engine).
            render_scale: Page render scale (default from settings, 2.5).
        """
        self.invoker = invoker or OCRInvoker()
        self.render_scale = render_scale or settings.render_scale
        self.multipass = MultiPassOCR(self.invoker)

    def extract(self, page) -> OCRExtraction:
        """Render ``page`` and extract its table."""
        canvas = page.render_to_canvas(self.render_scale)
        logger.debug(f"Canvas rendered: {canvas.shape[1]}x{canvas.shape[0]}")
        return self.extract_from_canvas(canvas)

    def extract_from_canvas(self, canvas: np.ndarray) -> OCRExtraction:
        analysis = classify_content(canvas)
        content_type = analysis.type
        logger.info(
            f"Detected content: {content_type.value} "
            f"(confidence: {analysis.confidence:.3f})"
        )

        processed = select_preprocessing(canvas, analysis)
        request = self.invoker.build_request(processed, content_type)

        start = time.perf_counter()
        try:
            response = self.invoker.execute(request)
        except OCRTimeoutError as e:
            logger.warning(f"OCR timed out, retrying with multi-pass: {e}")
            response = None
        elapsed = (time.perf_counter() - start) * 1000

        if response is None or response.confidence < LOW_CONFIDENCE:
            if response is None:
                first = OCRAttempt(type="enhanced", failed=True, error="timeout")
            else:
                logger.warning(
                    f"Low OCR confidence ({response.confidence:.1f}), "
                    "attempting multi-pass strategy"
                )
                first = make_attempt("enhanced", response, content_type, elapsed)
            best = self.multipass.run(canvas, processed, content_type, first=first)
            return OCRExtraction(
                data=best.data,
                content_analysis=analysis,
                confidence=best.confidence,
                attempt_type=best.type,
            )

        logger.debug(f"OCR completed with confidence: {response.confidence:.1f}")
        return OCRExtraction(
            data=parse_ocr_text(response.text, content_type),
            content_analysis=analysis,
            confidence=response.confidence,
            attempt_type="single_pass",
        )
