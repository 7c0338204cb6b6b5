"""OCR Stage - Recognize text on a preprocessed canvas.

Uses Tesseract through pytesseract. Engine parameters are chosen per
content type and carried in an immutable OCRRequest, so one shared
engine can serve every page without hidden state.
"""

import logging
import shlex
from functools import lru_cache
from typing import Optional, Protocol

import numpy as np
import pytesseract
from PIL import Image

from fintab.config import settings
from fintab.errors import OCRTimeoutError, OCRUnavailableError
from fintab.models import (
    ContentType,
    EngineMode,
    OCRRequest,
    OCRResponse,
    PageSegMode,
)
from fintab.pipeline.stage_classify import analyze_image_characteristics

logger = logging.getLogger(__name__)

HEBREW_LETTERS = "אבגדהוזחטיכלמנסעפצקרשת"
LATIN_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
DIGITS_AND_SYMBOLS = "0123456789.,()-+=₪$€£"

BASE_WHITELIST = f"{HEBREW_LETTERS}{DIGITS_AND_SYMBOLS} "

WHITELISTS = {
    ContentType.TABLE: f"{HEBREW_LETTERS}{DIGITS_AND_SYMBOLS}% ",
    ContentType.HEBREW_TEXT: f"{HEBREW_LETTERS}{LATIN_UPPER}{DIGITS_AND_SYMBOLS} ",
    ContentType.MIXED: f"{HEBREW_LETTERS}{LATIN_UPPER}{DIGITS_AND_SYMBOLS}% ",
    ContentType.FALLBACK: BASE_WHITELIST,
}

PAGE_SEG_MODES = {
    ContentType.TABLE: PageSegMode.SINGLE_BLOCK,
    ContentType.HEBREW_TEXT: PageSegMode.AUTO,
    ContentType.MIXED: PageSegMode.AUTO_OSD,
    ContentType.FALLBACK: PageSegMode.SINGLE_WORD,
}

SPARSE_TEXT_DENSITY = 0.1

# Recognition below this confidence (0-100) triggers multi-pass OCR
LOW_CONFIDENCE = 30


class OCREngine(Protocol):
    """Anything that can serve a recognize call."""

    def recognize(self, request: OCRRequest) -> OCRResponse: ...


def build_ocr_request(
    canvas: np.ndarray,
    content_type: ContentType,
    language: Optional[str] = None,
    engine_mode: EngineMode = EngineMode.LSTM,
    timeout: Optional[float] = None,
    apply_overrides: bool = True,
    psm: Optional[PageSegMode] = None,
) -> OCRRequest:
    """Choose page segmentation and whitelist for a canvas.

    Strong ruling lines force uniform-block mode; sparse text
    (density below 0.1) then forces single-word mode.

    Args:
        canvas: Image to recognize.
        content_type: Detected (or retry) content type.
        language: Tesseract language codes, default from settings.
        engine_mode: LSTM or legacy.
        timeout: Seconds per call, default from settings.
        apply_overrides: Inspect the image for the line/density overrides.
        psm: Fixed page segmentation mode; skips the content mapping
            and the overrides.

    Returns:
        Immutable OCRRequest.
    """
    whitelist = WHITELISTS.get(content_type, BASE_WHITELIST)

    if psm is None:
        psm = PAGE_SEG_MODES.get(content_type, PageSegMode.SINGLE_BLOCK)
        if apply_overrides:
            characteristics = analyze_image_characteristics(canvas)
            if characteristics.has_strong_lines:
                psm = PageSegMode.SINGLE_BLOCK
            if characteristics.text_density < SPARSE_TEXT_DENSITY:
                psm = PageSegMode.SINGLE_WORD

    logger.debug(f"PSM set to {psm.value} for {content_type.value} content")

    return OCRRequest(
        canvas=canvas,
        language=language or settings.ocr_language,
        engine_mode=engine_mode,
        psm=psm,
        whitelist=whitelist,
        timeout=settings.ocr_timeout_seconds if timeout is None else timeout,
        content_type=content_type,
    )


class TesseractEngine:
    """OCR engine using Tesseract.

    Returns layout-preserving text and the mean word confidence.
    """

    def __init__(
        self,
        tesseract_cmd: Optional[str] = None,
        dpi: int = 300,
        config: Optional[str] = None,
    ):
        """Initialize Tesseract engine.

        Args:
            tesseract_cmd: Path to the tesseract binary if not on PATH.
            dpi: Resolution hint passed to Tesseract.
            config: Additional Tesseract config string.
        """
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.dpi = dpi
        self.config = config or ""

    def _build_config(self, request: OCRRequest) -> str:
        """Build Tesseract configuration string."""
        config_parts = [
            f"--psm {request.psm.value}",
            f"--oem {request.engine_mode.value}",
            "-c preserve_interword_spaces=1",
            f"-c user_defined_dpi={self.dpi}",
        ]
        if request.whitelist:
            config_parts.append(
                "-c " + shlex.quote(f"tessedit_char_whitelist={request.whitelist}")
            )
        if self.config:
            config_parts.append(self.config)
        return " ".join(config_parts)

    @staticmethod
    def _to_image(canvas: np.ndarray) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(canvas, dtype=np.uint8))

    @staticmethod
    def mean_confidence(data: dict) -> float:
        """Average confidence (0-100) of recognized words."""
        confidences = []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            conf = float(conf)
            # Skip empty or layout-only entries
            if not str(text).strip() or conf < 0:
                continue
            confidences.append(conf)
        return sum(confidences) / len(confidences) if confidences else 0.0

    def recognize(self, request: OCRRequest) -> OCRResponse:
        """Recognize text on the request's canvas.

        Raises:
            OCRUnavailableError: Tesseract is not installed.
            OCRTimeoutError: The call exceeded ``request.timeout``.
        """
        pil_image = self._to_image(request.canvas)
        config = self._build_config(request)

        try:
            text = pytesseract.image_to_string(
                pil_image,
                lang=request.language,
                config=config,
                timeout=request.timeout,
            )
            data = pytesseract.image_to_data(
                pil_image,
                lang=request.language,
                config=config,
                timeout=request.timeout,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OCRUnavailableError(str(e)) from e
        except pytesseract.TesseractError:
            raise
        except RuntimeError as e:
            # pytesseract signals a killed process with a bare RuntimeError
            if "timeout" in str(e).lower():
                raise OCRTimeoutError(
                    f"Recognition exceeded {request.timeout}s"
                ) from e
            raise

        return OCRResponse(text=text, confidence=self.mean_confidence(data))


@lru_cache(maxsize=1)
def get_ocr_engine() -> TesseractEngine:
    """Process-wide Tesseract engine, created on first use.

    Raises:
        OCRUnavailableError: If the Tesseract binary cannot be found.
    """
    engine = TesseractEngine(tesseract_cmd=settings.tesseract_cmd)
    try:
        version = pytesseract.get_tesseract_version()
    except pytesseract.TesseractNotFoundError as e:
        raise OCRUnavailableError(str(e)) from e
    logger.info(f"Tesseract {version} initialized")
    return engine


class OCRInvoker:
    """Configures and executes recognize calls for one page at a time.

    Calls are strictly sequential; the shared engine is never asked to
    serve two requests at once.
    """

    def __init__(
        self,
        engine: Optional[OCREngine] = None,
        language: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize invoker.

        Args:
            engine: OCR engine; defaults to the shared Tesseract engine.
            language: Tesseract language codes (default from settings).
            timeout: Seconds per recognize call (default from settings).
        """
        self._engine = engine
        self.language = language or settings.ocr_language
        self.timeout = settings.ocr_timeout_seconds if timeout is None else timeout

    @property
    def engine(self) -> OCREngine:
        if self._engine is None:
            self._engine = get_ocr_engine()
        return self._engine

    def build_request(
        self,
        canvas: np.ndarray,
        content_type: ContentType,
        engine_mode: EngineMode = EngineMode.LSTM,
        apply_overrides: bool = True,
        psm: Optional[PageSegMode] = None,
    ) -> OCRRequest:
        return build_ocr_request(
            canvas,
            content_type,
            language=self.language,
            engine_mode=engine_mode,
            timeout=self.timeout,
            apply_overrides=apply_overrides,
            psm=psm,
        )

    def execute(self, request: OCRRequest) -> OCRResponse:
        """Run one prepared request against the engine."""
        response = self.engine.recognize(request)
        logger.debug(
            f"OCR ({request.content_type.value}, psm {request.psm.value}, "
            f"oem {request.engine_mode.value}): "
            f"{len(response.text)} chars, confidence {response.confidence:.1f}"
        )
        return response

    def recognize(
        self,
        canvas: np.ndarray,
        content_type: ContentType,
        engine_mode: EngineMode = EngineMode.LSTM,
        apply_overrides: bool = True,
    ) -> OCRResponse:
        """Configure parameters for the content type and recognize."""
        request = self.build_request(canvas, content_type, engine_mode, apply_overrides)
        return self.execute(request)
