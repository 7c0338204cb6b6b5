"""Tests for OCR request building and the Tesseract engine."""

from unittest.mock import patch

import pytesseract
import pytest

from fintab.errors import OCRTimeoutError, OCRUnavailableError
from fintab.models import (
    ContentType,
    EngineMode,
    ImageCharacteristics,
    OCRResponse,
    PageSegMode,
)
from fintab.pipeline.stage_ocr import (
    OCRInvoker,
    TesseractEngine,
    build_ocr_request,
)


class TestBuildOCRRequest:
    """Tests for per-content engine parameters."""

    @pytest.mark.parametrize(
        "content_type,psm",
        [
            (ContentType.TABLE, PageSegMode.SINGLE_BLOCK),
            (ContentType.HEBREW_TEXT, PageSegMode.AUTO),
            (ContentType.MIXED, PageSegMode.AUTO_OSD),
            (ContentType.FALLBACK, PageSegMode.SINGLE_WORD),
        ],
    )
    def test_page_seg_mode_per_content(self, blank_canvas, content_type, psm):
        request = build_ocr_request(blank_canvas, content_type, apply_overrides=False)
        assert request.psm == psm
        assert request.content_type == content_type

    def test_whitelists(self, blank_canvas):
        table = build_ocr_request(blank_canvas, ContentType.TABLE, apply_overrides=False)
        fallback = build_ocr_request(blank_canvas, ContentType.FALLBACK, apply_overrides=False)
        hebrew = build_ocr_request(blank_canvas, ContentType.HEBREW_TEXT, apply_overrides=False)

        assert "%" in table.whitelist and "A" not in table.whitelist
        assert "%" not in fallback.whitelist
        assert "Z" in hebrew.whitelist
        for request in (table, fallback, hebrew):
            assert "₪" in request.whitelist
            assert "א" in request.whitelist

    def test_sparse_page_forces_single_word(self, blank_canvas):
        request = build_ocr_request(blank_canvas, ContentType.TABLE)
        assert request.psm == PageSegMode.SINGLE_WORD

    @patch("fintab.pipeline.stage_ocr.analyze_image_characteristics")
    def test_strong_lines_force_single_block(self, mock_analyze, blank_canvas):
        mock_analyze.return_value = ImageCharacteristics(text_density=0.3, has_strong_lines=True)
        request = build_ocr_request(blank_canvas, ContentType.HEBREW_TEXT)
        assert request.psm == PageSegMode.SINGLE_BLOCK

    @patch("fintab.pipeline.stage_ocr.analyze_image_characteristics")
    def test_fixed_psm_skips_overrides(self, mock_analyze, blank_canvas):
        request = build_ocr_request(
            blank_canvas,
            ContentType.FALLBACK,
            engine_mode=EngineMode.LEGACY,
            psm=PageSegMode.SINGLE_BLOCK,
        )
        mock_analyze.assert_not_called()
        assert request.psm == PageSegMode.SINGLE_BLOCK
        assert request.engine_mode == EngineMode.LEGACY

    def test_request_is_immutable(self, blank_canvas):
        request = build_ocr_request(blank_canvas, ContentType.TABLE, language="heb")
        assert request.language == "heb"
        with pytest.raises(Exception):
            request.psm = PageSegMode.AUTO


class TestTesseractEngine:
    """Tests for Tesseract invocation."""

    @pytest.fixture
    def engine(self):
        return TesseractEngine(dpi=300)

    @pytest.fixture
    def request_(self, blank_canvas):
        return build_ocr_request(
            blank_canvas, ContentType.TABLE, apply_overrides=False, timeout=5
        )

    def test_config_string(self, engine, request_):
        config = engine._build_config(request_)
        assert "--psm 6" in config
        assert "--oem 1" in config
        assert "preserve_interword_spaces=1" in config
        assert "user_defined_dpi=300" in config
        assert "tessedit_char_whitelist=" in config

    def test_mean_confidence_skips_layout_entries(self):
        data = {"text": ["", "abc", "def", " "], "conf": [-1, 90, "70", 50]}
        assert TesseractEngine.mean_confidence(data) == pytest.approx(80.0)

    def test_mean_confidence_empty(self):
        assert TesseractEngine.mean_confidence({}) == 0.0

    @patch("fintab.pipeline.stage_ocr.pytesseract.image_to_data")
    @patch("fintab.pipeline.stage_ocr.pytesseract.image_to_string")
    def test_recognize(self, mock_string, mock_data, engine, request_):
        mock_string.return_value = "סכום 100"
        mock_data.return_value = {"text": ["סכום", "100"], "conf": [80, 60]}

        response = engine.recognize(request_)

        assert response.text == "סכום 100"
        assert response.confidence == pytest.approx(70.0)
        assert mock_string.call_args.kwargs["lang"] == request_.language
        assert mock_string.call_args.kwargs["timeout"] == 5

    @patch("fintab.pipeline.stage_ocr.pytesseract.image_to_string")
    def test_missing_binary(self, mock_string, engine, request_):
        mock_string.side_effect = pytesseract.TesseractNotFoundError()
        with pytest.raises(OCRUnavailableError):
            engine.recognize(request_)

    @patch("fintab.pipeline.stage_ocr.pytesseract.image_to_string")
    def test_timeout(self, mock_string, engine, request_):
        mock_string.side_effect = RuntimeError("Tesseract process timeout")
        with pytest.raises(OCRTimeoutError):
            engine.recognize(request_)


class TestOCRInvoker:
    """Tests for the invoker wrapper."""

    def test_recognize_with_injected_engine(self, make_engine, blank_canvas):
        engine = make_engine(OCRResponse(text="abc", confidence=55))
        invoker = OCRInvoker(engine=engine, language="eng", timeout=3)

        response = invoker.recognize(blank_canvas, ContentType.MIXED)

        assert response.confidence == 55
        assert engine.requests[0].language == "eng"
        assert engine.requests[0].timeout == 3

    def test_errors_propagate(self, make_engine, blank_canvas):
        invoker = OCRInvoker(engine=make_engine(OCRUnavailableError("missing")))
        with pytest.raises(OCRUnavailableError):
            invoker.recognize(blank_canvas, ContentType.TABLE)
