"""Tests for image preprocessing."""

from unittest.mock import patch

import numpy as np
import pytest

from fintab.models import ContentAnalysis, ContentType
from fintab.pipeline.stage_preprocess import (
    CONSERVATIVE_OPTIONS,
    PreprocessOptions,
    binarize,
    convolve,
    detect_table_lines,
    enhance_contrast,
    enhance_for_ocr,
    gaussian_kernel,
    options_for_content,
    otsu_threshold,
    scale,
    select_preprocessing,
)


class TestOtsuThreshold:
    """Tests for threshold selection."""

    def test_bimodal_threshold_between_levels(self, bimodal_gray):
        threshold = otsu_threshold(bimodal_gray)
        assert 50 < threshold < 200
        assert threshold == 124

    def test_flat_image(self):
        assert otsu_threshold(np.full((5, 5), 90, dtype=np.uint8)) == 0

    def test_empty_image(self):
        assert otsu_threshold(np.zeros((0, 0), dtype=np.uint8)) == 0


class TestBinarize:
    """Tests for black/white conversion."""

    def test_bimodal_splits_cleanly(self, bimodal_gray):
        canvas = np.dstack([bimodal_gray] * 3)
        out = binarize(canvas)
        assert set(np.unique(out).tolist()) == {0, 255}
        assert (out[:, :10] == 0).all()
        assert (out[:, 10:] == 255).all()

    def test_alpha_preserved(self, bimodal_gray):
        alpha = np.full(bimodal_gray.shape, 77, dtype=np.uint8)
        canvas = np.dstack([bimodal_gray] * 3 + [alpha])
        out = binarize(canvas)
        assert (out[:, :, 3] == 77).all()


class TestPixelTransforms:
    """Tests for scale, blur, contrast and edge transforms."""

    def test_scale_doubles_size(self, blank_canvas):
        assert scale(blank_canvas, 2.0).shape == (400, 400, 3)

    def test_scale_down(self, blank_canvas):
        assert scale(blank_canvas, 0.5).shape == (100, 100, 3)

    def test_scale_rejects_non_positive(self, blank_canvas):
        with pytest.raises(ValueError):
            scale(blank_canvas, 0)

    def test_scale_one_is_a_copy(self, blank_canvas):
        out = scale(blank_canvas, 1.0)
        assert out is not blank_canvas
        assert np.array_equal(out, blank_canvas)

    def test_gaussian_kernel_normalized_and_centered(self):
        kernel = gaussian_kernel(1.0)
        assert kernel.shape == (5, 5)
        assert kernel.sum() == pytest.approx(1.0, abs=1e-5)
        assert np.unravel_index(kernel.argmax(), kernel.shape) == (2, 2)

    def test_identity_kernel(self, table_canvas):
        identity = np.zeros((3, 3))
        identity[1, 1] = 1
        assert np.array_equal(convolve(table_canvas, identity), table_canvas)

    def test_contrast_stretches_to_white(self, bimodal_gray):
        out = enhance_contrast(np.dstack([bimodal_gray] * 3))
        assert out.max() == 255
        assert len(np.unique(out)) == 2

    def test_table_lines_on_blank_page(self, blank_canvas):
        assert detect_table_lines(blank_canvas).max() == 0


class TestEnhanceForOCR:
    """Tests for the configurable enhancement pipeline."""

    def test_default_pipeline(self, table_canvas):
        out = enhance_for_ocr(table_canvas)
        assert out.shape == (600, 600, 3)
        assert set(np.unique(out).tolist()) <= {0, 255}

    def test_input_not_modified(self, table_canvas):
        before = table_canvas.copy()
        out = enhance_for_ocr(table_canvas, CONSERVATIVE_OPTIONS)
        assert np.array_equal(before, table_canvas)
        assert out is not table_canvas

    def test_all_steps_disabled_returns_copy(self, table_canvas):
        options = PreprocessOptions(
            scale=1.0,
            noise_reduction=False,
            contrast_enhancement=False,
            sharpen=False,
            binary_threshold=False,
        )
        out = enhance_for_ocr(table_canvas, options)
        assert out is not table_canvas
        assert np.array_equal(out, table_canvas)

    @patch("fintab.pipeline.stage_preprocess.scale")
    def test_failure_returns_original(self, mock_scale, table_canvas):
        mock_scale.side_effect = RuntimeError("resize failed")
        assert enhance_for_ocr(table_canvas) is table_canvas


class TestContentOptions:
    """Tests for content-type specific settings."""

    def test_confident_table(self):
        options = options_for_content(ContentAnalysis(type=ContentType.TABLE, confidence=0.9))
        assert options.scale == 1.0
        assert options.sharpen

    def test_weak_table(self):
        options = options_for_content(ContentAnalysis(type=ContentType.TABLE, confidence=0.4))
        assert options.scale == 1.2
        assert not options.sharpen

    def test_hebrew_text(self):
        options = options_for_content(
            ContentAnalysis(type=ContentType.HEBREW_TEXT, confidence=0.3)
        )
        assert options.scale == 1.3
        assert options.noise_reduction
        assert not options.sharpen

    def test_mixed(self):
        options = options_for_content(ContentAnalysis(type=ContentType.MIXED, confidence=0.3))
        assert options.scale == 1.5
        assert not options.sharpen

    def test_select_preprocessing_scales_table(self, table_canvas):
        analysis = ContentAnalysis(type=ContentType.TABLE, confidence=0.4)
        out = select_preprocessing(table_canvas, analysis)
        assert out.shape == (240, 240, 3)
