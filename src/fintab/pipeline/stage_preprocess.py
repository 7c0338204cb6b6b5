"""Preprocessing Stage - Image transforms that improve OCR accuracy.

Every transform takes a canvas (``numpy`` uint8 array, RGB/RGBA or
grayscale) and returns a new array; inputs are never written to.
Alpha channels pass through untouched unless noted.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from fintab.models import ContentAnalysis, ContentType

logger = logging.getLogger(__name__)

SHARPEN_KERNEL = np.array(
    [[0, -1, 0], [-1, 5, -1], [0, -1, 0]],
    dtype=np.float32,
)

HEBREW_KERNEL = np.array(
    [[0, -0.5, 0], [-0.5, 3, -0.5], [0, -0.5, 0]],
    dtype=np.float32,
)

SOBEL_X = np.array(
    [[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]],
    dtype=np.float32,
)

SOBEL_Y = np.array(
    [[-1, -2, -1], [0, 0, 0], [1, 2, 1]],
    dtype=np.float32,
)

NOISE_BLUR_RADIUS = 1.0


@dataclass(frozen=True)
class PreprocessOptions:
    """Flags for enhance_for_ocr, applied in field order."""

    scale: float = 3.0
    noise_reduction: bool = True
    contrast_enhancement: bool = True
    sharpen: bool = True
    binary_threshold: bool = True


# Degraded retries in multi-pass OCR
CONSERVATIVE_OPTIONS = PreprocessOptions(scale=2.0, noise_reduction=False, sharpen=False)
HIGH_SCALE_OPTIONS = PreprocessOptions(scale=4.0)


def _split_alpha(canvas: np.ndarray) -> tuple[np.ndarray, Optional[np.ndarray]]:
    """Separate color channels from an optional alpha channel."""
    if canvas.ndim == 3 and canvas.shape[2] == 4:
        return canvas[:, :, :3], canvas[:, :, 3]
    return canvas, None


def _merge_alpha(color: np.ndarray, alpha: Optional[np.ndarray]) -> np.ndarray:
    if alpha is None:
        return color
    return np.dstack([color, alpha])


def _fill_gray(canvas: np.ndarray, gray: np.ndarray) -> np.ndarray:
    """Write one gray level into every color channel, keeping alpha."""
    gray = gray.astype(np.uint8)
    if canvas.ndim == 2:
        return gray
    out = np.repeat(gray[:, :, np.newaxis], canvas.shape[2], axis=2)
    if canvas.shape[2] == 4:
        out[:, :, 3] = canvas[:, :, 3]
    return out


def to_luma(canvas: np.ndarray) -> np.ndarray:
    """Luma (0.299R + 0.587G + 0.114B) as a float array."""
    if canvas.ndim == 2:
        return canvas.astype(np.float64)
    rgb = canvas[:, :, :3].astype(np.float64)
    return 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]


def gray_levels(canvas: np.ndarray) -> np.ndarray:
    """Luma rounded to integer levels 0-255."""
    return np.clip(np.rint(to_luma(canvas)), 0, 255).astype(np.intp)


def convolve(canvas: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Apply a kernel to the color channels with replicated edges.

    Results are clipped to [0, 255]; alpha is copied through.
    """
    color, alpha = _split_alpha(canvas)
    filtered = cv2.filter2D(
        color.astype(np.float32),
        -1,
        np.asarray(kernel, dtype=np.float32),
        borderType=cv2.BORDER_REPLICATE,
    )
    out = np.clip(np.rint(filtered), 0, 255).astype(np.uint8)
    return _merge_alpha(out, alpha)


def scale(canvas: np.ndarray, factor: float) -> np.ndarray:
    """Resize by ``factor`` with smooth interpolation."""
    if factor <= 0:
        raise ValueError(f"Scale factor must be positive, got {factor}")
    if factor == 1.0:
        return canvas.copy()

    height, width = canvas.shape[:2]
    size = (max(1, int(round(width * factor))), max(1, int(round(height * factor))))
    interpolation = cv2.INTER_CUBIC if factor > 1.0 else cv2.INTER_AREA
    return cv2.resize(canvas, size, interpolation=interpolation)


def gaussian_kernel(radius: float) -> np.ndarray:
    """Normalized square Gaussian kernel of size ceil(2r)*2+1, sigma r/3."""
    size = math.ceil(radius * 2) * 2 + 1
    sigma = radius / 3
    center = size // 2
    coords = np.arange(size) - center
    xx, yy = np.meshgrid(coords, coords)
    kernel = np.exp(-(xx**2 + yy**2) / (2 * sigma * sigma))
    return (kernel / kernel.sum()).astype(np.float32)


def gaussian_blur(canvas: np.ndarray, radius: float = NOISE_BLUR_RADIUS) -> np.ndarray:
    """Blur with a normalized Gaussian kernel."""
    if radius <= 0:
        return canvas.copy()
    return convolve(canvas, gaussian_kernel(radius))


def enhance_contrast(canvas: np.ndarray) -> np.ndarray:
    """Global histogram equalization on luma.

    Each gray level g maps to round(cdf(g) / total * 255); the output
    is gray in every color channel.
    """
    gray = gray_levels(canvas)
    total = gray.size
    if total == 0:
        return canvas.copy()

    histogram = np.bincount(gray.ravel(), minlength=256)
    cdf = np.cumsum(histogram)
    lut = np.rint(cdf / total * 255).astype(np.uint8)
    return _fill_gray(canvas, lut[gray])


def sharpen(canvas: np.ndarray) -> np.ndarray:
    """3x3 sharpening convolution."""
    return convolve(canvas, SHARPEN_KERNEL)


def otsu_threshold(gray: np.ndarray) -> int:
    """Otsu threshold over a 256-bin histogram of integer gray levels.

    When several thresholds share the maximum between-class variance
    the midpoint of the tied range is returned, so a two-level image
    thresholds strictly between its levels.
    """
    histogram = np.bincount(np.asarray(gray).ravel(), minlength=256)[:256].astype(np.float64)
    total = histogram.sum()
    if total == 0:
        return 0

    levels = np.arange(256, dtype=np.float64)
    weight_b = np.cumsum(histogram)
    weight_f = total - weight_b
    sum_b = np.cumsum(levels * histogram)
    sum_all = sum_b[-1]

    valid = (weight_b > 0) & (weight_f > 0)
    if not valid.any():
        return 0

    with np.errstate(divide="ignore", invalid="ignore"):
        mean_b = sum_b / weight_b
        mean_f = (sum_all - sum_b) / weight_f
        variance = weight_b * weight_f * (mean_b - mean_f) ** 2
    variance = np.where(valid, variance, -1.0)

    best = variance.max()
    if best <= 0:
        return 0

    tied = np.flatnonzero(np.isclose(variance, best, rtol=1e-12, atol=0.0))
    return int((tied[0] + tied[-1]) // 2)


def binarize(canvas: np.ndarray) -> np.ndarray:
    """Map every pixel to pure black or white using Otsu's threshold."""
    gray = gray_levels(canvas)
    threshold = otsu_threshold(gray)
    logger.debug(f"Binary threshold calculated: {threshold}")
    return _fill_gray(canvas, np.where(gray > threshold, 255, 0))


def detect_table_lines(canvas: np.ndarray) -> np.ndarray:
    """Sobel X/Y edge magnitude, gray in every channel, alpha opaque."""
    edges_x = convolve(canvas, SOBEL_X)
    edges_y = convolve(canvas, SOBEL_Y)

    gx = (edges_x if edges_x.ndim == 2 else edges_x[:, :, 0]).astype(np.float64)
    gy = (edges_y if edges_y.ndim == 2 else edges_y[:, :, 0]).astype(np.float64)
    magnitude = np.minimum(np.rint(np.sqrt(gx**2 + gy**2)), 255)

    out = _fill_gray(canvas, magnitude)
    if out.ndim == 3 and out.shape[2] == 4:
        out[:, :, 3] = 255
    return out


def preprocess_table(canvas: np.ndarray) -> np.ndarray:
    """Table pipeline: emphasize ruling lines via edge detection."""
    try:
        return detect_table_lines(canvas)
    except Exception as e:
        logger.warning(f"Table preprocessing failed, using original canvas: {e}")
        return canvas


def optimize_for_hebrew(canvas: np.ndarray) -> np.ndarray:
    """Hebrew pipeline: mild sharpening that preserves thin strokes."""
    try:
        return convolve(canvas, HEBREW_KERNEL)
    except Exception as e:
        logger.warning(f"Hebrew optimization failed, using original canvas: {e}")
        return canvas


def enhance_for_ocr(
    canvas: np.ndarray,
    options: Optional[PreprocessOptions] = None,
) -> np.ndarray:
    """Run the configurable enhancement pipeline.

    Order: scale -> blur -> contrast -> sharpen -> binarize, each step
    gated by its flag. Any failure returns the original canvas.

    Args:
        canvas: Input image.
        options: Pipeline flags (defaults: scale 3.0, all steps on).

    Returns:
        Enhanced canvas, or ``canvas`` itself if a step raised.
    """
    options = options or PreprocessOptions()
    logger.debug(f"Starting OCR enhancement with {options}")

    try:
        processed = canvas
        if options.scale != 1.0:
            processed = scale(processed, options.scale)
        if options.noise_reduction:
            processed = gaussian_blur(processed, NOISE_BLUR_RADIUS)
        if options.contrast_enhancement:
            processed = enhance_contrast(processed)
        if options.sharpen:
            processed = sharpen(processed)
        if options.binary_threshold:
            processed = binarize(processed)
        if processed is canvas:
            processed = canvas.copy()
        return processed
    except Exception as e:
        logger.warning(f"OCR enhancement failed, using original canvas: {e}")
        return canvas


def options_for_content(analysis: ContentAnalysis) -> PreprocessOptions:
    """Enhancement flags tuned to the detected content type."""
    confidence = analysis.confidence

    if analysis.type == ContentType.TABLE:
        return PreprocessOptions(
            scale=1.0 if confidence > 0.7 else 1.2,
            sharpen=confidence > 0.5,
        )
    if analysis.type == ContentType.HEBREW_TEXT:
        return PreprocessOptions(
            scale=1.3,
            noise_reduction=confidence < 0.5,
            sharpen=False,
        )
    return PreprocessOptions(
        scale=1.2 if confidence > 0.6 else 1.5,
        sharpen=confidence > 0.4,
    )


def select_preprocessing(canvas: np.ndarray, analysis: ContentAnalysis) -> np.ndarray:
    """Apply the composite pipeline for the detected content type."""
    if analysis.type == ContentType.TABLE:
        base = preprocess_table(canvas)
    elif analysis.type == ContentType.HEBREW_TEXT:
        base = optimize_for_hebrew(canvas)
    else:
        base = canvas

    options = options_for_content(analysis)
    logger.debug(f"Preprocessing for {analysis.type.value}: {options}")
    return enhance_for_ocr(base, options)
