"""Content Classification Stage - Label a rendered page by its pixels.

Measures line structure and text density on a binarized copy of the
canvas and assigns one of table / hebrew_text / mixed. The thresholds
are empirically tuned and kept as module constants.
"""

import logging

import numpy as np

from fintab.models import ContentAnalysis, ContentMetrics, ContentType, ImageCharacteristics
from fintab.pipeline.stage_preprocess import to_luma

logger = logging.getLogger(__name__)

BLACK_LEVEL = 128

# detect_content_type
HORIZONTAL_RUN_FRACTION = 0.15
TEXT_BLOCK_FRACTION = 0.1
VERTICAL_RUN_FRACTION = 0.1

TABLE_H_RATIO = 0.001
TABLE_V_RATIO = 0.0005
TABLE_STRUCTURED_RATIO = 0.3
HEBREW_DENSITY_RANGE = (0.05, 0.25)
HEBREW_BLOCK_RATIO = 2
SPARSE_DENSITY = 0.02
SPARSE_CONFIDENCE = 0.3

# analyze_image_characteristics
STRONG_H_FRACTION = 0.3
STRONG_V_FRACTION = 0.2
STRONG_H_COUNT = 3
STRONG_V_COUNT = 2


def binarize_for_analysis(canvas: np.ndarray) -> np.ndarray:
    """Boolean map of dark pixels (luma below 128)."""
    return to_luma(canvas) < BLACK_LEVEL


def black_runs(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Find runs of consecutive True values along each row.

    Args:
        mask: 2D boolean array.

    Returns:
        Tuple of (run lengths, terminated) where ``terminated`` is True
        for runs followed by a white pixel rather than the row edge.
    """
    width = mask.shape[1]
    padded = np.pad(mask.astype(np.int8), ((0, 0), (1, 1)))
    edges = np.diff(padded, axis=1)

    # Row-major order keeps starts and ends paired
    _, starts = np.nonzero(edges == 1)
    _, ends = np.nonzero(edges == -1)

    lengths = ends - starts
    terminated = ends < width
    return lengths, terminated


def classify_content(canvas: np.ndarray) -> ContentAnalysis:
    """Assign a content type to a rendered page.

    Rules are evaluated in order and the first match wins:

    1. Line structure present -> table
    2. Moderate density made of many short runs -> hebrew_text
    3. Almost blank -> mixed (confidence 0.3)
    4. Anything else -> mixed (confidence 0)

    Args:
        canvas: RGB(A) or grayscale image array.

    Returns:
        ContentAnalysis with type, confidence and metrics.
    """
    mask = binarize_for_analysis(canvas)
    height, width = mask.shape
    total = width * height
    if total == 0:
        return ContentAnalysis(type=ContentType.MIXED, confidence=0.0)

    black = int(mask.sum())

    # Horizontal: each pixel past the run threshold is a line-pixel event
    h_lengths, h_terminated = black_runs(mask)
    h_limit = int(np.floor(width * HORIZONTAL_RUN_FRACTION))
    horizontal_pixels = int(np.clip(h_lengths - h_limit, 0, None).sum())
    text_blocks = int(
        np.count_nonzero(h_terminated & (h_lengths < width * TEXT_BLOCK_FRACTION))
    )

    # Vertical: each long run ended by white counts once
    v_lengths, v_terminated = black_runs(mask.T)
    vertical_pixels = int(
        np.count_nonzero(v_terminated & (v_lengths > height * VERTICAL_RUN_FRACTION))
    )

    metrics = ContentMetrics(
        text_density=black / total,
        horizontal_line_ratio=horizontal_pixels / total,
        vertical_line_ratio=vertical_pixels / total,
        text_block_ratio=text_blocks / (total / 100),
        structured_content_ratio=(
            (horizontal_pixels + vertical_pixels) / black if black else 0.0
        ),
    )

    if (
        metrics.horizontal_line_ratio > TABLE_H_RATIO
        and metrics.vertical_line_ratio > TABLE_V_RATIO
    ) or metrics.structured_content_ratio > TABLE_STRUCTURED_RATIO:
        content_type = ContentType.TABLE
        confidence = min(
            (metrics.horizontal_line_ratio + metrics.vertical_line_ratio) * 1000, 1.0
        )
    elif (
        HEBREW_DENSITY_RANGE[0] < metrics.text_density < HEBREW_DENSITY_RANGE[1]
        and metrics.text_block_ratio > HEBREW_BLOCK_RATIO
    ):
        content_type = ContentType.HEBREW_TEXT
        confidence = min(metrics.text_block_ratio / 10, 1.0)
    elif metrics.text_density < SPARSE_DENSITY:
        content_type = ContentType.MIXED
        confidence = SPARSE_CONFIDENCE
    else:
        content_type = ContentType.MIXED
        confidence = 0.0

    logger.debug(
        f"Content analysis: type={content_type.value} (conf: {confidence:.3f}) - "
        f"density={metrics.text_density:.4f}, "
        f"h-lines={metrics.horizontal_line_ratio:.4f}, "
        f"v-lines={metrics.vertical_line_ratio:.4f}, "
        f"blocks={metrics.text_block_ratio:.2f}"
    )

    return ContentAnalysis(type=content_type, confidence=confidence, metrics=metrics)


def analyze_image_characteristics(canvas: np.ndarray) -> ImageCharacteristics:
    """Count long horizontal/vertical lines for page-segmentation overrides."""
    mask = binarize_for_analysis(canvas)
    height, width = mask.shape
    total = width * height
    if total == 0:
        return ImageCharacteristics()

    h_lengths, h_terminated = black_runs(mask)
    v_lengths, v_terminated = black_runs(mask.T)

    horizontal = int(np.count_nonzero(h_terminated & (h_lengths > width * STRONG_H_FRACTION)))
    vertical = int(np.count_nonzero(v_terminated & (v_lengths > height * STRONG_V_FRACTION)))

    characteristics = ImageCharacteristics(
        text_density=float(mask.sum()) / total,
        has_strong_lines=horizontal > STRONG_H_COUNT or vertical > STRONG_V_COUNT,
        horizontal_lines=horizontal,
        vertical_lines=vertical,
    )
    logger.debug(
        f"Image analysis: density={characteristics.text_density:.3f}, "
        f"h-lines={horizontal}, v-lines={vertical}"
    )
    return characteristics
