"""Merge Stage - Score competing tables and pick a winner."""

import logging
import re

from fintab.models import Table
from fintab.pipeline.stage_normalize import average_columns

logger = logging.getLogger(__name__)

HEBREW = re.compile(r"[\u0590-\u05FF]")
DIGIT = re.compile(r"[0-9]")

VOLUME_WEIGHT = 0.3
CONSISTENCY_WEIGHT = 0.3
CONTENT_WEIGHT = 0.4
FULL_VOLUME_ROWS = 10

DIGIT_BONUS = 0.5
HEBREW_BONUS = 0.3

# A score must beat the other by this factor to win outright
DECISIVE_MARGIN = 1.2


def score_table_data(table: Table) -> float:
    """Score a table on volume, column consistency and content richness.

    Returns:
        Score in [0, 1]; an empty table scores 0.
    """
    if not table:
        return 0.0

    volume = min(len(table) / FULL_VOLUME_ROWS, 1.0)

    column_counts = [len(row) for row in table]
    avg_columns = sum(column_counts) / len(column_counts)
    consistency = 1 - (max(column_counts) - min(column_counts)) / (avg_columns or 1)

    meaningful = 0.0
    total_cells = 0
    for row in table:
        for cell in row:
            total_cells += 1
            if cell and len(cell.strip()) > 1:
                meaningful += 1
                if DIGIT.search(cell):
                    meaningful += DIGIT_BONUS
                if HEBREW.search(cell):
                    meaningful += HEBREW_BONUS
    content = meaningful / total_cells if total_cells else 0.0

    score = (
        VOLUME_WEIGHT * volume
        + CONSISTENCY_WEIGHT * consistency
        + CONTENT_WEIGHT * content
    )
    return max(0.0, min(score, 1.0))


def merge_text_results(direct: Table, ocr: Table) -> Table:
    """Pick between a direct-text table and an OCR table.

    An empty side yields the other. Otherwise the higher score wins if
    it leads by at least 20%; close scores go to the table with more
    columns on average (OCR on a tie).
    """
    logger.debug(f"Merging results: {len(direct)} direct rows, {len(ocr)} OCR rows")

    if not direct:
        return ocr
    if not ocr:
        return direct

    direct_score = score_table_data(direct)
    ocr_score = score_table_data(ocr)
    logger.debug(f"Table scores - direct: {direct_score:.3f}, OCR: {ocr_score:.3f}")

    if direct_score > ocr_score and direct_score >= ocr_score * DECISIVE_MARGIN:
        return direct
    if ocr_score > direct_score and ocr_score >= direct_score * DECISIVE_MARGIN:
        return ocr

    if average_columns(direct) > average_columns(ocr):
        return direct
    return ocr
