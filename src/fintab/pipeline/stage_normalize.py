"""Normalization Stage - Make tables rectangular and repair OCR damage.

After normalize_table every row has the same column count, padded with
empty strings. merge_header_rows rejoins headers that OCR split across
two visual lines; clean_hebrew_ocr_text fixes common Hebrew OCR glyph
confusions cell by cell.
"""

import logging
import re

from fintab.models import Table

logger = logging.getLogger(__name__)

HEBREW = re.compile(r"[\u0590-\u05FF]")

HEADER_PAIRS_CHECKED = 3
# (complementary minimum, overlap maximum)
HEADER_MERGE_HEBREW = (0.4, 0.4)
HEADER_MERGE_DEFAULT = (0.5, 0.3)

MEANINGFUL_CELL_LENGTH = 2

HEBREW_OCR_FIXES = [
    (re.compile(r"[`'\"״׳]"), '"'),
    (re.compile(r"[־–—]"), "-"),
    (re.compile(r"[׀|]"), "|"),
    (re.compile(r"[₪＄]"), "₪"),
    # Parenthesized negatives: "( 1,234.50 )" -> "(1,234.50)"
    (re.compile(r"\(\s*(\d+(?:,\d{3})*(?:\.\d+)?)\s*\)"), r"(\1)"),
    (re.compile(r"(\d)\s+(\d)"), r"\1\2"),
    (re.compile(r"\s*([,.])\s*"), r"\1"),
    (re.compile(r"\s+"), " "),
]


def _filled(cell: str) -> bool:
    return bool(cell and cell.strip())


def normalize_table(table: Table) -> Table:
    """Drop empty rows and pad the rest to the widest input row.

    Returns a new table; the input is not modified. Idempotent.
    """
    if not table:
        return []

    width = max(len(row) for row in table)
    return [
        list(row) + [""] * (width - len(row))
        for row in table
        if any(_filled(cell) for cell in row)
    ]


def _header_thresholds(first: list[str], second: list[str]) -> tuple[float, float]:
    if any(HEBREW.search(cell) for cell in first + second):
        return HEADER_MERGE_HEBREW
    return HEADER_MERGE_DEFAULT


def merge_header_rows(table: Table) -> Table:
    """Merge split header rows among the first three row pairs.

    A pair is merged when most columns are filled in exactly one of the
    two rows (complementary) and few are filled in both (overlap). The
    merged row takes whichever cell is non-empty per column, joining
    with a space when both are.
    """
    rows = [list(row) for row in table]
    index = 0
    checked = 0

    while checked < HEADER_PAIRS_CHECKED and index + 1 < len(rows):
        first, second = rows[index], rows[index + 1]
        width = max(len(first), len(second))
        checked += 1
        if width == 0:
            index += 1
            continue

        first = first + [""] * (width - len(first))
        second = second + [""] * (width - len(second))

        complementary = sum(_filled(a) != _filled(b) for a, b in zip(first, second)) / width
        overlap = sum(_filled(a) and _filled(b) for a, b in zip(first, second)) / width
        min_complementary, max_overlap = _header_thresholds(first, second)

        if complementary > min_complementary and overlap < max_overlap:
            rows[index] = [
                f"{a.strip()} {b.strip()}" if _filled(a) and _filled(b)
                else (a.strip() if _filled(a) else b.strip())
                for a, b in zip(first, second)
            ]
            del rows[index + 1]
            logger.debug(
                f"Merged split header rows at {index} "
                f"(complementary {complementary:.2f}, overlap {overlap:.2f})"
            )
        else:
            index += 1

    return rows


def validate_table_structure(
    table: Table,
    min_cells: int = 1,
    min_cell_length: int = 1,
) -> Table:
    """Drop weak rows and reject tables with no meaningful content.

    Args:
        table: Table to validate.
        min_cells: Minimum qualifying cells a row needs to survive.
        min_cell_length: Stripped length a cell needs to qualify.

    Returns:
        Surviving rows, or an empty table if no cell is longer than
        two characters.
    """
    if not table:
        return []

    rows = [
        row for row in table
        if sum(len(cell.strip()) >= min_cell_length for cell in row if cell) >= min_cells
    ]

    has_content = any(
        len(cell.strip()) > MEANINGFUL_CELL_LENGTH for row in rows for cell in row if cell
    )
    if not has_content:
        logger.warning("Table structure validation failed - no meaningful content")
        return []
    return rows


def clean_hebrew_ocr_text(text: str) -> str:
    """Normalize quote, dash and currency glyphs and stray spacing."""
    if not text or not isinstance(text, str):
        return ""
    cleaned = text
    for pattern, replacement in HEBREW_OCR_FIXES:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned.strip()


def clean_table(table: Table) -> Table:
    """Apply Hebrew OCR cleanup to every cell."""
    return [[clean_hebrew_ocr_text(cell) for cell in row] for row in table]


def average_columns(table: Table) -> float:
    """Mean row length rounded to one decimal."""
    if not table:
        return 0.0
    return round(sum(len(row) for row in table) / len(table), 1)
