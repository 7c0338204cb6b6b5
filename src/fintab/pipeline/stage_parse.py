"""OCR Text Parsing Stage - Turn raw OCR text into rows and cells.

Parsing is content-type specific. OCR'd Hebrew financial rows often
alternate description text with amounts and dates without reliable
column separators, so a word-level splitter starts new cells at
numeric, currency and date tokens.
"""

import logging
import re

from fintab.models import ContentType, Table
from fintab.pipeline.stage_normalize import (
    average_columns,
    normalize_table,
    validate_table_structure,
)

logger = logging.getLogger(__name__)

BOX_GLYPHS = re.compile(r"[|│║▌▐█]|[─━═]|[┌┐└┘├┤┬┴┼]|[•◦▪▫]")
WIDE_SPACE = re.compile(r"[ \t]{3,}")
TAB_RUN = re.compile(r"\t+")
CELL_SEPARATOR = re.compile(r"\s{2,}|\t")
DOUBLE_SPACE = re.compile(r"\s{2,}")

ROW_SEPARATOR = re.compile(r"\t|\s{2,}")
ROW_DIGIT = re.compile(r"\d")
ROW_SPECIAL = re.compile(r"[₪$€£,.-]")

LEADING_DIGIT = re.compile(r"[0-9]")
CURRENCY = re.compile(r"[₪$€£]")
DATE_TOKEN = re.compile(r"\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}")

TABLE_LINE_MAJORITY = 0.5


def clean_ocr_text(text: str) -> str:
    """Strip box-drawing/bullet glyphs and mark wide gaps with tabs.

    Runs of three or more spaces/tabs become one tab. Line breaks are
    kept so rows survive.
    """
    cleaned = BOX_GLYPHS.sub(" ", text)
    cleaned = WIDE_SPACE.sub("\t", cleaned)
    cleaned = TAB_RUN.sub("\t", cleaned)
    lines = [line.strip(" \t") for line in cleaned.splitlines()]
    return "\n".join(lines).strip()


def is_table_row(line: str) -> bool:
    """Two or more words plus a separator, digit or currency mark."""
    if len(line.split()) <= 1:
        return False
    return bool(
        ROW_SEPARATOR.search(line) or ROW_DIGIT.search(line) or ROW_SPECIAL.search(line)
    )


def is_new_cell_indicator(word: str, current_cell: str) -> bool:
    """Whether ``word`` should open a new cell."""
    if LEADING_DIGIT.match(word) and current_cell.strip():
        return True
    if CURRENCY.search(word):
        return True
    return bool(DATE_TOKEN.search(word))


def smart_split_hebrew_line(line: str) -> list[str]:
    """Group words into cells, breaking at numbers, currency and dates."""
    words = line.split()
    if len(words) <= 1:
        return words

    cells = []
    current = ""
    for word in words:
        if is_new_cell_indicator(word, current):
            if current.strip():
                cells.append(current.strip())
            current = word
        else:
            current = f"{current} {word}" if current else word

    if current.strip():
        cells.append(current.strip())
    return cells


def _split_nonempty(parts: list[str]) -> list[str]:
    return [part.strip() for part in parts if part.strip()]


def extract_table_cells(line: str) -> list[str]:
    """Split a table row on tabs, then double spaces, then word heuristics."""
    cells = _split_nonempty(line.split("\t"))
    if len(cells) < 2:
        cells = _split_nonempty(DOUBLE_SPACE.split(line))
    if len(cells) < 2:
        cells = smart_split_hebrew_line(line)
    return [cell for cell in (c.strip() for c in cells) if cell]


def parse_table_structure(lines: list[str]) -> Table:
    """Keep only lines that look like table rows and split them."""
    table = []
    for line in lines:
        if is_table_row(line):
            cells = extract_table_cells(line)
            if cells:
                table.append(cells)
    return table


def parse_hebrew_line(line: str) -> list[str]:
    """Split on double space/tab, else keep the whole line as one cell."""
    cleaned = line.strip()
    if not cleaned:
        return []
    parts = _split_nonempty(CELL_SEPARATOR.split(cleaned))
    if len(parts) > 1:
        return parts
    return [cleaned]


def parse_hebrew_text(lines: list[str]) -> Table:
    table = []
    for line in lines:
        cells = parse_hebrew_line(line)
        if cells:
            table.append(cells)
    return table


def parse_basic_structure(lines: list[str]) -> Table:
    """Fallback parser: split on double space/tab only."""
    table = []
    for line in lines:
        cells = _split_nonempty(CELL_SEPARATOR.split(line))
        if cells:
            table.append(cells)
    return table


def parse_advanced_structure(lines: list[str]) -> Table:
    """Table parsing when most lines look tabular, Hebrew text otherwise."""
    table_lines = [line for line in lines if is_table_row(line)]
    if len(table_lines) > len(lines) * TABLE_LINE_MAJORITY:
        return parse_table_structure(lines)
    return parse_hebrew_text(lines)


PARSERS = {
    ContentType.TABLE: parse_table_structure,
    ContentType.HEBREW_TEXT: parse_hebrew_text,
    ContentType.FALLBACK: parse_basic_structure,
}


def parse_ocr_text(text: str, content_type: ContentType = ContentType.MIXED) -> Table:
    """Parse raw OCR output into a normalized, validated table.

    Args:
        text: Raw recognized text.
        content_type: Selects the parsing heuristic; ``mixed`` picks
            between table and free-text parsing per page.

    Returns:
        Table, empty if nothing meaningful was recognized.
    """
    if not text or not text.strip():
        logger.warning("No text received from OCR")
        return []

    cleaned = clean_ocr_text(text)
    lines = [line for line in cleaned.split("\n") if line.strip()]
    if not lines:
        logger.warning("No valid lines found after cleaning")
        return []

    logger.debug(f"Parsing OCR text ({content_type.value}): {len(lines)} lines")

    parser = PARSERS.get(content_type, parse_advanced_structure)
    table = validate_table_structure(normalize_table(parser(lines)))

    logger.debug(
        f"Parsed {len(table)} rows with average {average_columns(table)} columns"
    )
    return table
