"""Financial Cell Stage - Type, normalize and validate financial cells.

Classification is a read-only annotation pass: it returns FinancialCell
values alongside a table and never writes them back into it.
parse_financial_table is a stricter parser for OCR text of financial
statements (header detection, per-column typing, border skipping).
"""

import logging
import re
from typing import Iterable, Optional

from fintab.models import CellType, ColumnType, FinancialCell, Table
from fintab.pipeline.stage_normalize import clean_hebrew_ocr_text, normalize_table

logger = logging.getLogger(__name__)

AMOUNT_PATTERNS = [
    re.compile(r"^₪?\s*\d{1,3}(,\d{3})*(\.\d{2})?$"),
    re.compile(r"^\d{1,3}(,\d{3})*(\.\d{2})?\s*₪?$"),
    re.compile(r"^\(\s*\d{1,3}(,\d{3})*(\.\d{2})?\s*\)$"),
    re.compile(r"^-\s*\d{1,3}(,\d{3})*(\.\d{2})?$"),
]

DATE_PATTERNS = [
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$"),
    re.compile(r"^\d{1,2}\.\d{1,2}\.\d{2,4}$"),
    re.compile(r"^\d{1,2}-\d{1,2}-\d{2,4}$"),
    re.compile(r"^\d{2,4}/\d{1,2}/\d{1,2}$"),
    re.compile(r"^\d{2,4}\.\d{1,2}\.\d{1,2}$"),
]

ACCOUNT_PATTERNS = [
    re.compile(r"^\d{3,6}$"),
    re.compile(r"^\d{1,3}-\d{1,3}-\d{1,3}$"),
    re.compile(r"^\d{1,4}\.\d{1,4}$"),
]

NUMERIC_PATTERNS = [
    re.compile(r"^\d+(\.\d+)?$"),
    re.compile(r"^\d{1,3}(,\d{3})*(\.\d+)?$"),
]

LOOKS_LIKE_AMOUNT = re.compile(r"[₪$€£]|\d+[,.]\d+|\(\s*\d+")
LOOKS_LIKE_DATE = re.compile(r"\d{1,4}[/\-.]\d{1,2}[/\-.]\d{1,4}")
LOOKS_LIKE_ACCOUNT = re.compile(r"^\d{3,8}$|^\d+[\-.]\d+")

LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)")
CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
TABLE_BORDER = re.compile(r"^[\-_=+|*\s]+$")
FINANCIAL_SPLIT = re.compile(r"\t|\s{3,}")

FINANCIAL_KEYWORDS = [
    "חשבון", "תיאור", "סכום", "יתרה", "זכות", "חובה",
    "תאריך", "מספר", "פרטים", 'סה"כ', "יתרות",
    "הכנסות", "הוצאות", "נכסים", "התחייבויות", "הון",
]

MAX_AMOUNT = 10_000_000_000
MAX_TEXT_LENGTH = 1000
COLUMN_MAJORITY = 0.6
HEADER_SEARCH_LINES = 5
COLUMN_SAMPLE_LINES = 5


def is_amount(value: str) -> bool:
    value = value.strip()
    return any(p.match(value) for p in AMOUNT_PATTERNS)


def is_date(value: str) -> bool:
    value = value.strip()
    return any(p.match(value) for p in DATE_PATTERNS)


def is_account_number(value: str) -> bool:
    value = value.strip()
    return any(p.match(value) for p in ACCOUNT_PATTERNS)


def is_numeric(value: str) -> bool:
    value = value.strip()
    return any(p.match(value) for p in NUMERIC_PATTERNS)


def is_table_border(line: str) -> bool:
    """Rows of dashes, pipes and the like longer than five characters."""
    return bool(TABLE_BORDER.match(line)) and len(line) > 5


def is_financial_header_row(line: str) -> bool:
    """At least two financial keywords make a header row."""
    return sum(1 for keyword in FINANCIAL_KEYWORDS if keyword in line) >= 2


def _parse_float(text: str) -> Optional[float]:
    """Leading numeric prefix of ``text``, or None."""
    match = LEADING_NUMBER.match(text)
    if not match:
        return None
    return float(match.group(0))


def normalize_amount(amount: str) -> str:
    """'₪ (1,234.50)' -> '-1234.50'; unparseable input comes back as-is."""
    normalized = re.sub(r"[^\d,.\-()]", "", amount.replace("₪", "")).strip()
    if normalized.startswith("(") and normalized.endswith(")"):
        normalized = "-" + normalized[1:-1]
    normalized = normalized.replace(",", "")
    if _parse_float(normalized) is None:
        return amount
    return normalized


def normalize_date(date: str) -> str:
    """Unify day-first separators to '/'."""
    cleaned = re.sub(r"[^\d/\-.]", "", date)
    if re.match(r"^\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}$", cleaned):
        return re.sub(r"[\-.]", "/", cleaned)
    if re.match(r"^\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}$", cleaned):
        return re.sub(r"[\-.]", "/", cleaned)
    return date


def normalize_account_number(account: str) -> str:
    return re.sub(r"[^\d\-.]", "", account)


def normalize_number(number: str) -> str:
    return re.sub(r"[^\d.]", "", number.replace(",", ""))


def _validate_amount(raw: str) -> FinancialCell:
    normalized = normalize_amount(raw)
    value = _parse_float(normalized)
    if value is None:
        return FinancialCell(
            raw=raw, text=raw, cell_type=CellType.AMOUNT,
            is_valid=False, error="Invalid amount format",
        )
    if abs(value) > MAX_AMOUNT:
        return FinancialCell(
            raw=raw, text=raw, cell_type=CellType.AMOUNT,
            is_valid=False, error="Amount seems unreasonably large",
        )
    return FinancialCell(raw=raw, value=value, text=normalized, cell_type=CellType.AMOUNT)


def _validate_date(raw: str) -> FinancialCell:
    normalized = normalize_date(raw)
    parts = normalized.split("/")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return FinancialCell(
            raw=raw, text=raw, cell_type=CellType.DATE,
            is_valid=False, error="Invalid date format",
        )

    if len(parts[0]) == 4:
        year, month, day = (int(part) for part in parts)
    else:
        day, month, year = (int(part) for part in parts)

    if not (1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2100):
        return FinancialCell(
            raw=raw, text=raw, cell_type=CellType.DATE,
            is_valid=False, error="Date values out of valid range",
        )
    return FinancialCell(raw=raw, value=normalized, text=normalized, cell_type=CellType.DATE)


def _validate_account(raw: str) -> FinancialCell:
    normalized = normalize_account_number(raw)
    digits = re.sub(r"\D", "", normalized)
    if not normalized:
        error = "Empty account number"
    elif not 3 <= len(digits) <= 15:
        error = "Account number length invalid"
    else:
        return FinancialCell(
            raw=raw, value=normalized, text=normalized, cell_type=CellType.ACCOUNT
        )
    return FinancialCell(
        raw=raw, text=raw, cell_type=CellType.ACCOUNT, is_valid=False, error=error
    )


def _validate_text(raw: str) -> FinancialCell:
    if len(raw) > MAX_TEXT_LENGTH:
        truncated = raw[:MAX_TEXT_LENGTH] + "..."
        return FinancialCell(
            raw=raw, value=truncated, text=truncated,
            is_valid=False, error="Text too long, truncated",
        )
    cleaned = CONTROL_CHARS.sub("", raw)
    return FinancialCell(raw=raw, value=cleaned, text=cleaned)


def classify_cell(value: Optional[str]) -> FinancialCell:
    """Classify, normalize and validate a single cell.

    Dates are checked before amounts so that '01.02.2024' is not read
    as a decimal number.
    """
    if not value or not isinstance(value, str) or not value.strip():
        return FinancialCell(raw=value or "", value="", text="")

    trimmed = value.strip()
    if LOOKS_LIKE_DATE.search(trimmed):
        return _validate_date(trimmed)
    if LOOKS_LIKE_AMOUNT.search(trimmed):
        return _validate_amount(trimmed)
    if LOOKS_LIKE_ACCOUNT.search(trimmed):
        return _validate_account(trimmed)
    if is_numeric(trimmed):
        return FinancialCell(
            raw=trimmed,
            value=_parse_float(normalize_number(trimmed)),
            text=normalize_number(trimmed),
            cell_type=CellType.NUMERIC,
        )
    return _validate_text(trimmed)


def classify_table(table: Table) -> list[list[FinancialCell]]:
    """Annotate every cell; the table itself is left untouched."""
    return [[classify_cell(cell) for cell in row] for row in table]


def determine_column_type(samples: Iterable[str]) -> ColumnType:
    """Majority (> 60%) type of a column's sample cells.

    Checked in order amount, date, account, numeric; amounts also count
    as numeric.
    """
    samples = [s.strip() for s in samples if s and s.strip()]
    if not samples:
        return ColumnType(index=0)

    counts = {CellType.AMOUNT: 0, CellType.DATE: 0, CellType.ACCOUNT: 0, CellType.NUMERIC: 0}
    for sample in samples:
        if is_amount(sample):
            counts[CellType.AMOUNT] += 1
            counts[CellType.NUMERIC] += 1
        elif is_date(sample):
            counts[CellType.DATE] += 1
        elif is_account_number(sample):
            counts[CellType.ACCOUNT] += 1
        elif is_numeric(sample):
            counts[CellType.NUMERIC] += 1

    total = len(samples)
    for cell_type in (CellType.AMOUNT, CellType.DATE, CellType.ACCOUNT, CellType.NUMERIC):
        share = counts[cell_type] / total
        if share > COLUMN_MAJORITY:
            return ColumnType(index=0, cell_type=cell_type, confidence=share)
    return ColumnType(index=0)


def analyze_column_types(rows: Table) -> list[ColumnType]:
    """Column type for every column position in ``rows``."""
    if not rows:
        return []
    width = max(len(row) for row in rows)
    column_types = []
    for index in range(width):
        samples = [row[index] for row in rows if index < len(row)]
        column_types.append(determine_column_type(samples).model_copy(update={"index": index}))
    return column_types


def is_new_financial_cell(part: str, current: str) -> bool:
    if not current.strip():
        return False
    if is_amount(part) or part.startswith("₪") or part.startswith("("):
        return True
    if is_date(part):
        return True
    return is_account_number(part) and not is_account_number(current)


def smart_split_financial_line(line: str) -> list[str]:
    """Split at amounts, dates and account numbers."""
    cells = []
    current = ""
    for part in line.split():
        if is_new_financial_cell(part, current):
            if current.strip():
                cells.append(current.strip())
            current = part
        else:
            current = f"{current} {part}" if current else part
    if current.strip():
        cells.append(current.strip())
    return cells


def split_financial_row(line: str) -> list[str]:
    """Cells of a raw OCR line; each cell gets Hebrew OCR cleanup."""
    cells = [clean_hebrew_ocr_text(c) for c in FINANCIAL_SPLIT.split(line)]
    cells = [c for c in cells if c]
    if len(cells) < 2:
        cells = smart_split_financial_line(clean_hebrew_ocr_text(line))
    return [c for c in cells if c]


NORMALIZERS = {
    CellType.AMOUNT: normalize_amount,
    CellType.DATE: normalize_date,
    CellType.ACCOUNT: normalize_account_number,
    CellType.NUMERIC: normalize_number,
}


def process_financial_row(cells: list[str], column_types: list[ColumnType]) -> list[str]:
    row = []
    for index, cell in enumerate(cells):
        cell_type = column_types[index].cell_type if index < len(column_types) else CellType.TEXT
        normalizer = NORMALIZERS.get(cell_type)
        row.append(normalizer(cell) if normalizer else cell)
    return row


def parse_financial_table(text: str) -> Table:
    """Parse OCR text of a financial statement into a table.

    The header is looked for in the first five lines; the five lines
    after it decide column types. Border lines are skipped and a row is
    kept only if at least one of its cells validates.

    Args:
        text: Raw OCR text.

    Returns:
        Normalized table, header row first when one was found.
    """
    if not text or not text.strip():
        return []

    rows = [
        split_financial_row(line)
        for line in text.splitlines()
        if line.strip() and not is_table_border(line.strip())
    ]
    rows = [row for row in rows if row]
    if not rows:
        return []

    header_index = -1
    for index, row in enumerate(rows[:HEADER_SEARCH_LINES]):
        if is_financial_header_row(" ".join(row)):
            header_index = index
            break

    data_rows = rows[header_index + 1:]
    column_types = analyze_column_types(data_rows[:COLUMN_SAMPLE_LINES])

    table = [rows[header_index]] if header_index >= 0 else []
    errors = 0
    for cells in data_rows:
        processed = process_financial_row(cells, column_types)
        annotated = [classify_cell(cell) for cell in processed]
        errors += sum(1 for cell in annotated if not cell.is_valid)
        if any(cell.is_valid and cell.text for cell in annotated):
            table.append([cell.text if cell.is_valid else cell.raw for cell in annotated])

    if errors:
        logger.warning(f"Found {errors} financial validation issues")
    logger.info(f"Financial table parsed: {len(table)} rows extracted")
    return normalize_table(table)
