"""Text Quality Stage - Score a page's embedded text layer.

The score decides whether a page is read from its text layer, from OCR,
or from both. Thresholds are fixed:

    score > 0.7         -> direct
    0.3 < score <= 0.7  -> hybrid
    score <= 0.3        -> ocr_only
"""

import logging
import re
from typing import Iterable

from fintab.models import ExtractionMethod, TextQuality, TextRun

logger = logging.getLogger(__name__)

DIRECT_THRESHOLD = 0.7
HYBRID_THRESHOLD = 0.3

HEBREW_CHARS = re.compile(r"[\u0590-\u05FF]")
LATIN_CHARS = re.compile(r"[a-zA-Z]")
DIGIT_CHARS = re.compile(r"[0-9]")
SPECIAL_CHARS = re.compile(r"[₪$€£,.\-()]")
SYMBOL_ONLY = re.compile(r"^[^A-Za-z0-9_\u0590-\u05FF]+$")


def count_readable_words(text: str) -> int:
    """Count tokens longer than one character that are not pure symbols."""
    return sum(
        1
        for word in text.split()
        if len(word) > 1 and not SYMBOL_ONLY.match(word)
    )


def assess_text_quality(runs: Iterable[TextRun]) -> TextQuality:
    """Score embedded PDF text on a 0-1 scale.

    Args:
        runs: Positioned text runs of one page.

    Returns:
        TextQuality with the clamped score and a short description.
    """
    runs = list(runs)
    if not runs:
        return TextQuality(score=0.0, reason="No text content")

    text = " ".join(run.text for run in runs)

    hebrew = len(HEBREW_CHARS.findall(text))
    latin = len(LATIN_CHARS.findall(text))
    digits = len(DIGIT_CHARS.findall(text))
    special = len(SPECIAL_CHARS.findall(text))
    total = hebrew + latin + digits + special
    words = count_readable_words(text)

    score = 0.0
    if total > 0:
        score += min(words / 10, 0.4)
        score += min(hebrew / total, 0.3)
        score += min(digits / total * 2, 0.2)
        score += min(special / total * 3, 0.1)

    score = max(0.0, min(score, 1.0))
    reason = f"{words} words, {hebrew} Hebrew chars, {digits} numbers"
    logger.debug(f"Text quality {score:.3f}: {reason}")

    return TextQuality(score=score, reason=reason)


def select_strategy(score: float) -> ExtractionMethod:
    """Map a quality score to an extraction strategy.

    The upper boundary is exclusive: exactly 0.7 routes to hybrid.
    """
    if score > DIRECT_THRESHOLD:
        return ExtractionMethod.DIRECT
    if score > HYBRID_THRESHOLD:
        return ExtractionMethod.HYBRID
    return ExtractionMethod.OCR_ONLY
