"""Direct Text Stage - Rebuild a table from the PDF text layer.

Runs are bucketed into rows by y-coordinate, ordered top-to-bottom
(descending PDF y), then split into columns wherever the horizontal
gap between neighbouring runs is significant.
"""

import logging
from typing import Iterable

from fintab.models import Table, TextRun

logger = logging.getLogger(__name__)


class DirectTextExtractor:
    """Reconstructs a raw table from positioned text runs (no OCR).

    Two column strategies are available:

    - ``gap`` (default): adjacent runs closer than a significant-gap
      threshold are joined with a space into one cell.
    - ``naive``: every run becomes its own cell.
    """

    def __init__(
        self,
        y_tolerance: float = 5.0,
        gap_factor: float = 1.5,
        min_gap: float = 20.0,
        max_gap: float = 30.0,
        mode: str = "gap",
    ):
        """Initialize extractor.

        Args:
            y_tolerance: Max difference between rounded y values that
                still share a row bucket. 0 groups exact matches only.
            gap_factor: Multiplier on the row's average gap.
            min_gap: Lower bound of the significant-gap threshold (px).
            max_gap: Upper bound of the significant-gap threshold (px).
            mode: ``gap`` or ``naive``.
        """
        if mode not in ("gap", "naive"):
            raise ValueError(f"Unknown column mode: {mode}")
        self.y_tolerance = y_tolerance
        self.gap_factor = gap_factor
        self.min_gap = min_gap
        self.max_gap = max_gap
        self.mode = mode

    def group_rows(self, runs: Iterable[TextRun]) -> list[list[TextRun]]:
        """Bucket runs into visual rows, top-to-bottom, left-to-right.

        Buckets are keyed by the rounded y of their first run. Sorting is
        stable, so rows sharing a key keep their input order.
        """
        buckets: list[tuple[int, list[TextRun]]] = []

        for run in runs:
            if not run.text.strip():
                continue
            y = round(run.y)
            for key, members in buckets:
                if abs(key - y) <= self.y_tolerance:
                    members.append(run)
                    break
            else:
                buckets.append((y, [run]))

        buckets.sort(key=lambda bucket: bucket[0], reverse=True)
        return [sorted(members, key=lambda r: r.x) for _, members in buckets]

    def gap_threshold(self, gaps: list[float]) -> float:
        """Significant gap for a row: 1.5x the average, held to [20, 30]."""
        if not gaps:
            return self.min_gap
        average = sum(gaps) / len(gaps)
        return min(max(self.gap_factor * average, self.min_gap), self.max_gap)

    def split_columns(self, row: list[TextRun]) -> list[str]:
        """Turn one sorted row of runs into cells."""
        if self.mode == "naive":
            return [run.text.strip() for run in row]

        gaps = [max(0.0, cur.x - prev.x2) for prev, cur in zip(row, row[1:])]
        threshold = self.gap_threshold(gaps)

        cells = [row[0].text.strip()]
        for gap, run in zip(gaps, row[1:]):
            if gap > threshold:
                cells.append(run.text.strip())
            else:
                cells[-1] = f"{cells[-1]} {run.text.strip()}"
        return cells

    def extract(self, runs: Iterable[TextRun]) -> Table:
        """Build a raw (un-normalized) table from text runs."""
        rows = self.group_rows(runs)
        table = [self.split_columns(row) for row in rows if row]
        logger.debug(f"Direct extraction: {len(table)} rows ({self.mode} mode)")
        return table
