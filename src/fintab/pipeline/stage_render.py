"""PDF Source Stage - Text runs and page images from PDF files.

Uses PyMuPDF (fitz). Text runs are reported in PDF coordinates (y grows
upward) so row ordering works the same for every source. Pages render
to RGB ``numpy`` canvases.
"""

import hashlib
import logging
from pathlib import Path
from typing import Iterator, Union

import fitz  # PyMuPDF
import numpy as np

from fintab.models import TextRun

logger = logging.getLogger(__name__)


def compute_file_hash(file_path: Path, chunk_size: int = 8192) -> str:
    """SHA-256 of a file, used to identify processed sources."""
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def pixmap_to_canvas(pixmap) -> np.ndarray:
    """Copy a PyMuPDF pixmap into a writable (H, W, C) uint8 array."""
    canvas = np.frombuffer(pixmap.samples, dtype=np.uint8).reshape(
        pixmap.height, pixmap.width, pixmap.n
    )
    if pixmap.n == 1:
        canvas = canvas[:, :, 0]
    return canvas.copy()


class PDFPage:
    """One page of an open PDF."""

    def __init__(self, page: "fitz.Page", index: int):
        self._page = page
        self.index = index

    @property
    def height(self) -> float:
        return self._page.rect.height

    def get_text_runs(self) -> list[TextRun]:
        """Text spans of the page as positioned runs.

        Each span becomes one run; x is the left edge and y the
        baseline, flipped into PDF space.
        """
        runs = []
        page_height = self.height
        text_dict = self._page.get_text("dict")

        for block in text_dict.get("blocks", []):
            # Image blocks carry no lines
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    x0, y0, x1, y1 = span["bbox"]
                    baseline = span.get("origin", (x0, y1))[1]
                    runs.append(
                        TextRun(
                            text=text,
                            x=x0,
                            y=page_height - baseline,
                            width=max(0.0, x1 - x0),
                            height=max(0.0, y1 - y0),
                        )
                    )

        logger.debug(f"Page {self.index + 1}: {len(runs)} text runs")
        return runs

    def render_to_canvas(self, scale: float = 2.5) -> np.ndarray:
        """Render the page at ``scale`` x its natural size (72 DPI base)."""
        matrix = fitz.Matrix(scale, scale)
        pixmap = self._page.get_pixmap(matrix=matrix, colorspace=fitz.csRGB, alpha=False)
        return pixmap_to_canvas(pixmap)


class PDFDocumentSource:
    """Open PDF document that hands out pages one at a time.

    Use as a context manager so the underlying file is closed.
    """

    def __init__(self, pdf_path: Union[str, Path]):
        """Open a PDF.

        Args:
            pdf_path: Path to PDF file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        self.path = Path(pdf_path).resolve()
        if not self.path.exists():
            raise FileNotFoundError(f"PDF not found: {self.path}")
        self._doc = fitz.open(str(self.path))

    def get_page_count(self) -> int:
        return len(self._doc)

    def get_page(self, index: int) -> PDFPage:
        """Page by 0-indexed number."""
        if not 0 <= index < self.get_page_count():
            raise IndexError(f"Page {index} out of range")
        return PDFPage(self._doc[index], index)

    def pages(self) -> Iterator[PDFPage]:
        for index in range(self.get_page_count()):
            yield self.get_page(index)

    def close(self) -> None:
        self._doc.close()

    def __enter__(self) -> "PDFDocumentSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
