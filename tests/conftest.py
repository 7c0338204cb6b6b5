"""Pytest configuration and fixtures."""

import numpy as np
import pytest

from fintab.models import OCRRequest, OCRResponse, TextRun


class FakePage:
    """In-memory page with fixed text runs and canvas."""

    def __init__(self, runs=None, canvas=None, index=0):
        self.index = index
        self.runs = list(runs or [])
        self.canvas = canvas if canvas is not None else np.full((50, 50, 3), 255, np.uint8)
        self.render_calls = []

    def get_text_runs(self):
        return list(self.runs)

    def render_to_canvas(self, scale=2.5):
        self.render_calls.append(scale)
        return self.canvas


class FakeOCREngine:
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[OCRRequest] = []

    def recognize(self, request: OCRRequest) -> OCRResponse:
        self.requests.append(request)
        outcome = self.responses.pop(0) if self.responses else OCRResponse()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def make_page():
    """Factory for fake pages."""
    return FakePage


@pytest.fixture
def make_engine():
    """Factory for scripted OCR engines."""
    return FakeOCREngine


@pytest.fixture
def run():
    """Factory for text runs."""

    def _run(text, x, y, width=0.0):
        return TextRun(text=text, x=x, y=y, width=width)

    return _run


@pytest.fixture
def blank_canvas():
    """White 200x200 RGB page."""
    return np.full((200, 200, 3), 255, dtype=np.uint8)


@pytest.fixture
def table_canvas(blank_canvas):
    """Ruled grid: five horizontal and three vertical one-pixel lines."""
    canvas = blank_canvas.copy()
    for y in (20, 60, 100, 140, 180):
        canvas[y, 10:191] = 0
    for x in (10, 100, 190):
        canvas[20:181, x] = 0
    return canvas


@pytest.fixture
def hebrew_text_canvas(blank_canvas):
    """Dense pattern of short dark strokes with no long lines."""
    canvas = blank_canvas.copy()
    yy, xx = np.mgrid[0:200, 0:200]
    canvas[(yy % 10 < 3) & (xx % 6 < 3)] = 0
    return canvas


@pytest.fixture
def bimodal_gray():
    """Two flat gray levels, 50 and 200, in equal halves."""
    gray = np.full((20, 20), 200, dtype=np.uint8)
    gray[:, :10] = 50
    return gray


@pytest.fixture
def ocr_table_text():
    return "תאריך   01/01/2024\nסכום   1,234.56 ₪"


@pytest.fixture
def output_dir(tmp_path):
    """Create a temporary output directory."""
    out_dir = tmp_path / "output"
    out_dir.mkdir()
    return out_dir
