"""Pipeline stages for financial table extraction.

Per-page stages:
1. stage_render - PDF text runs and page canvases (PyMuPDF)
2. stage_quality - Embedded text quality and strategy selection
3. stage_direct - Row/column reconstruction from text runs
4. stage_classify - Canvas content classification
5. stage_preprocess - Image enhancement before OCR
6. stage_ocr - Tesseract requests and invocation
7. stage_multipass - Competing OCR attempts and scoring
8. stage_parse - OCR text to table
9. stage_ocr_table - Render, classify, preprocess, recognize, parse
10. stage_normalize - Table cleanup, header merge, validation
11. stage_merge - Table scoring and direct/OCR reconciliation
12. stage_page - Per-page state machine

Document level:
- stage_document - Sequential multi-page and batch processing
- stage_financial - Financial cell classification and statement parsing
"""

from .stage_classify import analyze_image_characteristics, classify_content
from .stage_direct import DirectTextExtractor
from .stage_document import DocumentProcessor, validate_data
from .stage_financial import classify_cell, classify_table, parse_financial_table
from .stage_merge import merge_text_results, score_table_data
from .stage_multipass import MultiPassOCR, score_attempt, select_best_attempt
from .stage_normalize import merge_header_rows, normalize_table, validate_table_structure
from .stage_ocr import OCRInvoker, TesseractEngine, build_ocr_request
from .stage_ocr_table import OCRTableExtractor
from .stage_page import PageOrchestrator, PageState
from .stage_parse import parse_ocr_text
from .stage_preprocess import PreprocessOptions, enhance_for_ocr, select_preprocessing
from .stage_quality import assess_text_quality, select_strategy
from .stage_render import PDFDocumentSource, PDFPage

__all__ = [
    # Render
    "PDFDocumentSource",
    "PDFPage",
    # Strategy
    "assess_text_quality",
    "select_strategy",
    # Direct text
    "DirectTextExtractor",
    # Image analysis
    "analyze_image_characteristics",
    "classify_content",
    "PreprocessOptions",
    "enhance_for_ocr",
    "select_preprocessing",
    # OCR
    "OCRInvoker",
    "TesseractEngine",
    "build_ocr_request",
    "MultiPassOCR",
    "score_attempt",
    "select_best_attempt",
    "parse_ocr_text",
    "OCRTableExtractor",
    # Tables
    "merge_header_rows",
    "normalize_table",
    "validate_table_structure",
    "merge_text_results",
    "score_table_data",
    # Orchestration
    "PageOrchestrator",
    "PageState",
    "DocumentProcessor",
    "validate_data",
    # Financial
    "classify_cell",
    "classify_table",
    "parse_financial_table",
]
