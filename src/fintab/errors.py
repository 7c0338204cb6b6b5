"""Exception types raised by the extraction engine."""


class FintabError(Exception):
    """Base class for all engine errors."""


class OCRUnavailableError(FintabError):
    """The OCR engine is missing or failed to initialize."""


class OCRTimeoutError(FintabError):
    """A single recognize call exceeded its time budget."""


class ExportError(FintabError):
    """An exporter could not write the requested output."""
