"""Configuration management for the financial table extraction engine."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OCR
    ocr_language: str = "heb+eng"
    tesseract_cmd: Optional[str] = None
    ocr_timeout_seconds: float = 30.0

    # Rendering
    render_scale: float = 2.5

    # Processing
    data_validation: bool = True

    # Export
    output_format: str = "xlsx"
    csv_delimiter: str = ","
    csv_bom: bool = True
    xlsx_rtl: bool = True
    docx_font_name: str = "David"
    docx_font_size: int = 12

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "FINTAB_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
