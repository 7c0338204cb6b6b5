"""Financial table extraction CLI."""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pytesseract
import typer
from PIL import Image
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table as RichTable

from fintab.config import settings
from fintab.errors import ExportError, FintabError
from fintab.export import ExportOptions, get_exporter
from fintab.models import DocumentResult, Table
from fintab.pipeline import (
    DocumentProcessor,
    OCRInvoker,
    OCRTableExtractor,
    PageOrchestrator,
    classify_content,
    parse_financial_table,
)
from fintab.pipeline.stage_ocr import get_ocr_engine

app = typer.Typer(
    name="fintab",
    help="Extract tables from Hebrew/English financial PDFs",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    level = logging.DEBUG if verbose else settings.log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _build_processor(language: Optional[str]) -> DocumentProcessor:
    invoker = OCRInvoker(language=language)
    orchestrator = PageOrchestrator(ocr_extractor=OCRTableExtractor(invoker=invoker))
    return DocumentProcessor(orchestrator=orchestrator)


def _export(table: Table, base_name: str, output_dir: Path, format: str) -> None:
    exporter = get_exporter(format)
    options = ExportOptions(
        output_dir=output_dir,
        base_name=base_name,
        rtl=settings.xlsx_rtl,
        delimiter=settings.csv_delimiter,
        bom=settings.csv_bom,
        font_name=settings.docx_font_name,
        font_size=settings.docx_font_size,
    )
    result = exporter.export(table, options)
    console.print(f"[green]Saved:[/green] {result.path} ({result.rows} rows)")


def _print_summary(result: DocumentResult) -> None:
    summary = RichTable(title=result.file_name)
    summary.add_column("Page", justify="right")
    summary.add_column("Method")
    summary.add_column("Content")
    summary.add_column("Rows", justify="right")
    summary.add_column("Quality", justify="right")

    for page in result.pages:
        summary.add_row(
            str(page.page_index + 1),
            page.method.value,
            page.content_type.value if page.content_type else "-",
            str(page.row_count),
            f"{page.quality_score:.2f}",
        )
    console.print(summary)

    for message in result.validation:
        console.print(f"[dim]{message.level.value}:[/dim] {message.message}")


def _report(result: DocumentResult, output_dir: Path, format: str) -> bool:
    if not result.succeeded:
        console.print(f"[red]Failed:[/red] {result.file_name}: {result.error}")
        return False

    _print_summary(result)
    try:
        _export(result.data, Path(result.file_name).stem, output_dir, format)
    except ExportError as e:
        console.print(f"[yellow]Not exported:[/yellow] {e}")
        return False
    return True


@app.command()
def process(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file to process"),
    output_dir: Path = typer.Option(Path("./output"), help="Output directory"),
    format: str = typer.Option(settings.output_format, "--format", "-f", help="xlsx, csv, tsv or docx"),
    language: Optional[str] = typer.Option(None, help="Tesseract language codes"),
) -> None:
    """Process a single PDF document."""
    console.print(f"[bold blue]Processing:[/bold blue] {pdf_path}")
    result = _build_processor(language).process(pdf_path)
    if not _report(result, output_dir, format):
        raise typer.Exit(code=1)


@app.command()
def batch(
    directory: Path = typer.Argument(..., help="Directory containing PDFs"),
    output_dir: Path = typer.Option(Path("./output"), help="Output directory"),
    format: str = typer.Option(settings.output_format, "--format", "-f", help="xlsx, csv, tsv or docx"),
    language: Optional[str] = typer.Option(None, help="Tesseract language codes"),
) -> None:
    """Batch process all PDFs in a directory, one at a time."""
    pdf_paths = sorted(directory.glob("*.pdf"))
    if not pdf_paths:
        console.print(f"[yellow]No PDF files in {directory}[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold blue]Batch processing:[/bold blue] {len(pdf_paths)} files")
    outcomes = []
    _build_processor(language).process_batch(
        pdf_paths, on_result=lambda result: outcomes.append(_report(result, output_dir, format))
    )
    console.print(f"[bold]{sum(outcomes)}/{len(outcomes)} files exported[/bold]")


@app.command()
def classify(
    image_path: Path = typer.Argument(..., help="Image file to analyze"),
) -> None:
    """Classify the content of a page image."""
    canvas = np.array(Image.open(image_path).convert("RGBA"))
    analysis = classify_content(canvas)

    console.print(f"[bold]Type:[/bold] {analysis.type.value}")
    console.print(f"[bold]Confidence:[/bold] {analysis.confidence:.2f}")
    for name, value in analysis.metrics.model_dump().items():
        console.print(f"  {name}: {value:.4f}")


@app.command()
def financial(
    text_file: Path = typer.Argument(..., help="Plain-text statement dump"),
    output_dir: Path = typer.Option(Path("./output"), help="Output directory"),
    format: str = typer.Option(settings.output_format, "--format", "-f", help="xlsx, csv, tsv or docx"),
) -> None:
    """Parse a text statement into a financial table."""
    table = parse_financial_table(text_file.read_text(encoding="utf-8"))
    console.print(f"[bold blue]Parsed:[/bold blue] {len(table)} rows")
    try:
        _export(table, text_file.stem, output_dir, format)
    except ExportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def status() -> None:
    """Show OCR engine availability and active settings."""
    console.print("[bold blue]Financial Table Extraction Status[/bold blue]")
    console.print()

    try:
        get_ocr_engine()
        console.print(f"[green]Tesseract:[/green] {pytesseract.get_tesseract_version()}")
    except FintabError as e:
        console.print(f"[red]Tesseract unavailable:[/red] {e}")

    settings_table = RichTable(show_header=False)
    for name, value in settings.model_dump().items():
        settings_table.add_row(name, str(value))
    console.print(settings_table)


if __name__ == "__main__":
    app()
