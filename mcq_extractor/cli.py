"""
CLI Interface
=============
Command-line interface for the worksheet extractor.

Usage:
    python -m mcq_extractor extract <file> [options]
    python -m mcq_extractor parse-text <text_file|-> [options]
    python -m mcq_extractor batch <directory> [options]
    python -m mcq_extractor info <file>
    python -m mcq_extractor serve [options]
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from . import __version__
from .assembler import OUTPUT_FILENAMES, OutputFormat, render
from .engine import ExtractorConfig, ExtractorEngine
from .models import ExtractionMode, ExtractionResult, SourceType
from .text_extractor import (
    IMAGE_SUFFIXES,
    PDF_SUFFIXES,
    ExtractionError,
    detect_source_type,
    format_file_size,
)

console = Console()

SENSITIVITY = click.FloatRange(0.0, 1.0)
FORMAT_CHOICES = click.Choice([f.value for f in OutputFormat])


@click.group()
@click.version_option(version=__version__, prog_name="mcq-extractor")
def cli():
    """Worksheet MCQ Extractor — questions and options from PDFs and scans."""
    pass


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--mode", "-m",
    default=ExtractionMode.AUTO.value,
    type=click.Choice([m.value for m in ExtractionMode]),
    help="PDF text layer, OCR, or text layer with OCR fallback",
)
@click.option(
    "--sensitivity", "-s",
    default=0.5,
    type=SENSITIVITY,
    help="Watermark filter sensitivity (0 = aggressive, 1 = lenient)",
)
@click.option(
    "--format", "-f", "output_format",
    default=None,
    type=FORMAT_CHOICES,
    help="Print the questions in this format",
)
@click.option(
    "--output", "-o",
    default=None,
    help="Directory for JSON/Python output files",
)
@click.option(
    "--ocr-lang",
    default="eng",
    help="Tesseract language code(s), e.g. 'eng' or 'eng+hin'",
)
@click.option(
    "--dpi",
    default=144,
    type=click.IntRange(36, 600),
    help="Render resolution for OCR of PDF pages",
)
@click.option(
    "--page-start",
    default=None,
    type=int,
    help="Start page (1-indexed)",
)
@click.option(
    "--page-end",
    default=None,
    type=int,
    help="End page (1-indexed, inclusive)",
)
@click.option(
    "--save-raw-text",
    is_flag=True,
    default=False,
    help="Also save the extracted raw text to the output directory",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only the JSON result to stdout (for programmatic use)",
)
def extract(
    file_path: str,
    mode: str,
    sensitivity: float,
    output_format: str,
    output: str,
    ocr_lang: str,
    dpi: int,
    page_start: int,
    page_end: int,
    save_raw_text: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Extract questions from a single PDF, image or text file."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    page_range = None
    if page_start is not None or page_end is not None:
        page_range = (page_start or 1, page_end or 99999)

    config = ExtractorConfig(
        sensitivity=sensitivity,
        mode=ExtractionMode(mode),
        ocr_language=ocr_lang,
        ocr_dpi=dpi,
        page_range=page_range,
        output_dir=output,
        save_raw_text=save_raw_text,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Worksheet MCQ Extractor v{__version__}[/]\n"
                f"[dim]Extracting: {os.path.basename(file_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = ExtractorEngine(config)

        if not json_output:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Reading pages...", total=None)

                def on_page(current, total):
                    progress.update(
                        task,
                        total=total,
                        completed=current,
                        description=f"Page {current}/{total}",
                    )

                result = engine.parse(file_path, progress_callback=on_page)

            _display_results(result)
        else:
            result = engine.parse(file_path)
            print(json.dumps(
                result.model_dump(mode="json"),
                indent=2,
                ensure_ascii=False,
            ))

        # stdout carries only the JSON document in --json-output mode
        if output_format and not json_output:
            _print_rendered(result, output_format)

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except ExtractionError as e:
        console.print(f"[red]Extraction failed:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command("parse-text")
@click.argument("text_file", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--sensitivity", "-s",
    default=0.5,
    type=SENSITIVITY,
    help="Watermark filter sensitivity (0 = aggressive, 1 = lenient)",
)
@click.option(
    "--format", "-f", "output_format",
    default=OutputFormat.JSON.value,
    type=FORMAT_CHOICES,
    help="Output format",
)
@click.option("--log-level", default="WARNING", help="Logging level")
def parse_text(text_file, sensitivity: float, output_format: str, log_level: str):
    """Parse already-extracted text (file or stdin) into questions."""

    engine = ExtractorEngine(
        ExtractorConfig(sensitivity=sensitivity, log_level=log_level)
    )
    result = engine.parse_text(text_file.read(), name=text_file.name)
    click.echo(render(result.questions, output_format))


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--output", "-o", default="output", help="Output directory")
@click.option(
    "--mode", "-m",
    default=ExtractionMode.AUTO.value,
    type=click.Choice([m.value for m in ExtractionMode]),
    help="Extraction mode for PDFs",
)
@click.option(
    "--sensitivity", "-s",
    default=0.5,
    type=SENSITIVITY,
    help="Watermark filter sensitivity",
)
@click.option("--log-level", default="WARNING", help="Logging level")
def batch(
    directory: str,
    output: str,
    mode: str,
    sensitivity: float,
    log_level: str,
):
    """Batch extract all PDFs and images in a directory."""

    suffixes = PDF_SUFFIXES | IMAGE_SUFFIXES
    files = sorted(
        p for p in Path(directory).iterdir()
        if p.is_file() and p.suffix.lower() in suffixes
    )

    if not files:
        console.print(f"[yellow]No PDF or image files found in: {directory}[/]")
        return

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Batch Worksheet Extractor[/]\n"
            f"[dim]Found {len(files)} files in: {directory}[/]",
            border_style="cyan",
        )
    )
    console.print()

    config = ExtractorConfig(
        sensitivity=sensitivity,
        mode=ExtractionMode(mode),
        output_dir=output,
        log_level=log_level,
    )
    engine = ExtractorEngine(config)

    results = []
    errors = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Processing files...", total=len(files))

        for file in files:
            progress.update(task, description=f"Extracting: {file.name}")

            try:
                results.append((file.name, engine.parse(str(file))))
            except ExtractionError as e:
                errors.append((file.name, str(e)))

            progress.advance(task)

    _display_batch_summary(results, errors)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP extraction service."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Worksheet Extractor Service[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def info(file_path: str):
    """Display source file information."""

    table = Table(title="File Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(file_path))
    table.add_row("Size", format_file_size(os.path.getsize(file_path)))

    try:
        source_type = detect_source_type(file_path)
    except ExtractionError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    table.add_row("Type", source_type.value)

    if source_type is SourceType.PDF:
        import fitz

        try:
            with fitz.open(file_path) as doc:
                table.add_row("Pages", str(doc.page_count))

                metadata = doc.metadata or {}
                for key in ["title", "author", "subject", "creator", "producer"]:
                    val = metadata.get(key, "")
                    if val:
                        table.add_row(key.title(), val)

                text_pages = sum(1 for page in doc if page.get_text().strip())
        except RuntimeError as e:
            console.print(f"[red]Error:[/] Cannot open PDF: {escape(str(e))}")
            sys.exit(1)

        table.add_row("Pages With Text Layer", str(text_pages))
        table.add_row(
            "Suggested Mode",
            "text" if text_pages else "ocr",
        )
    else:
        table.add_row(
            "Suggested Mode",
            "ocr" if source_type is SourceType.IMAGE else "text",
        )

    console.print()
    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _print_rendered(result: ExtractionResult, output_format: str):
    fmt = OutputFormat(output_format)
    console.print(f"[dim]── {OUTPUT_FILENAMES[fmt]} ──[/]")
    # Plain print: rich markup would eat [brackets] in option text
    print(render(result.questions, fmt))


def _display_results(result: ExtractionResult):
    """Display extraction stats and a question preview."""
    console.print()

    source = result.source
    stats = result.stats

    table = Table(title="Extraction Summary", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Source", source.source_file or source.name)
    table.add_row("Mode", source.mode.value if source.mode else "-")
    table.add_row("Pages", str(source.total_pages))
    table.add_row("Questions Found", str(stats.questions_found))
    table.add_row("Options Detected", str(stats.options_detected))
    table.add_row("Watermarks Filtered", str(stats.watermarks_filtered))
    table.add_row(
        "Questions Without Options", str(stats.questions_without_options)
    )
    console.print(table)
    console.print()

    if not result.questions:
        console.print("[yellow]No questions detected[/]")
        console.print()
        return

    preview = Table(title="Questions", border_style="cyan", show_lines=True)
    preview.add_column("#", justify="right")
    preview.add_column("Question")
    preview.add_column("Options")

    for idx, (text, options) in enumerate(result.questions.items(), start=1):
        opts = "\n".join(escape(f"{o.letter}. {o.body}") for o in options)
        preview.add_row(
            str(idx),
            escape(text),
            opts or "[italic dim]No options detected[/]",
        )

    console.print(preview)
    console.print()

    console.print(
        f"[dim]Extractor v{result.extractor_version} | "
        f"Timestamp: {result.extracted_at}[/]"
    )
    console.print()


def _display_batch_summary(results, errors):
    """Display batch processing summary."""
    console.print()

    table = Table(title="Batch Processing Summary", border_style="cyan")
    table.add_column("File", style="bold")
    table.add_column("Questions", justify="right")
    table.add_column("Options", justify="right")
    table.add_column("Filtered", justify="right")
    table.add_column("Status", justify="center")

    total_questions = 0

    for name, result in results:
        stats = result.stats
        total_questions += stats.questions_found

        status = "[green]✓[/]" if stats.questions_found else "[yellow]⚠[/]"
        table.add_row(
            name,
            str(stats.questions_found),
            str(stats.options_detected),
            str(stats.watermarks_filtered),
            status,
        )

    for name, _error in errors:
        table.add_row(name, "-", "-", "-", "[red]✗ FAILED[/]")

    console.print(table)
    console.print()
    console.print(
        f"[bold]Total:[/] {total_questions} questions from "
        f"{len(results)} files, {len(errors)} failures"
    )
    for name, error in errors:
        console.print(f"[red]{name}:[/] {error}")
    console.print()


# ─── Entry point (for python -m mcq_extractor.cli) ────────────────────────────


if __name__ == "__main__":
    cli()
