#!/usr/bin/env python3
"""
MathScribe: handwritten math solutions
Main CLI entry point. Solves a photographed problem and writes the solution
in the handwriting from a sample photo, then binds the pages into a PDF.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.table import Table

from config import validate_config, OUTPUT_DIR, DEFAULT_PDF_NAME, MAX_ATTEMPTS
from mathscribe import (
    HandwritingPipeline, GeminiGateway, ProcessingState, load_image, save_pdf,
    PipelineError, AccessDeniedError,
)
from mathscribe.assembler import save_page_images

app = typer.Typer(
    name="mathscribe",
    help="Solve a photographed math problem and write the solution in your own handwriting.",
    add_completion=False,
)
console = Console()


def _print_usage(gateway: GeminiGateway):
    summary = gateway.tracker.get_stage_summary()
    if not summary:
        return

    table = Table(title="Model Usage")
    table.add_column("Stage")
    table.add_column("Calls", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Time", justify="right", style="dim")

    for stage, data in summary.items():
        table.add_row(
            stage,
            str(data["calls"]),
            f"{data['input_tokens']:,}+{data['output_tokens']:,}",
            f"${data['cost']:.4f}",
            f"{data['duration_ms'] / 1000:.1f}s",
        )
    table.add_row("[bold]Total[/]", "", f"{gateway.tracker.total_tokens:,}",
                  f"[bold]${gateway.tracker.total_cost:.4f}[/]", "")
    console.print(table)


@app.command()
def solve(
    problem_path: Path = typer.Argument(
        ...,
        help="Photo (or PDF) of the math problem",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    handwriting_path: Path = typer.Argument(
        ...,
        help="Photo of a handwriting sample to imitate",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Path = typer.Option(
        None,
        "--output", "-o",
        help=f"Output PDF (default: ./output/{DEFAULT_PDF_NAME})",
    ),
    pages_dir: Optional[Path] = typer.Option(
        None,
        "--pages-dir",
        help="Also save each page image into this directory",
    ),
    usage_json: Optional[Path] = typer.Option(
        None,
        "--usage-json",
        help="Write model usage and cost for the run to this JSON file",
    ),
    max_attempts: int = typer.Option(
        MAX_ATTEMPTS,
        "--max-attempts", "-a",
        help="Maximum full passes through the pipeline",
        min=1,
        max=10,
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="Gemini API key (default: GOOGLE_API_KEY from .env)",
        envvar="GOOGLE_API_KEY",
    ),
    verbose: bool = typer.Option(
        True,
        "--verbose/--quiet", "-v/-q",
        help="Show detailed progress",
    ),
):
    """
    Solve a math problem and render the solution as handwritten pages.
    """
    config_status = validate_config(api_key)
    if not config_status["valid"]:
        console.print("[bold red]Configuration Error:[/]")
        for issue in config_status["issues"]:
            console.print(f"  • {issue}")
        console.print("\n[dim]Please check your .env file or pass --api-key.[/]")
        raise typer.Exit(1)

    try:
        problem_image = load_image(problem_path)
        handwriting_sample = load_image(handwriting_path, allow_pdf=False)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Input Error:[/] {e}")
        raise typer.Exit(1)

    settings = config_status["config"]
    console.print(Panel.fit(
        f"[bold]MathScribe Pipeline[/]\n"
        f"[dim]Solver:[/] {settings['solver_model']} → {settings['solver_fallback_model']}\n"
        f"[dim]Writer:[/] {settings['writer_model']} → {settings['writer_fallback_model']}\n"
        f"[dim]Transcribe/Validate:[/] {settings['baseline_model']}\n"
        f"[dim]Max Attempts:[/] {max_attempts}",
        title="Configuration",
    ))

    gateway = GeminiGateway(api_key=api_key)
    output_path = output or OUTPUT_DIR / DEFAULT_PDF_NAME

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task_id = progress.add_task("Initializing...", total=100)

        def on_progress(state: ProcessingState):
            progress.update(task_id, description=f"[{state.step.value}] {state.message}",
                            completed=state.progress)

        pipeline = HandwritingPipeline(
            gateway=gateway,
            max_attempts=max_attempts,
            verbose=verbose,
            on_progress=on_progress,
        )

        try:
            pages = pipeline.run_sync(problem_image, handwriting_sample)
        except AccessDeniedError as e:
            console.print(f"\n[bold red]{pipeline.state.message}[/] {e}")
            console.print("[dim]Check that your API key has access to the configured models.[/]")
            raise typer.Exit(1)
        except PipelineError as e:
            console.print(f"\n[bold red]{pipeline.state.message}[/]")
            if verbose:
                console.print(f"[dim]Failed after {e.attempt} attempt(s).[/]")
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/]")
            raise typer.Exit(130)

    pdf_path = save_pdf(pages, output_path)
    console.print(f"\n[bold green]✓ {len(pages)} page(s) written[/] → {pdf_path}")

    if pages_dir:
        saved = save_page_images(pages, pages_dir)
        console.print(f"[dim]Page images:[/] {len(saved)} file(s) in {pages_dir}")

    if usage_json:
        usage_json.parent.mkdir(parents=True, exist_ok=True)
        usage_json.write_text(json.dumps(gateway.tracker.to_dict(), indent=2), encoding="utf-8")
        console.print(f"[dim]Usage report:[/] {usage_json}")

    if verbose:
        _print_usage(gateway)


@app.command()
def check():
    """
    Check configuration and dependencies.
    """
    console.print("[bold]Checking MathScribe Configuration...[/]\n")

    config_status = validate_config()

    if config_status["valid"]:
        console.print("[green]✓[/] API key configured")
    else:
        console.print("[red]✗[/] Configuration issues:")
        for issue in config_status["issues"]:
            console.print(f"    • {issue}")

    console.print("\n[bold]Dependencies:[/]")

    dependencies = [
        ("google-generativeai", "google.generativeai"),
        ("pymupdf", "fitz"),
        ("rich", "rich"),
        ("typer", "typer"),
        ("python-dotenv", "dotenv"),
    ]

    all_ok = True
    for name, import_name in dependencies:
        try:
            __import__(import_name)
            console.print(f"  [green]✓[/] {name}")
        except ImportError:
            console.print(f"  [red]✗[/] {name} - not installed")
            all_ok = False

    if all_ok and config_status["valid"]:
        console.print("\n[bold green]All checks passed! Ready to solve.[/]")
    else:
        console.print("\n[yellow]Some issues need attention.[/]")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print("[bold]MathScribe[/] - handwritten math solutions")
    console.print("[dim]Version 0.1.0[/]")


if __name__ == "__main__":
    app()
