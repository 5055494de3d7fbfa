"""posture - Cloud Security Posture Assessment command line."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..core.config import build_cli_overrides, get_effective_config

console = Console()


def _load_submission(path: str):
    from ..models.submission import Submission

    data = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    return Submission.model_validate(data)


def _print_validation_error(e: ValidationError) -> None:
    console.print(f"  [red]ERROR[/red] Invalid submission ({e.error_count()} problems)")
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "(root)"
        console.print(f"    {loc}: {err['msg']}")


@click.group()
@click.version_option(__version__, prog_name="posture")
def posture_cli() -> None:
    """Cloud Security Posture Assessment - scoring and PDF reports."""


@posture_cli.command()
def questions() -> None:
    """List the assessment questions."""
    from ..core.catalog import MATURITY_LABELS, QUESTIONS, maturity_label

    table = Table(title="Assessment Questions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Function")
    table.add_column("Category")
    table.add_column("Prompt")
    for q in QUESTIONS:
        table.add_row(q.id, q.function.value, q.category, q.prompt)
    console.print(table)
    console.print("Maturity scale: " + ", ".join(maturity_label(m) for m in sorted(MATURITY_LABELS)))


@posture_cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), default="submission.json", show_default=True)
def sample(output: str) -> None:
    """Write the bundled example submission as JSON."""
    from ..core.catalog import sample_submission

    Path(output).write_text(
        json.dumps(sample_submission().to_payload(), indent=2), encoding="utf-8"
    )
    console.print(f"  [green]OK[/green] Sample submission written to {output}")


@posture_cli.command()
@click.argument("submission_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="PDF path (default from config)")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="Config YAML")
@click.option("--no-ai", is_flag=True, help="Skip the AI narrative; use the local summary")
@click.option("--ai-provider", type=click.Choice(["openai", "anthropic"]))
@click.option("--ai-model", type=str, help="Model override")
@click.option("--timeout", type=int, help="AI request timeout in seconds")
@click.option("--no-logo", is_flag=True, help="Do not download the title-page logo")
def report(
    submission_file: str,
    output: str | None,
    config_file: str | None,
    no_ai: bool,
    ai_provider: str | None,
    ai_model: str | None,
    timeout: int | None,
    no_logo: bool,
) -> None:
    """Generate the PDF report for a submission JSON file."""
    from ..core.catalog import check_coverage
    from ..core.errors import ReportError
    from ..report.pipeline import generate_report

    try:
        submission = _load_submission(submission_file)
    except ValidationError as e:
        _print_validation_error(e)
        sys.exit(1)
    except json.JSONDecodeError as e:
        console.print(f"  [red]ERROR[/red] {submission_file} is not valid JSON: {e}")
        sys.exit(1)

    for problem in check_coverage(submission):
        console.print(f"  [yellow]WARN[/yellow] {problem}")

    config = get_effective_config(
        Path(config_file) if config_file else None,
        build_cli_overrides(ai_provider, ai_model, timeout),
    )

    console.print(f"  [cyan]Generating report for[/cyan] {submission.organization}")
    try:
        result = asyncio.run(
            generate_report(submission, config, use_ai=not no_ai, fetch_assets=not no_logo)
        )
    except ReportError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        sys.exit(1)

    out_path = Path(output or result.filename)
    out_path.write_bytes(result.pdf)
    source = result.narrative.narrative.source.value
    console.print(f"  [green]OK[/green] Report written to {out_path} (narrative: {source})")


@posture_cli.command()
@click.argument("submission_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="Config YAML")
@click.option("--create-schema", is_flag=True, help="Create tables before inserting")
def submit(submission_file: str, config_file: str | None, create_schema: bool) -> None:
    """Validate a submission and store it in the database."""
    from ..core.errors import PersistenceError, StorageUnavailable
    from ..storage import db

    try:
        submission = _load_submission(submission_file)
    except ValidationError as e:
        _print_validation_error(e)
        sys.exit(1)
    except json.JSONDecodeError as e:
        console.print(f"  [red]ERROR[/red] {submission_file} is not valid JSON: {e}")
        sys.exit(1)

    config = get_effective_config(Path(config_file) if config_file else None)
    try:
        engine = db.require_engine(config)
    except StorageUnavailable as e:
        console.print(f"  [red]ERROR[/red] {e}")
        sys.exit(3)

    try:
        if create_schema:
            db.create_schema(engine)
        assessment_id = db.persist_submission(engine, submission)
    except PersistenceError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        sys.exit(1)
    console.print(f"  [green]OK[/green] Stored assessment #{assessment_id} ({len(submission.responses)} responses)")


@posture_cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8080, type=int, show_default=True)
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="Config YAML")
def serve(host: str, port: int, config_file: str | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    from ..api.app import create_app

    config = get_effective_config(Path(config_file) if config_file else None)
    uvicorn.run(create_app(config), host=host, port=port)


def main() -> None:
    posture_cli()


if __name__ == "__main__":
    main()
