"""Main Typer application for cat-prep.

Invoked without a subcommand the program is an mdbook preprocessor: it reads
``[context, book]`` from stdin and writes the book to stdout.
"""

import logging
import sys
from pathlib import Path
from typing import IO, Annotated

import typer
from rich.markup import escape
from rich.table import Table

from catprep import __version__
from catprep.book import MDBOOK_VERSION, read_input, write_output
from catprep.cli.errorhandler import handle_cli_errors
from catprep.config import load_settings
from catprep.core.models import BuildReport, Severity
from catprep.exceptions import BuildFailedError
from catprep.logging_setup import configure_logging, console
from catprep.pipeline import BuildResult, CatPreprocessor, check_book

app = typer.Typer(
    name="cat-prep",
    help="mdbook preprocessor resolving teachers, subjects, materials and tags",
    add_completion=False,
)

logger = logging.getLogger(__name__)


def _major_minor(version: str) -> tuple[str, ...]:
    return tuple(version.split(".")[:2])


def preprocess(stdin: IO[str], stdout: IO[str]) -> None:
    """Run one preprocessor pass over the mdbook input.

    Raises:
        BuildFailedError: If the report holds errors; nothing is written then.

    """
    context, book = read_input(stdin)
    if _major_minor(context.mdbook_version) != _major_minor(MDBOOK_VERSION):
        logger.warning(
            "cat-prep was built against mdbook %s but is called from mdbook %s",
            MDBOOK_VERSION,
            context.mdbook_version,
        )

    settings = load_settings(context.config)
    result = CatPreprocessor(settings).run(context, book)
    if not result.ok:
        raise BuildFailedError(result.report, len(result.report.errors))
    write_output(result.book, stdout)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: Annotated[bool, typer.Option("--debug", help="Show tracebacks for errors")] = False,
    version: Annotated[bool, typer.Option("--version", help="Print the version and exit")] = False,
) -> None:
    """Preprocess the book mdbook sends on stdin."""
    if version:
        typer.echo(f"cat-prep {__version__}")
        raise typer.Exit

    configure_logging(debug=debug)
    ctx.obj = {"debug": debug}
    if ctx.invoked_subcommand is not None:
        return

    with handle_cli_errors(debug=debug):
        preprocess(sys.stdin, sys.stdout)


@app.command()
def supports(renderer: Annotated[str, typer.Argument(help="Renderer mdbook is about to run")]) -> None:
    """Exit 0 when the renderer is supported, 1 otherwise."""
    with handle_cli_errors():
        settings = load_settings()
    if not CatPreprocessor(settings).supports_renderer(renderer):
        raise typer.Exit(1)


def _report_table(report: BuildReport) -> Table:
    table = Table(title="cat-prep report")
    table.add_column("Severity")
    table.add_column("File", style="cyan")
    table.add_column("Problem")
    table.add_column("Kind", style="dim")
    for issue in report.sorted():
        style = "red" if issue.severity is Severity.ERROR else "yellow"
        table.add_row(
            f"[{style}]{issue.severity.value}[/{style}]",
            escape(issue.path),
            escape(issue.message),
            issue.code,
        )
    return table


def _print_summary(result: BuildResult) -> None:
    graph = result.graph
    if result.report.issues:
        console.print(_report_table(result.report))
    console.print(
        f"{len(graph.teachers)} teacher(s), {len(graph.subjects)} subject(s), "
        f"{len(graph.materials)} material(s), {len(graph.tags)} tag(s); "
        f"{len(result.report.errors)} error(s), {len(result.report.warnings)} warning(s)"
    )


@app.command()
def check(
    ctx: typer.Context,
    book_root: Annotated[
        Path,
        typer.Argument(help="Directory holding book.toml", file_okay=False, resolve_path=True),
    ] = Path(),
) -> None:
    """Validate a book without mdbook and print the report."""
    debug = bool((ctx.obj or {}).get("debug"))
    with handle_cli_errors(debug=debug):
        result = check_book(book_root)
        _print_summary(result)
        if not result.ok:
            raise BuildFailedError(result.report, len(result.report.errors))
        console.print("[green]Book is consistent.[/green]")
