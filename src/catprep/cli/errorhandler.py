"""CLI error handling utilities."""

from collections.abc import Generator
from contextlib import contextmanager

import typer

from catprep.config.exceptions import (
    ConfigError,
    GitUnavailableError,
    HostProtocolError,
    InvalidConfigurationValueError,
    NotARepositoryError,
    TeachersDirectoryError,
)
from catprep.exceptions import BuildFailedError, StructuralError
from catprep.logging_setup import console


@contextmanager
def handle_cli_errors(*, debug: bool = False) -> Generator[None, None, None]:
    """Context manager to handle CLI errors gracefully.

    Everything is printed to stderr; stdout belongs to mdbook.

    Args:
        debug: If True, re-raise with a traceback instead of a short message.

    """
    try:
        yield
    except (KeyboardInterrupt, SystemExit, typer.Exit):
        raise
    except BuildFailedError as e:
        if debug:
            raise
        console.print(f"[bold red]Build failed:[/bold red] {e}")
        raise typer.Exit(1) from e
    except StructuralError as e:
        if debug:
            raise
        console.print(f"[bold red]Invalid book structure:[/bold red] {e}")
        raise typer.Exit(1) from e
    except (NotARepositoryError, GitUnavailableError) as e:
        if debug:
            raise
        console.print(f"[bold red]Git Error:[/bold red] {e}")
        console.print("The book must live inside a git working tree and git must be on PATH.")
        raise typer.Exit(1) from e
    except TeachersDirectoryError as e:
        if debug:
            raise
        console.print(f"[bold red]Teacher Registry Error:[/bold red] {e}")
        console.print("Set teachers-dir in the [preprocessor.cat] table of book.toml.", markup=False)
        raise typer.Exit(1) from e
    except InvalidConfigurationValueError as e:
        if debug:
            raise
        console.print(f"[bold red]Invalid Configuration:[/bold red] {e}")
        raise typer.Exit(1) from e
    except HostProtocolError as e:
        if debug:
            raise
        console.print(f"[bold red]Protocol Error:[/bold red] {e}")
        raise typer.Exit(1) from e
    except ConfigError as e:
        if debug:
            raise
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(1) from e
    except Exception as e:
        if debug:
            console.print_exception(show_locals=False)
            raise typer.Exit(1) from e

        console.print(f"[bold red]An unexpected error occurred:[/bold red] {e}")
        console.print("[dim]Run with [bold]--debug[/bold] for more details.[/dim]")
        raise typer.Exit(1) from e
