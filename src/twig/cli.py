"""Command line interface for twig."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from twig import __version__
from twig.config import ConfigError, Settings, load_settings
from twig.git import BranchTool, CheckoutError, GitError, GitRepo, ListError
from twig.github import annotate_prs, get_pr_map
from twig.logger import get_logger, setup_logging
from twig.selector import Cancelled, Terminal, run_selection
from twig.terminal import RawTerminal, TerminalError

app = typer.Typer(help="Pick a git branch and check it out", add_completion=False)
console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)


def fail(message: str) -> None:
    """Print an error to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)


def get_repo(path: Path) -> BranchTool:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        fail(str(err))
        raise typer.Exit(code=1) from err


def get_terminal() -> Terminal:
    """Get the terminal the selector draws on."""
    return RawTerminal(console=console)


def get_settings(repo: BranchTool, **overrides: Optional[object]) -> Settings:
    """Resolve settings and apply the git-side ones to the repository."""
    try:
        settings = load_settings(repo.get_config, **overrides)
    except ConfigError as err:
        fail(str(err))
        raise typer.Exit(code=1) from err

    repo.include_remotes = settings.include_remotes
    repo.sort = settings.sort
    repo.track_remotes = settings.track_remotes
    return settings


def version_callback(value: bool) -> None:
    if value:
        console.print(f"twig {__version__}")
        raise typer.Exit()


@app.command()
def main(
    path: Annotated[Path, typer.Option(help="Path to git repository")] = Path("."),
    remotes: Annotated[
        Optional[bool], typer.Option("--remotes/--no-remotes", help="Include remote-tracking branches [git config twig.remotes]")
    ] = None,
    sort: Annotated[Optional[str], typer.Option(help="git for-each-ref sort key [git config twig.sort]")] = None,
    page_size: Annotated[Optional[int], typer.Option(min=1, help="Branches shown at once [git config twig.pageSize]")] = None,
    prs: Annotated[Optional[bool], typer.Option("--prs/--no-prs", help="Show open pull request numbers via gh [git config twig.prs]")] = None,
    track: Annotated[
        Optional[bool], typer.Option("--track/--no-track", help="Check out remote branches as local tracking branches [git config twig.track]")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log git commands")] = False,
    version: Annotated[
        Optional[bool], typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit")
    ] = None,
) -> None:
    """List branches and check out the one you pick.

    Works on refs already known locally; run git fetch first for fresh remote branches.
    """
    setup_logging("DEBUG" if verbose else "WARNING")

    repo = get_repo(path)
    settings = get_settings(repo, include_remotes=remotes, sort=sort, page_size=page_size, show_prs=prs, track_remotes=track)

    try:
        records = repo.list_branches()
    except ListError as err:
        fail(str(err))
        raise typer.Exit(code=1) from err

    if not records:
        console.print("No git branches found in this directory.")
        return

    if settings.show_prs:
        records = annotate_prs(records, get_pr_map(path))

    try:
        outcome = run_selection(records, get_terminal(), page_size=settings.page_size)
    except TerminalError as err:
        fail(str(err))
        raise typer.Exit(code=1) from err

    if isinstance(outcome, Cancelled):
        logger.debug("Selection cancelled, nothing checked out")
        return

    try:
        branch = repo.checkout(outcome.record.name)
    except CheckoutError as err:
        fail(str(err))
        raise typer.Exit(code=1) from err

    console.print(f"Switched to branch [cyan]{escape(branch)}[/cyan]")


if __name__ == "__main__":
    app()
