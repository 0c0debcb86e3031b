"""rehunk CLI — Typer application with show, preview, plan, suggest and init commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

import typer
from rich.console import Console

from rehunk import __version__

if TYPE_CHECKING:
    from rehunk.config.schema import RehunkConfig
    from rehunk.git.adapter import GitContentSource
    from rehunk.rebase.store import Rebaser

app = typer.Typer(
    name="rehunk",
    help="Reorganise a branch's commits hunk by hunk.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)

logger = logging.getLogger(__name__)

_CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to .rehunk.toml")
_ONTO_OPTION = typer.Option(None, "--onto", help="Base ref (default: <remote>/<target_branch>)")
_SCRIPT_OPTION = typer.Option(None, "--script", "-s", help="YAML edit script to apply first")
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Debug logging")


def _configure_logging(level: str, verbose: bool) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _resolve_repo_root() -> Path:
    """Find the git repo root, exit 2 on failure."""
    from rehunk.git.adapter import GitError, get_repo_root

    try:
        return get_repo_root()
    except GitError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _load_config(repo_root: Path, config: Optional[str], verbose: bool) -> "RehunkConfig":
    from rehunk.config.loader import ConfigError, load_config

    try:
        cfg = load_config(repo_root, config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    _configure_logging(cfg.logging.level, verbose)
    return cfg


def _open_session(
    config: Optional[str],
    onto: Optional[str],
    script: Optional[Path],
    verbose: bool,
) -> Tuple["RehunkConfig", "Rebaser", "GitContentSource"]:
    """Build the session for HEAD against its merge base, then run *script*."""
    from rehunk.git.adapter import (
        GitContentSource,
        GitError,
        get_branch_commits,
        get_commit_diff,
        get_merge_base,
    )
    from rehunk.git.diff_parser import DiffParser
    from rehunk.rebase.errors import RebaseError
    from rehunk.rebase.models import CommitDiff
    from rehunk.rebase.store import Rebaser
    from rehunk.script import EditScript, EditScriptError

    repo_root = _resolve_repo_root()
    cfg = _load_config(repo_root, config, verbose)
    base_ref = onto or cfg.base_ref

    try:
        base = get_merge_base(repo_root, base_ref)
        commits = get_branch_commits(repo_root, base)
        commit_diffs = [
            CommitDiff(commit=commit, files=list(DiffParser(get_commit_diff(repo_root, commit.hash)).parse()))
            for commit in commits
        ]
    except GitError as exc:
        console.print(f"[bold red]Git error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    logger.info("%d commits on top of %s (%s)", len(commits), base_ref, base[:10])

    try:
        rebaser = Rebaser(commit_diffs, placeholder_prefix=cfg.rebase.placeholder_prefix)
        if script is not None:
            EditScript.load(script).run(rebaser)
    except (EditScriptError, RebaseError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    return cfg, rebaser, GitContentSource(repo_root, base)


def _check_format(format: Optional[str], cfg: "RehunkConfig") -> str:
    if format is None:
        return cfg.output.format
    if format not in ("terminal", "json"):
        console.print(f"[bold red]Invalid format:[/bold red] {format}")
        raise typer.Exit(code=2)
    return format


def _render(rebaser: "Rebaser", fmt: str, show_trash: bool) -> None:
    from rehunk.output import json_report, terminal

    if fmt == "json":
        print(json_report.render(rebaser, show_trash=show_trash))
    else:
        terminal.render(rebaser, show_trash=show_trash)


# ── show ──────────────────────────────────────────────────────────────────────


@app.command()
def show(
    config: Optional[str] = _CONFIG_OPTION,
    onto: Optional[str] = _ONTO_OPTION,
    script: Optional[Path] = _SCRIPT_OPTION,
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show the branch's commits as files and hunks."""
    cfg, rebaser, _ = _open_session(config, onto, script, verbose)
    _render(rebaser, _check_format(format, cfg), cfg.output.show_trash)


# ── preview ───────────────────────────────────────────────────────────────────


@app.command()
def preview(
    file: str = typer.Argument(..., help="File path relative to the repo root"),
    commit: str = typer.Argument(..., help="Commit hash, prefix or script alias"),
    config: Optional[str] = _CONFIG_OPTION,
    onto: Optional[str] = _ONTO_OPTION,
    script: Optional[Path] = _SCRIPT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show what a commit does to one file in the edited history."""
    import difflib

    from rich.syntax import Syntax

    from rehunk.git.adapter import GitError
    from rehunk.rebase.errors import RebaseError
    from rehunk.rebase.materialize import preview_file
    from rehunk.rebase.models import encode_content
    from rehunk.script import EditScript, EditScriptError

    _, rebaser, source = _open_session(config, onto, None, verbose)
    try:
        edit_script = EditScript.load(script) if script is not None else EditScript([])
        edit_script.run(rebaser)
        commit_hash = edit_script.resolve_commit(rebaser, commit)
        before, after = preview_file(rebaser, file, commit_hash, source)
    except (EditScriptError, GitError, RebaseError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    # Escaped non-UTF-8 bytes cannot be printed; show them as U+FFFD
    before, after = (
        encode_content(text).decode("utf-8", "replace") for text in (before, after)
    )
    diff = "\n".join(difflib.unified_diff(
        before.split("\n"),
        after.split("\n"),
        fromfile=f"a/{file}",
        tofile=f"b/{file}",
        lineterm="",
    ))
    if not diff:
        console.print(f"[dim]{commit_hash[:10]} does not change {file}.[/dim]")
        return
    Console().print(Syntax(diff, "diff", theme="ansi_dark", background_color="default"))


# ── plan ──────────────────────────────────────────────────────────────────────


@app.command()
def plan(
    config: Optional[str] = _CONFIG_OPTION,
    onto: Optional[str] = _ONTO_OPTION,
    script: Optional[Path] = _SCRIPT_OPTION,
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write plan to file"),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Print the file operations that rebuild the edited history (JSON)."""
    from rehunk.git.adapter import GitError
    from rehunk.output.json_report import render_plan
    from rehunk.rebase.errors import InvalidOperationError
    from rehunk.rebase.materialize import materialize

    _, rebaser, source = _open_session(config, onto, script, verbose)

    try:
        operations = materialize(rebaser, source)
    except InvalidOperationError as exc:
        console.print(f"[bold red]❌ BLOCKED —[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except GitError as exc:
        console.print(f"[bold red]Git error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    report_text = render_plan(operations)
    if output:
        Path(output).write_text(report_text, encoding="utf-8")
        console.print(f"[green]✓[/green] Plan written to {output}")
    else:
        print(report_text)


# ── suggest ───────────────────────────────────────────────────────────────────


@app.command("suggest-request")
def suggest_request(
    config: Optional[str] = _CONFIG_OPTION,
    onto: Optional[str] = _ONTO_OPTION,
    script: Optional[Path] = _SCRIPT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Print the regrouping request payload for an external suggester."""
    from rehunk.rebase.suggestion import build_suggestion_request

    _, rebaser, _ = _open_session(config, onto, script, verbose)
    print(json.dumps(build_suggestion_request(rebaser), indent=2))


@app.command("suggest-apply")
def suggest_apply(
    response: Path = typer.Argument(..., help="JSON response from the suggester"),
    config: Optional[str] = _CONFIG_OPTION,
    onto: Optional[str] = _ONTO_OPTION,
    script: Optional[Path] = _SCRIPT_OPTION,
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Apply a regrouping response and show the resulting history."""
    from rehunk.rebase.errors import SuggestionMappingError
    from rehunk.rebase.suggestion import apply_suggestion, parse_suggestion_response

    cfg, rebaser, _ = _open_session(config, onto, script, verbose)

    try:
        payload = json.loads(response.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Cannot read response:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    try:
        apply_suggestion(rebaser, parse_suggestion_response(payload))
    except SuggestionMappingError as exc:
        console.print(f"[bold red]Suggestion error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    _render(rebaser, _check_format(format, cfg), cfg.output.show_trash)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .rehunk.toml in the repo root."""
    from rehunk.config.defaults import DEFAULT_TOML
    from rehunk.config.loader import CONFIG_FILE_NAME

    repo_root = _resolve_repo_root()
    config_path = repo_root / CONFIG_FILE_NAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILE_NAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"rehunk {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """rehunk — Reorganise a branch's commits hunk by hunk."""
