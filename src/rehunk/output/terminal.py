"""Rich terminal reporter — commit tree with dependency warnings."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from rehunk.rebase.models import (
    FileChange,
    FileChangeType,
    RebaseCommitFile,
    RenameFileChange,
    TextFileChange,
    modification_kind,
)
from rehunk.rebase.store import Rebaser

_KIND_STYLE = {
    "ADD": "green",
    "DELETE": "red",
    "MODIFY": "yellow",
    "RENAME": "cyan",
    "BINARY": "magenta",
}


def _change_label(change: FileChange, is_set_before_dependent: bool) -> Text:
    if isinstance(change, TextFileChange):
        kind = modification_kind(change)
        start, end = change.modification_range
        detail = f"lines {start + 1}-{max(start, end) + 1} ({change.lines_changed_count:+d})"
    elif isinstance(change, RenameFileChange):
        kind = "RENAME"
        detail = f"from {change.old_file_name}"
    elif change.type == FileChangeType.MODIFY:
        kind = "BINARY"
        detail = "binary content"
    else:
        kind = change.type.value
        detail = "file"

    label = Text()
    label.append(f"#{change.index} ", style="dim")
    label.append(f"{kind:<6}", style=_KIND_STYLE.get(kind, ""))
    label.append(f" {detail}")
    if change.dependencies:
        deps = ", ".join(f"#{i}" for i in sorted(change.dependencies))
        label.append(f"  needs {deps}", style="dim")
    if is_set_before_dependent:
        label.append("  ⚠ before its dependency", style="bold red")
    return label


def _add_file(parent: Tree, commit_file: RebaseCommitFile) -> None:
    style = "bold magenta" if commit_file.has_changes else "magenta"
    name = Text(commit_file.file_name, style=style)
    if commit_file.has_changes:
        name.append(" (edited)", style="dim")
    node = parent.add(name)
    for item in commit_file.changes:
        node.add(_change_label(item.change, item.is_set_before_dependent))


def build_tree(rebaser: Rebaser, *, show_trash: bool = True) -> Tree:
    root = Tree(Text("Branch history (newest first)", style="bold"))
    for commit in rebaser.rebase_commits:
        header = Text()
        header.append(commit.hash[:10], style="yellow")
        header.append(f" {commit.message.splitlines()[0] if commit.message else ''}")
        if commit.has_change_set_before_dependent:
            header.append("  ❌ dependency order", style="bold red")
        if commit.is_empty:
            header.append("  (empty)", style="dim")
        node = root.add(header)
        for commit_file in commit.files:
            _add_file(node, commit_file)

    if show_trash:
        trash = rebaser.get_trash()
        if trash:
            node = root.add(Text("trash", style="bold red"))
            for commit_file in trash:
                _add_file(node, commit_file)
    return root


def render(rebaser: Rebaser, *, show_trash: bool = True, console: Optional[Console] = None) -> None:
    """Print the session's commit tree using Rich."""
    console = console or Console()
    console.print(build_tree(rebaser, show_trash=show_trash))

    console.print()
    if rebaser.has_dependency_violation:
        console.print(
            "[bold red]❌ Some changes sit before their dependencies. "
            "Move them before applying.[/bold red]"
        )
    else:
        console.print("[bold green]✅ History is consistent.[/bold green]")
