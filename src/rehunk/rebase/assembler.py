"""Build the public RebaseCommit tree from reconstructed changes."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Set

from rehunk.rebase.models import (
    TRASH,
    Commit,
    FileChange,
    RebaseCommit,
    RebaseCommitFile,
    RebaseCommitFileChange,
)

# original hash -> path -> change indices at construction time
ChangeReferences = Mapping[str, Mapping[str, Set[int]]]


def snapshot_references(changes: Sequence[FileChange]) -> Dict[str, Dict[str, Set[int]]]:
    """Record which change indices each (commit, file) held originally."""
    references: Dict[str, Dict[str, Set[int]]] = {}
    for change in changes:
        references.setdefault(change.original_hash, {}).setdefault(change.path, set()).add(
            change.index
        )
    return references


def dependency_violations(changes: Sequence[FileChange]) -> Set[int]:
    """Indices of changes placed before a (non-trashed) dependency.

    *changes* must be in combined order.
    """
    position = {change.index: pos for pos, change in enumerate(changes)}
    by_index = {change.index: change for change in changes}
    violations: Set[int] = set()

    for pos, change in enumerate(changes):
        if change.hash == TRASH:
            continue
        for dependency in change.dependencies:
            dependent = by_index.get(dependency)
            if dependent is None or dependent.hash == TRASH:
                continue
            if position[dependency] > pos:
                violations.add(change.index)
                break
    return violations


def assemble_rebase_commits(
    commits: Sequence[Commit],
    changes: Sequence[FileChange],
    original_references: ChangeReferences,
) -> List[RebaseCommit]:
    """Group *changes* by commit and file.

    *commits* are oldest first and *changes* in combined order; the result is
    newest first, like the public commit list.
    """
    rebase_commits: Dict[str, RebaseCommit] = {
        commit.hash: RebaseCommit(hash=commit.hash, message=commit.message)
        for commit in commits
    }
    files: Dict[tuple, RebaseCommitFile] = {}
    violations = dependency_violations(changes)

    for change in changes:
        if change.hash == TRASH:
            continue

        rebase_commit = rebase_commits[change.hash]
        is_set_before_dependent = change.index in violations

        key = (change.hash, change.path)
        commit_file = files.get(key)
        if commit_file is None:
            commit_file = files[key] = RebaseCommitFile(file_name=change.path)
            rebase_commit.files.append(commit_file)

        commit_file.changes.append(
            RebaseCommitFileChange(change=change, is_set_before_dependent=is_set_before_dependent)
        )
        commit_file.has_change_set_before_dependent |= is_set_before_dependent
        rebase_commit.has_change_set_before_dependent |= is_set_before_dependent

    for (commit_hash, path), commit_file in files.items():
        original = original_references.get(commit_hash, {}).get(path)
        current = {item.change.index for item in commit_file.changes}
        commit_file.has_changes = original is None or current != set(original)

    return [rebase_commits[commit.hash] for commit in reversed(commits)]
