"""The rebase session: commits, normalized changes and every mutation on them.

Each mutation re-sorts the changes and regenerates the RebaseCommit tree
before returning, so callers never see a stale tree.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from rehunk.rebase.assembler import assemble_rebase_commits, snapshot_references
from rehunk.rebase.builder import ChangeBuilder
from rehunk.rebase.errors import InvalidOperationError, NotFoundError
from rehunk.rebase.models import (
    TRASH,
    Commit,
    CommitDiff,
    FileChange,
    FileChangeType,
    RebaseCommit,
    RebaseCommitFile,
    RebaseCommitFileChange,
)
from rehunk.rebase.positions import Placement, normalize_changes, reconstruct_changes

logger = logging.getLogger(__name__)


class Rebaser:
    """Mutable change/commit collection for one rebase session.

    *commit_diffs* are ordered newest first (``git log`` order). Internally
    commits are kept oldest first.
    """

    def __init__(
        self,
        commit_diffs: Sequence[CommitDiff] = (),
        *,
        placeholder_prefix: str = "new-",
    ) -> None:
        self._placeholder_prefix = placeholder_prefix
        self._commits: List[Commit] = [
            Commit(hash=cd.commit.hash, message=cd.commit.message)
            for cd in reversed(commit_diffs)
        ]
        built = ChangeBuilder().build(commit_diffs)
        self._changes, self._placement = normalize_changes(built)
        self._path_rank: Dict[str, int] = {}
        for change in self._changes:
            self._path_rank.setdefault(change.path, change.index)
        self._original_references = snapshot_references(self._changes)
        self._working: List[FileChange] = []
        self._rebase_commits: List[RebaseCommit] = []
        self._refresh()

    @classmethod
    def from_diff_texts(
        cls,
        commits: Sequence[Tuple[Commit, str]],
        **kwargs,
    ) -> "Rebaser":
        """Build a session from ``(commit, diff text)`` pairs, newest first."""
        from rehunk.git.diff_parser import DiffParser

        commit_diffs = [
            CommitDiff(commit=commit, files=list(DiffParser(diff_text).parse()))
            for commit, diff_text in commits
        ]
        return cls(commit_diffs, **kwargs)

    # ---- read access ----

    @property
    def commits(self) -> List[Commit]:
        """Commits newest first."""
        return list(reversed(self._commits))

    @property
    def changes(self) -> List[FileChange]:
        """Normalized changes in combined order (trash last)."""
        return list(self._changes)

    @property
    def placement(self) -> Placement:
        return self._placement

    @property
    def rebase_commits(self) -> List[RebaseCommit]:
        return self._rebase_commits

    @property
    def working_changes(self) -> List[FileChange]:
        """Reconstructed (directly appliable) changes, trash excluded."""
        return [c for c in self._working if c.hash != TRASH]

    @property
    def has_dependency_violation(self) -> bool:
        return any(c.has_change_set_before_dependent for c in self._rebase_commits)

    def commit_position(self, commit_hash: str) -> int:
        """Position of a commit in history, oldest = 0."""
        for position, commit in enumerate(self._commits):
            if commit.hash == commit_hash:
                return position
        raise NotFoundError(f"Could not find commit {commit_hash}")

    def get_commit(self, commit_hash: str) -> Commit:
        return self._commits[self.commit_position(commit_hash)]

    def get_change(self, index: int) -> FileChange:
        for change in self._changes:
            if change.index == index:
                return change
        raise NotFoundError(f"Could not find change {index}")

    # ---- recompute ----

    def _sort_key(self, change: FileChange) -> tuple:
        if change.hash == TRASH:
            commit_position = len(self._commits)
        else:
            commit_position = self.commit_position(change.hash)
        is_modify = change.type == FileChangeType.MODIFY
        return (commit_position, self._path_rank[change.path], is_modify, change.index)

    def _sort_changes(self) -> None:
        self._changes.sort(key=self._sort_key)

    def _refresh(self) -> None:
        self._sort_changes()
        self._working = reconstruct_changes(self._changes, self._placement)
        self._rebase_commits = assemble_rebase_commits(
            self._commits, self._working, self._original_references
        )
        logger.debug(
            "Rebuilt %d commits from %d changes", len(self._rebase_commits), len(self._changes)
        )

    # ---- commits ----

    def _generate_hash(self) -> str:
        return f"{self._placeholder_prefix}{uuid.uuid4().hex[:12]}"

    def add_commit(self, message: str) -> Commit:
        """Add an empty commit at the newest position."""
        commit = Commit(hash=self._generate_hash(), message=message)
        self._commits.append(commit)
        self._refresh()
        return commit

    def remove_commit(self, commit_hash: str) -> None:
        position = self.commit_position(commit_hash)
        if any(change.hash == commit_hash for change in self._changes):
            raise InvalidOperationError(f"Commit {commit_hash} still has changes")
        del self._commits[position]
        self._refresh()

    def update_commit_message(self, commit_hash: str, message: str) -> None:
        self.get_commit(commit_hash).message = message
        self._refresh()

    def move_commit(self, commit_hash: str, after_ref: Optional[str] = None) -> None:
        """Move a commit to sit directly after *after_ref* in history.

        ``after_ref=None`` makes it the oldest commit. ``after_ref="trash"``
        drops the commit and sends all of its changes to trash.
        """
        position = self.commit_position(commit_hash)

        if after_ref == TRASH:
            for change in self._changes:
                if change.hash == commit_hash:
                    change.hash = TRASH
            del self._commits[position]
            self._refresh()
            return

        if after_ref is not None:
            self.commit_position(after_ref)
            if after_ref == commit_hash:
                raise InvalidOperationError("Can not move a commit after itself")

        commit = self._commits.pop(position)
        target = 0 if after_ref is None else self.commit_position(after_ref) + 1
        self._commits.insert(target, commit)
        self._refresh()

    # ---- changes ----

    def _get_change_in_file(self, path: str, index: int) -> FileChange:
        change = self.get_change(index)
        if change.path != path:
            raise NotFoundError(f"Change {index} does not belong to {path}")
        return change

    def move_change(self, path: str, index: int, target_hash: str) -> None:
        """Reassign a change to *target_hash* (a commit hash or ``"trash"``)."""
        change = self._get_change_in_file(path, index)
        if target_hash != TRASH:
            self.commit_position(target_hash)
        change.hash = target_hash
        self._refresh()

    def move_change_to_trash(self, path: str, index: int) -> None:
        self.move_change(path, index, TRASH)

    def move_change_from_trash(self, path: str, index: int, target_hash: str) -> None:
        change = self._get_change_in_file(path, index)
        if change.hash != TRASH:
            raise InvalidOperationError(f"Change {index} is not in trash")
        if target_hash == TRASH:
            raise InvalidOperationError("Restore target must be a commit")
        self.move_change(path, index, target_hash)

    def regroup(self, messages: Sequence[str], assignments: Mapping[int, Optional[int]]) -> List[Commit]:
        """Replace all commits with fresh ones built from *messages* (oldest first).

        *assignments* maps change index to a position in *messages*, or None
        to drop the change. Changes missing from *assignments* are dropped.
        """
        known = {change.index for change in self._changes}
        for index, commit_index in assignments.items():
            if index not in known:
                raise NotFoundError(f"Could not find change {index}")
            if commit_index is not None and not 0 <= commit_index < len(messages):
                raise NotFoundError(f"No commit at position {commit_index}")

        self._commits = [Commit(hash=self._generate_hash(), message=m) for m in messages]
        for change in self._changes:
            commit_index = assignments.get(change.index)
            change.hash = TRASH if commit_index is None else self._commits[commit_index].hash
        self._refresh()
        return self.commits

    def get_trash(self) -> List[RebaseCommitFile]:
        trash: Dict[str, RebaseCommitFile] = {}
        for change in self._changes:
            if change.hash != TRASH:
                continue
            commit_file = trash.setdefault(change.path, RebaseCommitFile(file_name=change.path))
            commit_file.changes.append(RebaseCommitFileChange(change=change))
        return list(trash.values())

    # ---- per-file queries ----

    def get_changes_for_file(self, path: str) -> List[FileChange]:
        """Working changes of one file, in application order."""
        return [c for c in self.working_changes if c.path == path]

    def get_hashes_for_file(self, path: str) -> List[str]:
        """Commits touching *path*, newest first."""
        hashes = {c.hash for c in self.working_changes if c.path == path}
        return [commit.hash for commit in self.commits if commit.hash in hashes]

    def get_changes_for_file_by_hash(self, path: str, commit_hash: str) -> List[FileChange]:
        """Working changes of *path* up to and including *commit_hash*."""
        limit = self.commit_position(commit_hash)
        return [
            c
            for c in self.get_changes_for_file(path)
            if self.commit_position(c.hash) <= limit
        ]

    def get_file_change_type(self, path: str) -> FileChangeType:
        """The file-level operation for *path*: its first non-MODIFY change type."""
        changes = [c for c in self._changes if c.path == path]
        if not changes:
            raise NotFoundError(f"No changes for {path}")
        for change in changes:
            if change.type != FileChangeType.MODIFY:
                return change.type
        return FileChangeType.MODIFY
