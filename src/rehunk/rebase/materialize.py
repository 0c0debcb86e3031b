"""Turn the edited session back into file contents.

``materialize`` produces the per-commit file operations an external writer
replays on top of the branch base; ``preview_file`` gives the before/after
pair for one file in one commit.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

from rehunk.rebase.errors import InvalidOperationError, NotFoundError
from rehunk.rebase.models import (
    TRASH,
    CommitOperation,
    FileChange,
    FileChangeType,
    FileOperation,
    RebaseCommitFile,
    RenameFileChange,
    TextFileChange,
    is_binary_change,
)
from rehunk.rebase.patch import apply_changes
from rehunk.rebase.store import Rebaser

logger = logging.getLogger(__name__)


class ContentSource(Protocol):
    def read_text(self, path: str) -> Optional[str]:
        """Content of *path* at the branch base, or None when absent."""

    def read_binary(self, rev: str, path: str) -> bytes:
        """Raw content of *path* at commit *rev*."""


class FileStates:
    """Running text content per path while replaying changes in order.

    Paths not touched yet are read from the base on first use. A deleted
    path (or the old side of a rename) holds None.
    """

    def __init__(self, source: ContentSource) -> None:
        self._source = source
        self._states: Dict[str, Optional[str]] = {}

    def get(self, path: str) -> Optional[str]:
        if path not in self._states:
            self._states[path] = self._source.read_text(path)
        return self._states[path]

    def set(self, path: str, content: Optional[str]) -> None:
        self._states[path] = content

    def apply(self, changes: Sequence[FileChange]) -> None:
        """Replay *changes* (combined order) one by one."""
        for change in changes:
            if change.type == FileChangeType.ADD:
                self._states[change.path] = ""
            elif change.type == FileChangeType.DELETE:
                self._states[change.path] = None
            elif isinstance(change, RenameFileChange):
                self._states[change.path] = self.get(change.old_file_name)
                self._states[change.old_file_name] = None
            elif isinstance(change, TextFileChange):
                current = self.get(change.path) or ""
                self._states[change.path] = apply_changes(current, [change])


def _file_operation_type(commit_file: RebaseCommitFile) -> Tuple[FileChangeType, Optional[str]]:
    """The file-level operation: the first non-MODIFY change, else MODIFY."""
    for item in commit_file.changes:
        change = item.change
        if change.type != FileChangeType.MODIFY:
            old_file_name = change.old_file_name if isinstance(change, RenameFileChange) else None
            return change.type, old_file_name
    return FileChangeType.MODIFY, None


def materialize(rebaser: Rebaser, source: ContentSource) -> List[CommitOperation]:
    """Return one CommitOperation per non-empty commit, oldest first.

    Raises InvalidOperationError while any change sits before one of its
    dependencies.
    """
    if rebaser.has_dependency_violation:
        offending = [c.hash for c in rebaser.rebase_commits if c.has_change_set_before_dependent]
        raise InvalidOperationError(
            "Changes are placed before their dependencies in: " + ", ".join(offending)
        )

    states = FileStates(source)
    operations: List[CommitOperation] = []

    for rebase_commit in reversed(rebaser.rebase_commits):
        if rebase_commit.is_empty:
            continue

        file_operations: List[FileOperation] = []
        for commit_file in rebase_commit.files:
            changes = [item.change for item in commit_file.changes]
            operation_type, old_file_name = _file_operation_type(commit_file)
            states.apply(changes)

            binary_changes = [c for c in changes if is_binary_change(c)]
            content: Union[str, bytes, None]
            if binary_changes:
                content = source.read_binary(binary_changes[-1].original_hash, commit_file.file_name)
            else:
                content = states.get(commit_file.file_name)

            if operation_type == FileChangeType.DELETE:
                file_operations.append(FileOperation(type="remove", file_name=commit_file.file_name))
                continue
            if operation_type == FileChangeType.RENAME:
                file_operations.append(FileOperation(
                    type="rename",
                    file_name=commit_file.file_name,
                    old_file_name=old_file_name,
                ))
            file_operations.append(FileOperation(
                type="write",
                file_name=commit_file.file_name,
                content=content if content is not None else "",
            ))

        operations.append(CommitOperation(
            message=rebase_commit.message,
            file_operations=file_operations,
        ))

    logger.debug("Materialized %d commits", len(operations))
    return operations


def preview_file(
    rebaser: Rebaser,
    file_name: str,
    commit_hash: str,
    source: ContentSource,
) -> Tuple[str, str]:
    """Return *file_name* just before and just after *commit_hash*'s changes.

    Earlier commits are replayed across every path so rename chains and
    add / delete resets carry through. When the commit renames the file,
    the before side is the old path's content. A file that does not exist
    on a side previews as the empty document.
    """
    if commit_hash == TRASH:
        raise NotFoundError("Trash has no position in history")
    position = rebaser.commit_position(commit_hash)

    earlier: List[FileChange] = []
    own: List[FileChange] = []
    for change in rebaser.working_changes:
        change_position = rebaser.commit_position(change.hash)
        if change_position < position:
            earlier.append(change)
        elif change_position == position:
            own.append(change)

    states = FileStates(source)
    states.apply(earlier)
    before = states.get(file_name)
    for change in own:
        if isinstance(change, RenameFileChange) and change.path == file_name:
            before = states.get(change.old_file_name)
            break
    states.apply(own)
    after = states.get(file_name)
    return before or "", after or ""
