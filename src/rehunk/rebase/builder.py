"""Turn parsed per-commit diffs into indexed, dependency-linked change records."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from rehunk.git.models import (
    AddedFile,
    BinaryChunk,
    Chunk,
    CombinedChunk,
    DeletedFile,
    LineType,
    ParsedFile,
    RenamedFile,
)
from rehunk.rebase.errors import ParseError
from rehunk.rebase.models import (
    AddFileChange,
    BinaryFileChange,
    Commit,
    CommitDiff,
    DeleteFileChange,
    FileChange,
    FileChangeType,
    RenameFileChange,
    TextFileChange,
)
from rehunk.rebase.positions import RegionTracker

logger = logging.getLogger(__name__)


def chunk_range(chunk: Chunk, deleted: int) -> tuple[int, int]:
    """Return the inclusive 0-based window a hunk splices out.

    In zero-context diffs ``new_start`` is the first inserted line, or the
    line *after which* lines were removed when nothing is inserted. Applying
    a commit's hunks top to bottom, that is exactly where the hunk lands.
    """
    start = chunk.new_start - 1 if chunk.new_lines > 0 else chunk.new_start
    return start, start + deleted - 1


class ChangeBuilder:
    """Assigns creation indices and dependencies while walking history.

    One builder per session: indices keep increasing across ``build`` calls.
    """

    def __init__(self) -> None:
        self._next_index = 0
        self._changes: List[FileChange] = []
        self._trackers: Dict[str, RegionTracker] = {}

    def build(self, commit_diffs: Sequence[CommitDiff]) -> List[FileChange]:
        """Build changes for *commit_diffs*, which are ordered newest first.

        Raises ParseError on merge-style chunks; in that case no change from
        this call is kept.
        """
        self._reject_combined(commit_diffs)

        created: List[FileChange] = []
        for commit_diff in reversed(commit_diffs):
            for parsed_file in commit_diff.files:
                created.extend(self._build_file(commit_diff.commit, parsed_file))

        logger.debug(
            "Built %d changes from %d commits", len(created), len(commit_diffs)
        )
        return created

    @staticmethod
    def _reject_combined(commit_diffs: Iterable[CommitDiff]) -> None:
        for commit_diff in commit_diffs:
            for parsed_file in commit_diff.files:
                for chunk in parsed_file.chunks:
                    if isinstance(chunk, CombinedChunk):
                        raise ParseError(
                            f"Combined diff chunk not supported in {parsed_file.path} "
                            f"(commit {commit_diff.commit.hash})"
                        )

    def _emit(self, change: FileChange) -> FileChange:
        self._changes.append(change)
        return change

    def _take_index(self) -> int:
        index = self._next_index
        self._next_index += 1
        return index

    def _indices_for(self, path: str) -> frozenset[int]:
        return frozenset(c.index for c in self._changes if c.path == path)

    def _tracker(self, path: str) -> RegionTracker:
        return self._trackers.setdefault(path, RegionTracker())

    def _build_file(self, commit: Commit, parsed_file: ParsedFile) -> List[FileChange]:
        created: List[FileChange] = []
        common = {"hash": commit.hash, "original_hash": commit.hash}

        if isinstance(parsed_file, AddedFile):
            self._tracker(parsed_file.path).reset()
            created.append(self._emit(AddFileChange(
                path=parsed_file.path,
                index=self._take_index(),
                **common,
            )))
        elif isinstance(parsed_file, DeletedFile):
            # Deleting consumes every earlier edit to the file; hunks are irrelevant
            dependencies = self._indices_for(parsed_file.path)
            self._tracker(parsed_file.path).reset()
            created.append(self._emit(DeleteFileChange(
                path=parsed_file.path,
                index=self._take_index(),
                dependencies=dependencies,
                **common,
            )))
            return created
        elif isinstance(parsed_file, RenamedFile):
            dependencies = self._indices_for(parsed_file.path_before)
            self._tracker(parsed_file.path_before).reset()
            self._tracker(parsed_file.path_after).reset()
            created.append(self._emit(RenameFileChange(
                path=parsed_file.path_after,
                old_file_name=parsed_file.path_before,
                index=self._take_index(),
                dependencies=dependencies,
                **common,
            )))

        path = parsed_file.path
        for chunk in parsed_file.chunks:
            if isinstance(chunk, BinaryChunk):
                created.append(self._emit(BinaryFileChange(
                    path=path,
                    index=self._take_index(),
                    dependencies=self._file_operation_dependencies(path),
                    **common,
                )))
            elif isinstance(chunk, Chunk):
                created.append(self._emit(self._text_change(commit, path, chunk)))
        return created

    def _file_operation_dependencies(self, path: str) -> frozenset[int]:
        return frozenset(
            c.index
            for c in self._changes
            if c.path == path and c.type in (FileChangeType.ADD, FileChangeType.RENAME)
        )

    def _text_change(self, commit: Commit, path: str, chunk: Chunk) -> TextFileChange:
        modifications: List[str] = []
        deleted = inserted = 0
        for line in chunk.lines:
            if line.line_type == LineType.REMOVED:
                modifications.append(f"-{line.content}")
                deleted += 1
            else:
                modifications.append(f"+{line.content}")
                inserted += 1

        start, end = chunk_range(chunk, deleted)
        tracker = self._tracker(path)
        dependencies = self._file_operation_dependencies(path) | frozenset(
            tracker.overlapping(start, deleted)
        )
        index = self._take_index()
        tracker.apply(index, start, deleted, inserted)

        return TextFileChange(
            path=path,
            index=index,
            hash=commit.hash,
            original_hash=commit.hash,
            dependencies=dependencies,
            modification_range=(start, end),
            modifications=modifications,
            lines_changed_count=inserted - deleted,
        )


def build_changes(commit_diffs: Sequence[CommitDiff]) -> List[FileChange]:
    """Build the full change list for a session (commits newest first)."""
    return ChangeBuilder().build(commit_diffs)
