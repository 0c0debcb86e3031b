"""Rebase engine: change records, positions, store, assembly, patching."""

from rehunk.rebase.models import (
    TRASH,
    Commit,
    CommitDiff,
    CommitOperation,
    FileChange,
    FileChangeType,
    FileOperation,
    RebaseCommit,
    RebaseCommitFile,
    RebaseCommitFileChange,
    TextFileChange,
)
from rehunk.rebase.errors import (
    InvalidOperationError,
    NotFoundError,
    ParseError,
    RebaseError,
    SuggestionMappingError,
)
from rehunk.rebase.builder import ChangeBuilder, build_changes
from rehunk.rebase.patch import apply_changes
from rehunk.rebase.store import Rebaser

__all__ = [
    "TRASH",
    "ChangeBuilder",
    "Commit",
    "CommitDiff",
    "CommitOperation",
    "FileChange",
    "FileChangeType",
    "FileOperation",
    "InvalidOperationError",
    "NotFoundError",
    "ParseError",
    "RebaseCommit",
    "RebaseCommitFile",
    "RebaseCommitFileChange",
    "RebaseError",
    "Rebaser",
    "SuggestionMappingError",
    "TextFileChange",
    "apply_changes",
    "build_changes",
]
