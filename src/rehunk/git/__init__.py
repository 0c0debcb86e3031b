"""Git interface layer: models, diff parsing, adapter."""

from rehunk.git.models import (
    AddedFile,
    BinaryChunk,
    ChangedFile,
    Chunk,
    CombinedChunk,
    DeletedFile,
    DiffLine,
    LineType,
    ParsedFile,
    RenamedFile,
)
from rehunk.git.diff_parser import DiffParser
from rehunk.git.adapter import (
    GitContentSource,
    GitError,
    get_branch_commits,
    get_commit_diff,
    get_current_branch,
    get_merge_base,
    get_repo_root,
)

__all__ = [
    "AddedFile",
    "BinaryChunk",
    "ChangedFile",
    "Chunk",
    "CombinedChunk",
    "DeletedFile",
    "DiffLine",
    "DiffParser",
    "GitContentSource",
    "GitError",
    "LineType",
    "ParsedFile",
    "RenamedFile",
    "get_branch_commits",
    "get_commit_diff",
    "get_current_branch",
    "get_merge_base",
    "get_repo_root",
]
