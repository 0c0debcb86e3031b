"""Data models for parsed diffs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Union


class LineType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single ``+`` or ``-`` line inside a hunk."""

    content: str
    line_type: LineType


@dataclass(frozen=True)
class Chunk:
    """One zero-context hunk. Starts are 1-based, as in the hunk header."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: List[DiffLine] = field(default_factory=list)


@dataclass(frozen=True)
class BinaryChunk:
    """Marker for ``Binary files ... differ``."""

    path: str


@dataclass(frozen=True)
class CombinedChunk:
    """A merge-style (``@@@``) hunk. Parsed so it can be rejected downstream."""

    header: str


AnyChunk = Union[Chunk, BinaryChunk, CombinedChunk]


@dataclass(frozen=True)
class AddedFile:
    path: str
    chunks: List[AnyChunk] = field(default_factory=list)


@dataclass(frozen=True)
class DeletedFile:
    path: str
    chunks: List[AnyChunk] = field(default_factory=list)


@dataclass(frozen=True)
class RenamedFile:
    path_before: str
    path_after: str
    chunks: List[AnyChunk] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.path_after


@dataclass(frozen=True)
class ChangedFile:
    path: str
    chunks: List[AnyChunk] = field(default_factory=list)


ParsedFile = Union[AddedFile, DeletedFile, RenamedFile, ChangedFile]
