"""Change records, commits and the derived rebase tree.

``FileChange`` is a closed union discriminated by ``type`` (and, for
MODIFY, ``file_type``). Code that needs variant behaviour switches on the
discriminant; the variants carry data only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Literal, Tuple, Union

TRASH = "trash"

# File text is decoded so that every byte sequence survives the trip
# through str: CRLF stays, undecodable bytes become lone surrogates.
CONTENT_ENCODING = "utf-8"
CONTENT_ERRORS = "surrogateescape"


def decode_content(data: bytes) -> str:
    return data.decode(CONTENT_ENCODING, CONTENT_ERRORS)


def encode_content(text: str) -> bytes:
    return text.encode(CONTENT_ENCODING, CONTENT_ERRORS)


class FileChangeType(str, Enum):
    ADD = "ADD"
    MODIFY = "MODIFY"
    RENAME = "RENAME"
    DELETE = "DELETE"


@dataclass
class Commit:
    hash: str
    message: str


@dataclass(kw_only=True)
class _ChangeFields:
    path: str
    index: int
    hash: str
    original_hash: str
    dependencies: FrozenSet[int] = frozenset()


@dataclass(kw_only=True)
class AddFileChange(_ChangeFields):
    type: Literal[FileChangeType.ADD] = field(default=FileChangeType.ADD, init=False)


@dataclass(kw_only=True)
class DeleteFileChange(_ChangeFields):
    type: Literal[FileChangeType.DELETE] = field(default=FileChangeType.DELETE, init=False)


@dataclass(kw_only=True)
class RenameFileChange(_ChangeFields):
    old_file_name: str
    type: Literal[FileChangeType.RENAME] = field(default=FileChangeType.RENAME, init=False)


@dataclass(kw_only=True)
class BinaryFileChange(_ChangeFields):
    type: Literal[FileChangeType.MODIFY] = field(default=FileChangeType.MODIFY, init=False)
    file_type: Literal["binary"] = field(default="binary", init=False)


@dataclass(kw_only=True)
class TextFileChange(_ChangeFields):
    """A hunk.

    ``modification_range`` is an inclusive ``(start, end)`` window of 0-based
    line indices; a pure insertion has ``end == start - 1``.
    ``modifications`` holds ``"-<line>"`` / ``"+<line>"`` entries in replay
    order.
    """

    modification_range: Tuple[int, int]
    modifications: List[str] = field(default_factory=list)
    lines_changed_count: int = 0
    type: Literal[FileChangeType.MODIFY] = field(default=FileChangeType.MODIFY, init=False)
    file_type: Literal["text"] = field(default="text", init=False)


FileChange = Union[
    AddFileChange,
    DeleteFileChange,
    RenameFileChange,
    BinaryFileChange,
    TextFileChange,
]


def is_text_change(change: FileChange) -> bool:
    return change.type == FileChangeType.MODIFY and getattr(change, "file_type", None) == "text"


def is_binary_change(change: FileChange) -> bool:
    return change.type == FileChangeType.MODIFY and getattr(change, "file_type", None) == "binary"


def modification_kind(change: TextFileChange) -> str:
    """Classify a hunk as ADD (net insertion), DELETE (net deletion) or MODIFY."""
    if change.lines_changed_count > 0:
        return "ADD"
    if change.lines_changed_count < 0:
        return "DELETE"
    return "MODIFY"


@dataclass
class RebaseCommitFileChange:
    change: FileChange
    is_set_before_dependent: bool = False


@dataclass
class RebaseCommitFile:
    file_name: str
    changes: List[RebaseCommitFileChange] = field(default_factory=list)
    has_change_set_before_dependent: bool = False
    has_changes: bool = False


@dataclass
class RebaseCommit:
    hash: str
    message: str
    files: List[RebaseCommitFile] = field(default_factory=list)
    has_change_set_before_dependent: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.files


@dataclass
class CommitDiff:
    """A commit paired with its parsed diff (the engine's ingestion unit)."""

    commit: Commit
    files: list = field(default_factory=list)  # List[ParsedFile]


@dataclass
class FileOperation:
    """One file-system step of a materialized commit."""

    type: Literal["write", "remove", "rename"]
    file_name: str
    content: Union[str, bytes, None] = None
    old_file_name: Union[str, None] = None

    @property
    def content_bytes(self) -> Union[bytes, None]:
        """The exact bytes to write, undoing ``decode_content`` for text."""
        if isinstance(self.content, str):
            return encode_content(self.content)
        return self.content


@dataclass
class CommitOperation:
    message: str
    file_operations: List[FileOperation] = field(default_factory=list)
