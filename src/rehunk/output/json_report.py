"""JSON reporter for scripting and CI."""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, List, Sequence, Union

from rehunk.rebase.models import (
    CommitOperation,
    FileChange,
    RebaseCommitFile,
    RenameFileChange,
    TextFileChange,
)
from rehunk.rebase.store import Rebaser


def change_to_dict(change: FileChange) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "index": change.index,
        "path": change.path,
        "type": change.type.value,
        "hash": change.hash,
        "original_hash": change.original_hash,
        "dependencies": sorted(change.dependencies),
    }
    if isinstance(change, RenameFileChange):
        data["old_file_name"] = change.old_file_name
    if isinstance(change, TextFileChange):
        data["file_type"] = "text"
        data["range"] = list(change.modification_range)
        data["lines_changed_count"] = change.lines_changed_count
        data["modifications"] = list(change.modifications)
    elif hasattr(change, "file_type"):
        data["file_type"] = change.file_type
    return data


def _file_to_dict(commit_file: RebaseCommitFile) -> Dict[str, Any]:
    return {
        "file": commit_file.file_name,
        "has_changes": commit_file.has_changes,
        "has_change_set_before_dependent": commit_file.has_change_set_before_dependent,
        "changes": [
            {
                **change_to_dict(item.change),
                "is_set_before_dependent": item.is_set_before_dependent,
            }
            for item in commit_file.changes
        ],
    }


def to_dict(rebaser: Rebaser, *, show_trash: bool = True) -> Dict[str, Any]:
    """Convert the session's commit tree to a JSON-serialisable dict."""
    data: Dict[str, Any] = {
        "version": "1.0",
        "has_dependency_violation": rebaser.has_dependency_violation,
        "commits": [
            {
                "hash": commit.hash,
                "message": commit.message,
                "has_change_set_before_dependent": commit.has_change_set_before_dependent,
                "files": [_file_to_dict(f) for f in commit.files],
            }
            for commit in rebaser.rebase_commits
        ],
    }
    if show_trash:
        data["trash"] = [_file_to_dict(f) for f in rebaser.get_trash()]
    return data


def _is_plain_text(content: Union[str, bytes]) -> bool:
    """True for text that is valid UTF-8 as it stands (no escaped bytes)."""
    if isinstance(content, bytes):
        return False
    try:
        content.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def plan_to_dict(operations: Sequence[CommitOperation]) -> Dict[str, Any]:
    """Materialization plan.

    Binary content, and text holding bytes that are not valid UTF-8, is
    base64 encoded so the exact bytes can be written back.
    """
    commits: List[Dict[str, Any]] = []
    for operation in operations:
        file_operations: List[Dict[str, Any]] = []
        for file_operation in operation.file_operations:
            entry: Dict[str, Any] = {"type": file_operation.type, "file": file_operation.file_name}
            if file_operation.old_file_name is not None:
                entry["old_file"] = file_operation.old_file_name
            if file_operation.content is not None:
                if _is_plain_text(file_operation.content):
                    entry["content"] = file_operation.content
                else:
                    entry["encoding"] = "base64"
                    entry["content"] = base64.b64encode(file_operation.content_bytes).decode("ascii")
            file_operations.append(entry)
        commits.append({"message": operation.message, "operations": file_operations})
    return {"version": "1.0", "commits": commits}


def render(rebaser: Rebaser, *, show_trash: bool = True) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(rebaser, show_trash=show_trash), indent=2)


def render_plan(operations: Sequence[CommitOperation]) -> str:
    return json.dumps(plan_to_dict(operations), indent=2)
