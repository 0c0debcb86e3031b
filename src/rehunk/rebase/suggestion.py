"""Wire mapping for the external commit-regrouping collaborator.

Request::

    {"commits": [message, ...],            # oldest first
     "diffs": [{"filePath", "index", "dependencies", "type",
                "isDropped", "lines"?}, ...]}

The response has the same shape plus ``commitIndex`` on every diff entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rehunk.rebase.errors import SuggestionMappingError
from rehunk.rebase.models import TRASH, Commit, FileChangeType, TextFileChange
from rehunk.rebase.store import Rebaser

logger = logging.getLogger(__name__)

_WIRE_TYPES = {
    FileChangeType.ADD: "add",
    FileChangeType.DELETE: "delete",
    FileChangeType.MODIFY: "modify",
    FileChangeType.RENAME: "rename",
}


@dataclass
class SuggestedChange:
    index: int
    commit_index: Optional[int]
    is_dropped: bool = False
    file_path: str = ""


@dataclass
class SuggestionResponse:
    commits: List[str] = field(default_factory=list)
    diffs: List[SuggestedChange] = field(default_factory=list)


def build_suggestion_request(rebaser: Rebaser) -> Dict[str, Any]:
    """Describe the session's changes for the regrouping collaborator."""
    diffs: List[Dict[str, Any]] = []
    for change in sorted(rebaser.changes, key=lambda c: c.index):
        entry: Dict[str, Any] = {
            "filePath": change.path,
            "index": change.index,
            "dependencies": sorted(change.dependencies),
            "type": _WIRE_TYPES[change.type],
            "isDropped": change.hash == TRASH,
        }
        if isinstance(change, TextFileChange):
            entry["lines"] = list(change.modifications)
        diffs.append(entry)

    return {
        "commits": [commit.message for commit in reversed(rebaser.commits)],
        "diffs": diffs,
    }


def _require(mapping: Dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = mapping.get(key)
    # bool is an int subclass; an index of True is malformed
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise SuggestionMappingError(f"{where}: '{key}' must be {kind.__name__}")
    return value


def parse_suggestion_response(payload: Any) -> SuggestionResponse:
    """Validate a decoded JSON response. Raises SuggestionMappingError."""
    if not isinstance(payload, dict):
        raise SuggestionMappingError("Response must be an object")

    commits = payload.get("commits")
    if not isinstance(commits, list) or not all(isinstance(m, str) for m in commits):
        raise SuggestionMappingError("'commits' must be a list of strings")

    raw_diffs = payload.get("diffs")
    if not isinstance(raw_diffs, list):
        raise SuggestionMappingError("'diffs' must be a list")

    diffs: List[SuggestedChange] = []
    for position, raw in enumerate(raw_diffs):
        where = f"diffs[{position}]"
        if not isinstance(raw, dict):
            raise SuggestionMappingError(f"{where} must be an object")
        index = _require(raw, "index", int, where)
        is_dropped = _require(raw, "isDropped", bool, where) if "isDropped" in raw else False
        commit_index = raw.get("commitIndex")
        if not is_dropped:
            commit_index = _require(raw, "commitIndex", int, where)
        diffs.append(SuggestedChange(
            index=index,
            commit_index=None if is_dropped else commit_index,
            is_dropped=is_dropped,
            file_path=str(raw.get("filePath", "")),
        ))

    return SuggestionResponse(commits=list(commits), diffs=diffs)


def apply_suggestion(rebaser: Rebaser, response: SuggestionResponse) -> List[Commit]:
    """Replace the session's commits with the suggested grouping.

    Validation happens before anything is touched: an unknown change index
    or an out-of-range ``commitIndex`` leaves the session unmodified.
    Returns the new commits, newest first.
    """
    known = {change.index for change in rebaser.changes}
    assignments: Dict[int, Optional[int]] = {}
    for suggested in response.diffs:
        if suggested.index not in known:
            raise SuggestionMappingError(f"Could not find change {suggested.index}")
        if suggested.index in assignments:
            raise SuggestionMappingError(f"Change {suggested.index} is listed twice")
        commit_index = suggested.commit_index
        if commit_index is not None and not 0 <= commit_index < len(response.commits):
            raise SuggestionMappingError(
                f"Change {suggested.index} points at missing commit {commit_index}"
            )
        assignments[suggested.index] = commit_index

    omitted = sorted(known - set(assignments))
    if omitted:
        logger.warning("Suggestion omits %d change(s); moving to trash: %s", len(omitted), omitted)

    return rebaser.regroup(response.commits, assignments)
