"""Apply positioned changes to a document."""

from __future__ import annotations

import logging
from typing import Iterable, List

from rehunk.rebase.models import FileChange, TextFileChange

logger = logging.getLogger(__name__)


def split_lines(document: str) -> List[str]:
    """Split a document the way ranges count lines (``""`` is one empty line)."""
    return document.split("\n")


def _replay(window: List[str], modifications: Iterable[str]) -> int:
    """Replay modifications on *window* in place; return deletions that missed."""
    offset = 0
    missed = 0
    for modification in modifications:
        if modification.startswith("-"):
            if offset < len(window):
                del window[offset]
            else:
                missed += 1
        elif modification.startswith("+"):
            window.insert(offset, modification[1:])
            offset += 1
    return missed


def apply_changes(document: str, changes: Iterable[FileChange]) -> str:
    """Apply *changes*, in order, to *document* and return the new text.

    Changes must carry working (reconstructed) ranges and be listed in
    sequential application order. Non-text changes are skipped: file-level
    add / delete / rename is the caller's business.

    Post-condition: the line count moves by exactly the summed
    ``lines_changed_count``. Surplus trailing lines left over by
    end-of-file edge cases in zero-context diffs are trimmed.
    """
    lines = split_lines(document)
    initial_count = len(lines)
    expected_change = 0

    for change in changes:
        if not isinstance(change, TextFileChange):
            continue

        expected_change += change.lines_changed_count
        start, end = change.modification_range
        count = max(0, end - start + 1)
        window = lines[start:start + count]
        missed = _replay(window, change.modifications)
        if missed:
            logger.debug(
                "Change %d on %s: %d deletion(s) past the end of its window",
                change.index,
                change.path,
                missed,
            )
        lines[start:start + count] = window

    observed_change = len(lines) - initial_count
    if observed_change != expected_change:
        surplus = observed_change - expected_change
        logger.warning(
            "Line count changed by %d, expected %d; %s",
            observed_change,
            expected_change,
            f"trimming {surplus} trailing line(s)" if surplus > 0 else "leaving result as is",
        )
        if surplus > 0:
            lines = lines[:-surplus]

    return "\n".join(lines)
