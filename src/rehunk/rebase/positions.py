"""Normalization and reconstruction of hunk positions.

A text change is recorded at the position it had when the original history
was applied hunk by hunk. Normalization removes the line-count effect of
every earlier hunk above it that it does not depend on, which gives a
position that no longer depends on which commit owns those hunks.
Reconstruction adds back the effect of the hunks above it that precede it
in the *current* ordering.

"Above" is decided from the geometry of the original history: each earlier
hunk's region is tracked forward through every later edit on the same file,
so two hunks are compared in the coordinate space current when the later of
the two was created. The result is kept in a Placement.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from rehunk.rebase.models import (
    FileChange,
    FileChangeType,
    RenameFileChange,
    TextFileChange,
    is_text_change,
)

logger = logging.getLogger(__name__)

# File operations that replace the file's content wholesale
_RESET_TYPES = (FileChangeType.ADD, FileChangeType.DELETE, FileChangeType.RENAME)


@dataclass
class _Region:
    index: int
    start: int
    end: int  # exclusive end of the lines the change inserted


class RegionTracker:
    """Regions of earlier hunks on one file, in the current coordinate space."""

    def __init__(self) -> None:
        self.regions: List[_Region] = []

    def reset(self) -> None:
        self.regions.clear()

    def overlapping(self, start: int, deleted: int) -> List[int]:
        """Indices of regions that overlap or touch ``[start, start + deleted]``."""
        end = start + deleted
        return [r.index for r in self.regions if start <= r.end and r.start <= end]

    def above(self, start: int) -> List[int]:
        return [r.index for r in self.regions if r.end < start]

    def below(self, start: int, deleted: int) -> List[int]:
        end = start + deleted
        return [r.index for r in self.regions if r.start > end]

    def apply(self, index: int, start: int, deleted: int, inserted: int) -> None:
        """Record a hunk and move every tracked region through it."""
        end = start + deleted
        delta = inserted - deleted
        for region in self.regions:
            if region.start >= end:
                region.start += delta
                region.end += delta
            elif region.end <= start:
                continue
            else:
                # Partially rewritten: the region absorbs the new hunk
                region.start = min(region.start, start)
                region.end = max(region.end, end) + delta
        self.regions.append(_Region(index=index, start=start, end=start + inserted))


def hunk_extent(change: TextFileChange) -> Tuple[int, int, int]:
    """Return ``(start, deleted, inserted)`` for a text change."""
    deleted = sum(1 for m in change.modifications if m.startswith("-"))
    inserted = sum(1 for m in change.modifications if m.startswith("+"))
    return change.modification_range[0], deleted, inserted


@dataclass
class Placement:
    """Which earlier hunks lay above / below each hunk when it was created.

    Pairs that overlap, or that are separated by a file reset (add, delete,
    rename), appear in neither map.
    """

    above: Dict[int, FrozenSet[int]] = field(default_factory=dict)
    below: Dict[int, FrozenSet[int]] = field(default_factory=dict)

    def is_above(self, first: int, second: int) -> bool:
        """True if change *first* sits entirely above change *second*."""
        if first < second:
            return first in self.above.get(second, frozenset())
        return second in self.below.get(first, frozenset())


def _shifted(change: TextFileChange, shift: int) -> TextFileChange:
    start, end = change.modification_range
    return dataclasses.replace(
        change,
        modification_range=(start + shift, end + shift),
        dependencies=frozenset(change.dependencies),
        modifications=list(change.modifications),
    )


def _copy(change: FileChange) -> FileChange:
    return dataclasses.replace(change, dependencies=frozenset(change.dependencies))


def normalize_changes(changes: Sequence[FileChange]) -> Tuple[List[FileChange], Placement]:
    """Return order-independent copies of *changes* plus their Placement.

    *changes* must be in creation (index) order with ranges as recorded from
    the original history.
    """
    trackers: Dict[str, RegionTracker] = {}
    placement = Placement()
    deltas = _deltas(changes)
    normalized: List[FileChange] = []

    for change in changes:
        tracker = trackers.setdefault(change.path, RegionTracker())

        if not is_text_change(change):
            if change.type in _RESET_TYPES:
                tracker.reset()
            if isinstance(change, RenameFileChange):
                trackers.setdefault(change.old_file_name, RegionTracker()).reset()
            normalized.append(_copy(change))
            continue

        assert isinstance(change, TextFileChange)
        start, deleted, inserted = hunk_extent(change)
        above = {i for i in tracker.above(start) if i not in change.dependencies}
        below = {i for i in tracker.below(start, deleted) if i not in change.dependencies}
        placement.above[change.index] = frozenset(above)
        placement.below[change.index] = frozenset(below)

        shift = sum(deltas[i] for i in above)
        tracker.apply(change.index, start, deleted, inserted)
        normalized.append(_shifted(change, -shift))

    logger.debug("Normalized %d changes", len(normalized))
    return normalized, placement


def _deltas(changes: Iterable[FileChange]) -> Dict[int, int]:
    return {
        c.index: c.lines_changed_count
        for c in changes
        if isinstance(c, TextFileChange)
    }


def reconstruct_changes(
    changes: Sequence[FileChange],
    placement: Placement,
) -> List[FileChange]:
    """Return copies of *changes* with working ranges for the current order.

    *changes* must already be in combined order (commit order, then the
    store's sort order). For every text change, each preceding text change
    on the same path that lies above it and is not one of its dependencies
    contributes its ``lines_changed_count``.
    """
    reconstructed: List[FileChange] = []
    seen_by_path: Dict[str, List[TextFileChange]] = {}

    for change in changes:
        if not isinstance(change, TextFileChange):
            reconstructed.append(_copy(change))
            continue

        shift = 0
        for previous in seen_by_path.get(change.path, []):
            if previous.index in change.dependencies:
                continue
            if placement.is_above(previous.index, change.index):
                shift += previous.lines_changed_count

        seen_by_path.setdefault(change.path, []).append(change)
        reconstructed.append(_shifted(change, shift))

    return reconstructed

