"""Zero-context unified diff parser.

Turns the text of ``git diff --unified=0`` into one ParsedFile per file
section (added / deleted / renamed / changed), each with its hunks. Handles
binary markers, renames, mode-only changes, combined (merge) sections and
the ``\\ No newline at end of file`` marker.

End-of-file handling: documents are modelled as ``text.split("\\n")``, so a
file ending in a newline carries a trailing empty element. When only one
side of a hunk lacks the final newline, that trailing element appears or
disappears, and the parser records it as an explicit ``""`` line so the
hunk replays exactly.
"""

from __future__ import annotations

import logging
import re
from typing import Generator, List, Optional

from rehunk.git.models import (
    AddedFile,
    AnyChunk,
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

logger = logging.getLogger(__name__)

# --- Regex patterns for diff parsing ---

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(.*) b/(.*)$")
_COMBINED_HEADER_RE = re.compile(r"^diff --(?:cc|combined) (.+)$")
_HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@"
)
_COMBINED_HUNK_RE = re.compile(r"^@@@+ ")
_BINARY_RE = re.compile(r"^Binary files .* and .* differ$")
_GIT_BINARY_PATCH_RE = re.compile(r"^GIT binary patch$")
_RENAME_FROM_RE = re.compile(r"^rename from (.+)$")
_RENAME_TO_RE = re.compile(r"^rename to (.+)$")
_NO_NEWLINE_RE = re.compile(r"^\\ No newline at end of file$")
_FILE_HEADER_OLD = re.compile(r"^--- (?:a/|/dev/null)")
_FILE_HEADER_NEW = re.compile(r"^\+\+\+ (?:b/|/dev/null)")
_SIMILARITY_RE = re.compile(r"^(?:dis)?similarity index \d+%$")
_OLD_MODE_RE = re.compile(r"^old mode \d+$")
_NEW_MODE_RE = re.compile(r"^new mode \d+$")
_DELETED_FILE_RE = re.compile(r"^deleted file mode \d+$")
_NEW_FILE_RE = re.compile(r"^new file mode \d+$")
_INDEX_RE = re.compile(r"^index [0-9a-f]+(?:,[0-9a-f]+)*\.\.[0-9a-f]+")


class _HunkBuilder:
    """Accumulates the lines of one hunk until the next header."""

    def __init__(self, match: re.Match[str]) -> None:
        self.old_start = int(match.group(1))
        self.old_lines = int(match.group(2)) if match.group(2) is not None else 1
        self.new_start = int(match.group(3))
        self.new_lines = int(match.group(4)) if match.group(4) is not None else 1
        self.lines: List[DiffLine] = []
        self.old_missing_newline = False
        self.new_missing_newline = False

    def add(self, raw_line: str) -> None:
        if raw_line.startswith("+"):
            self.lines.append(DiffLine(raw_line[1:], LineType.ADDED))
        elif raw_line.startswith("-"):
            self.lines.append(DiffLine(raw_line[1:], LineType.REMOVED))
        elif raw_line.startswith(" "):
            # Context line: replayed as remove + re-insert of the same text
            content = raw_line[1:]
            self.lines.append(DiffLine(content, LineType.REMOVED))
            self.lines.append(DiffLine(content, LineType.ADDED))

    def mark_missing_newline(self) -> None:
        if not self.lines:
            return
        if self.lines[-1].line_type == LineType.REMOVED:
            self.old_missing_newline = True
        else:
            self.new_missing_newline = True

    def build(self) -> Chunk:
        lines = list(self.lines)
        old_lines, new_lines = self.old_lines, self.new_lines
        new_start = self.new_start
        if self.old_missing_newline and not self.new_missing_newline:
            lines.append(DiffLine("", LineType.ADDED))
            if new_lines == 0:
                # A pure deletion now inserts: new_start becomes 1-based first line
                new_start += 1
            new_lines += 1
        elif self.new_missing_newline and not self.old_missing_newline:
            lines.append(DiffLine("", LineType.REMOVED))
            old_lines += 1
        return Chunk(
            old_start=self.old_start,
            old_lines=old_lines,
            new_start=new_start,
            new_lines=new_lines,
            lines=lines,
        )


class _Section:
    """Header state for one ``diff --git`` section."""

    def __init__(self, old_path: str, new_path: str) -> None:
        self.old_path = old_path
        self.new_path = new_path
        self.is_new = False
        self.is_deleted = False
        self.is_rename = False
        self.is_mode_change = False
        self.chunks: List[AnyChunk] = []

    def to_parsed_file(self) -> Optional[ParsedFile]:
        if self.is_new:
            return AddedFile(path=self.new_path, chunks=self.chunks)
        if self.is_deleted:
            return DeletedFile(path=self.old_path, chunks=self.chunks)
        if self.is_rename:
            return RenamedFile(
                path_before=self.old_path,
                path_after=self.new_path,
                chunks=self.chunks,
            )
        if self.is_mode_change and not self.chunks:
            logger.debug("Dropping mode-only change for %s", self.new_path)
            return None
        return ChangedFile(path=self.new_path, chunks=self.chunks)


class DiffParser:
    """Parse unified diff text into ParsedFile entries.

    Usage::

        for parsed_file in DiffParser(diff_text).parse():
            for chunk in parsed_file.chunks:
                ...
    """

    def __init__(self, diff_text: str) -> None:
        # Only "\n" ends a diff line; "\r", form feeds and the like are content
        self._lines = diff_text.split("\n")
        if self._lines and self._lines[-1] == "":
            self._lines.pop()

    def parse(self) -> Generator[ParsedFile, None, None]:
        """Yield one ParsedFile per file section, in diff order."""
        idx = 0
        total = len(self._lines)
        section: Optional[_Section] = None
        hunk: Optional[_HunkBuilder] = None

        while idx < total:
            raw_line = self._lines[idx]

            # --- diff --git header → new file context ---
            m = _DIFF_HEADER_RE.match(raw_line)
            cm = _COMBINED_HEADER_RE.match(raw_line)
            if m or cm:
                if section is not None:
                    if hunk is not None:
                        section.chunks.append(hunk.build())
                        hunk = None
                    parsed = section.to_parsed_file()
                    if parsed is not None:
                        yield parsed
                    section = None

                if cm:
                    # Merge diffs are surfaced as a single combined chunk
                    yield ChangedFile(
                        path=cm.group(1),
                        chunks=[CombinedChunk(header=raw_line)],
                    )
                    idx = self._skip_section(idx + 1, total)
                    continue

                assert m is not None
                section = _Section(m.group(1), m.group(2))
                idx = self._parse_sub_headers(section, idx + 1, total)
                continue

            # --- File headers (--- a/ and +++ b/) before the first hunk → skip ---
            if hunk is None and (_FILE_HEADER_OLD.match(raw_line) or _FILE_HEADER_NEW.match(raw_line)):
                idx += 1
                continue

            if section is None:
                idx += 1
                continue

            # --- Hunk header ---
            hm = _HUNK_HEADER_RE.match(raw_line)
            if hm:
                if hunk is not None:
                    section.chunks.append(hunk.build())
                hunk = _HunkBuilder(hm)
                idx += 1
                continue

            if _COMBINED_HUNK_RE.match(raw_line):
                section.chunks.append(CombinedChunk(header=raw_line))
                idx += 1
                continue

            if _NO_NEWLINE_RE.match(raw_line):
                if hunk is not None:
                    hunk.mark_missing_newline()
                idx += 1
                continue

            # --- Content lines ---
            if hunk is not None:
                hunk.add(raw_line)

            idx += 1

        if section is not None:
            if hunk is not None:
                section.chunks.append(hunk.build())
            parsed = section.to_parsed_file()
            if parsed is not None:
                yield parsed

    def _parse_sub_headers(self, section: _Section, idx: int, total: int) -> int:
        """Consume extended header lines; return the index of the first other line."""
        while idx < total:
            sub = self._lines[idx]
            if _INDEX_RE.match(sub) or _SIMILARITY_RE.match(sub):
                idx += 1
                continue
            if _OLD_MODE_RE.match(sub) or _NEW_MODE_RE.match(sub):
                section.is_mode_change = True
                idx += 1
                continue
            if _DELETED_FILE_RE.match(sub):
                section.is_deleted = True
                idx += 1
                continue
            if _NEW_FILE_RE.match(sub):
                section.is_new = True
                idx += 1
                continue
            if (rm := _RENAME_FROM_RE.match(sub)):
                section.old_path = rm.group(1)
                section.is_rename = True
                idx += 1
                continue
            if (rt := _RENAME_TO_RE.match(sub)):
                section.new_path = rt.group(1)
                idx += 1
                continue
            if _BINARY_RE.match(sub) or _GIT_BINARY_PATCH_RE.match(sub):
                section.chunks.append(BinaryChunk(path=section.new_path))
                idx = self._skip_section(idx + 1, total)
                continue
            break  # not a sub-header → stop
        return idx

    def _skip_section(self, idx: int, total: int) -> int:
        """Advance to the next file header."""
        while idx < total:
            line = self._lines[idx]
            if _DIFF_HEADER_RE.match(line) or _COMBINED_HEADER_RE.match(line):
                return idx
            idx += 1
        return idx
