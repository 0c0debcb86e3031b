"""Tests for applying positioned changes to documents."""

import logging

from rehunk.rebase.models import AddFileChange, TextFileChange
from rehunk.rebase.patch import apply_changes, split_lines


def _text(index, start, end, modifications, path="f.txt"):
    inserted = sum(1 for m in modifications if m.startswith("+"))
    deleted = sum(1 for m in modifications if m.startswith("-"))
    return TextFileChange(
        path=path,
        index=index,
        hash="c1",
        original_hash="c1",
        modification_range=(start, end),
        modifications=modifications,
        lines_changed_count=inserted - deleted,
    )


class TestSplitLines:
    def test_empty_document_is_one_line(self):
        assert split_lines("") == [""]

    def test_trailing_newline_gives_empty_last_line(self):
        assert split_lines("a\nb\n") == ["a", "b", ""]


class TestApplyChanges:
    def test_replay_example(self):
        change = _text(0, 0, 2, [
            "-line1", "+line1-replace", "-line2", "-line3", "+line-hipp", "+line4", "+line5",
        ])
        assert apply_changes("line1\nline2\nline3", [change]) == "line1-replace\nline-hipp\nline4\nline5"

    def test_pure_insertion(self):
        change = _text(0, 1, 0, ["+new"])
        assert apply_changes("a\nb\n", [change]) == "a\nnew\nb\n"

    def test_pure_deletion(self):
        change = _text(0, 1, 2, ["-b", "-c"])
        assert apply_changes("a\nb\nc\nd", [change]) == "a\nd"

    def test_sequential_changes_use_current_positions(self):
        top = _text(0, 0, -1, ["+x", "+y"])
        lower = _text(1, 4, 4, ["-c", "+C"])
        assert apply_changes("a\nb\nc\n", [top, lower]) == "x\ny\na\nb\nC\n"

    def test_new_file_from_empty_document(self):
        change = _text(0, 0, -1, ["+Hello", "+World"])
        assert apply_changes("", [change]) == "Hello\nWorld\n"

    def test_new_file_without_final_newline(self):
        change = _text(0, 0, 0, ["+Hello", "+World", "-"])
        assert apply_changes("", [change]) == "Hello\nWorld"

    def test_non_text_changes_are_skipped(self):
        add = AddFileChange(path="f.txt", index=0, hash="c1", original_hash="c1")
        assert apply_changes("same\n", [add]) == "same\n"

    def test_no_changes(self):
        assert apply_changes("keep", []) == "keep"


class TestLineCountCorrection:
    def test_surplus_lines_are_trimmed(self, caplog):
        # Claims no net change but inserts two lines for one
        change = TextFileChange(
            path="f.txt",
            index=0,
            hash="c1",
            original_hash="c1",
            modification_range=(0, 0),
            modifications=["-x", "+a", "+b"],
            lines_changed_count=0,
        )
        with caplog.at_level(logging.WARNING, logger="rehunk.rebase.patch"):
            result = apply_changes("x\ntail", [change])
        assert result == "a\nb"
        assert "trimming 1 trailing line" in caplog.text

    def test_deletion_past_window_is_corrected_by_trimming(self, caplog):
        change = _text(0, 1, 1, ["-b", "-c"])
        with caplog.at_level(logging.WARNING, logger="rehunk.rebase.patch"):
            result = apply_changes("a\nb\nc", [change])
        assert result == "a"
        assert "expected -2" in caplog.text
