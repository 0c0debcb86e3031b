"""Tests for YAML edit scripts."""

import textwrap
from pathlib import Path

import pytest

from rehunk.rebase.errors import InvalidOperationError, NotFoundError
from rehunk.rebase.models import TRASH
from rehunk.script import EditScript, EditScriptError


def _run(rebaser, text):
    script = EditScript.from_yaml(textwrap.dedent(text))
    script.run(rebaser)
    return script


class TestParsing:
    def test_empty_script(self, two_commit_rebaser):
        _run(two_commit_rebaser, "")
        assert [c.hash for c in two_commit_rebaser.commits] == ["c2", "c1"]

    @pytest.mark.parametrize("text", [
        "add_commit: x\n",
        "- [1, 2]\n",
        "- {add_commit: x, reword: y}\n",
        "- add_commit: [unterminated\n",
    ])
    def test_malformed(self, text):
        with pytest.raises(EditScriptError):
            EditScript.from_yaml(text)

    def test_unknown_action(self, two_commit_rebaser):
        with pytest.raises(EditScriptError, match="unknown action"):
            _run(two_commit_rebaser, "- squash: c1\n")

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(EditScriptError):
            EditScript.load(tmp_path / "nope.yml")


class TestSteps:
    def test_add_commit_alias_and_move(self, two_commit_rebaser):
        _run(two_commit_rebaser, """\
            - add_commit: {message: Extracted, id: extracted}
            - move_change: {path: test.txt, index: 1, to: extracted}
            - remove_commit: c2
        """)
        messages = [c.message for c in two_commit_rebaser.commits]
        assert messages == ["Extracted", "Add header"]
        assert two_commit_rebaser.get_change(1).hash == two_commit_rebaser.commits[0].hash

    def test_plain_add_commit(self, two_commit_rebaser):
        _run(two_commit_rebaser, "- add_commit: Later\n")
        assert two_commit_rebaser.commits[0].message == "Later"

    def test_reword(self, two_commit_rebaser):
        _run(two_commit_rebaser, "- reword: {commit: c1, message: Header lines}\n")
        assert two_commit_rebaser.get_commit("c1").message == "Header lines"

    def test_trash_and_restore(self, two_commit_rebaser):
        _run(two_commit_rebaser, "- trash_change: {path: test.txt, index: 0}\n")
        assert two_commit_rebaser.get_change(0).hash == TRASH
        _run(two_commit_rebaser, "- restore_change: {path: test.txt, index: 0, to: c1}\n")
        assert two_commit_rebaser.get_change(0).hash == "c1"

    def test_move_change_to_trash(self, two_commit_rebaser):
        _run(two_commit_rebaser, "- move_change: {path: test.txt, index: 1, to: trash}\n")
        assert two_commit_rebaser.get_change(1).hash == TRASH

    def test_move_commit(self, two_commit_rebaser):
        _run(two_commit_rebaser, "- move_commit: {commit: c2, after: null}\n")
        assert [c.hash for c in two_commit_rebaser.commits] == ["c1", "c2"]

    def test_move_commit_after(self, two_commit_rebaser):
        _run(two_commit_rebaser, """\
            - add_commit: {message: Middle, id: mid}
            - move_commit: {commit: mid, after: c1}
        """)
        assert [c.message for c in two_commit_rebaser.commits] == ["Shout line five", "Middle", "Add header"]


class TestCommitReferences:
    def test_unique_prefix(self, two_commit_rebaser):
        script = EditScript([])
        two_commit_rebaser.update_commit_message("c1", "x")
        assert script.resolve_commit(two_commit_rebaser, "c1") == "c1"

    def test_prefix_resolution(self, diff_insert_top, diff_modify_line7):
        from rehunk.rebase.models import Commit
        from rehunk.rebase.store import Rebaser

        rebaser = Rebaser.from_diff_texts([
            (Commit("abc123", "two"), diff_modify_line7),
            (Commit("abd456", "one"), diff_insert_top),
        ])
        script = EditScript([])
        assert script.resolve_commit(rebaser, "abc") == "abc123"
        with pytest.raises(EditScriptError, match="Ambiguous"):
            script.resolve_commit(rebaser, "ab")
        with pytest.raises(EditScriptError, match="Unknown"):
            script.resolve_commit(rebaser, "zzz")

    def test_trash_only_where_allowed(self, two_commit_rebaser):
        with pytest.raises(EditScriptError):
            _run(two_commit_rebaser, "- restore_change: {path: test.txt, index: 0, to: trash}\n")

    def test_bad_index(self, two_commit_rebaser):
        with pytest.raises(EditScriptError):
            _run(two_commit_rebaser, "- trash_change: {path: test.txt, index: first}\n")

    def test_missing_field(self, two_commit_rebaser):
        with pytest.raises(EditScriptError, match="Missing"):
            _run(two_commit_rebaser, "- move_change: {path: test.txt, index: 1}\n")


class TestStoreErrorsPropagate:
    def test_remove_commit_with_changes(self, two_commit_rebaser):
        with pytest.raises(InvalidOperationError):
            _run(two_commit_rebaser, "- remove_commit: c1\n")

    def test_unknown_change(self, two_commit_rebaser):
        with pytest.raises(NotFoundError):
            _run(two_commit_rebaser, "- trash_change: {path: test.txt, index: 9}\n")


class TestNumericReferences:
    def _rebaser(self, diff_insert_top, diff_modify_line7):
        from rehunk.rebase.models import Commit
        from rehunk.rebase.store import Rebaser

        return Rebaser.from_diff_texts([
            (Commit("0123abc", "two"), diff_modify_line7),
            (Commit("1e5f00d", "one"), diff_insert_top),
        ])

    @pytest.mark.parametrize("ref, expected", [
        ("0123", "0123abc"),
        ("1e5", "1e5f00d"),
    ])
    def test_unquoted_prefix_keeps_its_text(self, diff_insert_top, diff_modify_line7, ref, expected):
        rebaser = self._rebaser(diff_insert_top, diff_modify_line7)
        _run(rebaser, f"- reword: {{commit: {ref}, message: Renamed}}\n")
        assert rebaser.get_commit(expected).message == "Renamed"

    def test_plain_integers_still_load_as_int(self):
        script = EditScript.from_yaml("- trash_change: {path: a.txt, index: 12}\n")
        assert script.steps[0]["trash_change"]["index"] == 12

    def test_octal_looking_index_is_rejected(self, two_commit_rebaser):
        with pytest.raises(EditScriptError):
            _run(two_commit_rebaser, "- trash_change: {path: test.txt, index: 01}\n")
