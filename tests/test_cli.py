"""Tests for the CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from rehunk.cli import app

runner = CliRunner()


def _invoke(base: str, *args: str):
    return runner.invoke(app, [*args, "--onto", base])


def _request(base: str) -> dict:
    result = _invoke(base, "suggest-request")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "rehunk" in result.output


class TestInit:
    def test_creates_config(self, tmp_git_repo: Path, monkeypatch):
        monkeypatch.chdir(tmp_git_repo)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (tmp_git_repo / ".rehunk.toml").exists()

    def test_refuses_overwrite(self, tmp_git_repo: Path, monkeypatch):
        monkeypatch.chdir(tmp_git_repo)
        (tmp_git_repo / ".rehunk.toml").write_text("existing")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1


class TestShow:
    def test_json_tree(self, branch_repo, monkeypatch):
        repo, base, hashes = branch_repo
        monkeypatch.chdir(repo)
        result = _invoke(base, "show", "--format", "json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [c["message"] for c in data["commits"]] == [
            "Move and append", "Add hello", "Shout line five", "Add header",
        ]
        assert data["commits"][0]["hash"] == hashes["Move and append"]
        assert data["has_dependency_violation"] is False
        assert data["trash"] == []

    def test_terminal_tree(self, branch_repo, monkeypatch):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        result = _invoke(base, "show")
        assert result.exit_code == 0, result.output
        assert "Shout line five" in result.output

    def test_script_is_applied(self, branch_repo, monkeypatch, tmp_path):
        repo, base, hashes = branch_repo
        monkeypatch.chdir(repo)
        script = tmp_path / "edit.yml"
        prefix = hashes["Add hello"][:10]
        script.write_text(f'- reword: {{commit: "{prefix}", message: Greet}}\n')
        result = _invoke(base, "show", "--format", "json", "--script", str(script))
        assert result.exit_code == 0, result.output
        messages = [c["message"] for c in json.loads(result.stdout)["commits"]]
        assert "Greet" in messages

    def test_invalid_format(self, branch_repo, monkeypatch):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        result = _invoke(base, "show", "--format", "xml")
        assert result.exit_code == 2

    def test_outside_repository(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["show"])
        assert result.exit_code == 2

    def test_unknown_base(self, branch_repo, monkeypatch):
        repo, _, _ = branch_repo
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["show", "--onto", "no-such-branch"])
        assert result.exit_code == 2


class TestPreview:
    def test_diff_for_commit(self, branch_repo, monkeypatch):
        repo, base, hashes = branch_repo
        monkeypatch.chdir(repo)
        result = runner.invoke(
            app, ["preview", "test.txt", hashes["Shout line five"][:12], "--onto", base]
        )
        assert result.exit_code == 0, result.output
        assert "+LINE5" in result.output
        assert "-line5" in result.output

    def test_unknown_commit(self, branch_repo, monkeypatch):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["preview", "test.txt", "zzzz", "--onto", base])
        assert result.exit_code == 2


class TestPlan:
    def test_plan_rebuilds_head(self, branch_repo, monkeypatch):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        result = _invoke(base, "plan")
        assert result.exit_code == 0, result.output
        plan = json.loads(result.stdout)
        assert [c["message"] for c in plan["commits"]] == [
            "Add header", "Shout line five", "Add hello", "Move and append",
        ]
        last = plan["commits"][-1]["operations"]
        assert {"type": "rename", "file": "new.txt", "old_file": "old.txt"} in last

    def test_plan_written_to_file(self, branch_repo, monkeypatch, tmp_path):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        target = tmp_path / "plan.json"
        result = _invoke(base, "plan", "--output", str(target))
        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text())["version"] == "1.0"

    def test_dependency_violation_blocks(self, branch_repo, monkeypatch, tmp_path):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        add_index = next(
            d["index"] for d in _request(base)["diffs"]
            if d["filePath"] == "hello.txt" and d["type"] == "add"
        )
        script = tmp_path / "edit.yml"
        script.write_text(
            "- add_commit: {message: Later, id: later}\n"
            f"- move_change: {{path: hello.txt, index: {add_index}, to: later}}\n"
        )
        result = _invoke(base, "plan", "--script", str(script))
        assert result.exit_code == 1


class TestSuggest:
    def test_request_lists_every_change(self, branch_repo, monkeypatch):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        request = _request(base)
        assert request["commits"] == [
            "Add header", "Shout line five", "Add hello", "Move and append",
        ]
        assert [d["index"] for d in request["diffs"]] == sorted(d["index"] for d in request["diffs"])
        assert {d["filePath"] for d in request["diffs"]} == {"test.txt", "hello.txt", "new.txt"}

    def test_apply_squashes_history(self, branch_repo, monkeypatch, tmp_path):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        request = _request(base)
        response = tmp_path / "response.json"
        response.write_text(json.dumps({
            "commits": ["Everything"],
            "diffs": [
                {"filePath": d["filePath"], "index": d["index"], "commitIndex": 0}
                for d in request["diffs"]
            ],
        }))
        result = runner.invoke(
            app, ["suggest-apply", str(response), "--onto", base, "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [c["message"] for c in data["commits"]] == ["Everything"]

    def test_apply_rejects_unknown_index(self, branch_repo, monkeypatch, tmp_path):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        response = tmp_path / "response.json"
        response.write_text(json.dumps({
            "commits": ["Everything"],
            "diffs": [{"filePath": "x", "index": 999, "commitIndex": 0}],
        }))
        result = runner.invoke(app, ["suggest-apply", str(response), "--onto", base])
        assert result.exit_code == 2

    def test_apply_unreadable_response(self, branch_repo, monkeypatch, tmp_path):
        repo, base, _ = branch_repo
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["suggest-apply", str(tmp_path / "missing.json"), "--onto", base])
        assert result.exit_code == 2
