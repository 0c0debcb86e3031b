"""Shared test fixtures — sample diffs, sessions, temp git repos."""

from __future__ import annotations

import subprocess
import textwrap
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import pytest

from rehunk.rebase.models import Commit
from rehunk.rebase.store import Rebaser

BASE_TEXT = "".join(f"line{i}\n" for i in range(1, 9))


@pytest.fixture
def base_text() -> str:
    """Contents of test.txt at the branch base: line1..line8."""
    return BASE_TEXT


@pytest.fixture
def diff_insert_top() -> str:
    """Two lines inserted above line1 of test.txt."""
    return textwrap.dedent("""\
        diff --git a/test.txt b/test.txt
        index 1111111..2222222 100644
        --- a/test.txt
        +++ b/test.txt
        @@ -0,0 +1,2 @@
        +a
        +b
    """)


@pytest.fixture
def diff_modify_line7() -> str:
    """Line 7 (old line5, after the top insert) rewritten."""
    return textwrap.dedent("""\
        diff --git a/test.txt b/test.txt
        index 2222222..3333333 100644
        --- a/test.txt
        +++ b/test.txt
        @@ -7 +7 @@
        -line5
        +LINE5
    """)


@pytest.fixture
def diff_edit_inserted() -> str:
    """Rewrites the second line inserted by ``diff_insert_top``."""
    return textwrap.dedent("""\
        diff --git a/test.txt b/test.txt
        index 2222222..4444444 100644
        --- a/test.txt
        +++ b/test.txt
        @@ -2 +2 @@
        -b
        +B
    """)


@pytest.fixture
def diff_new_file() -> str:
    return textwrap.dedent("""\
        diff --git a/hello.py b/hello.py
        new file mode 100644
        index 0000000..e69de29
        --- /dev/null
        +++ b/hello.py
        @@ -0,0 +1,2 @@
        +def greet(name):
        +    return f"Hello, {name}!"
    """)


@pytest.fixture
def diff_deleted_file() -> str:
    return textwrap.dedent("""\
        diff --git a/gone.txt b/gone.txt
        deleted file mode 100644
        index 1234567..0000000
        --- a/gone.txt
        +++ /dev/null
        @@ -1,2 +0,0 @@
        -x
        -y
    """)


@pytest.fixture
def diff_rename_with_edit() -> str:
    return textwrap.dedent("""\
        diff --git a/old.txt b/new.txt
        similarity index 80%
        rename from old.txt
        rename to new.txt
        index 1234567..89abcde 100644
        --- a/old.txt
        +++ b/new.txt
        @@ -1 +1 @@
        -one
        +ONE
    """)


@pytest.fixture
def diff_binary() -> str:
    return textwrap.dedent("""\
        diff --git a/logo.png b/logo.png
        new file mode 100644
        index 0000000..abcdef0
        Binary files /dev/null and b/logo.png differ
    """)


@pytest.fixture
def two_commit_rebaser(diff_insert_top: str, diff_modify_line7: str) -> Rebaser:
    """commit1 inserts two lines at the top, commit2 rewrites old line5."""
    return Rebaser.from_diff_texts([
        (Commit("c2", "Shout line five"), diff_modify_line7),
        (Commit("c1", "Add header"), diff_insert_top),
    ])


@pytest.fixture
def dependent_rebaser(diff_insert_top: str, diff_edit_inserted: str) -> Rebaser:
    """commit2 edits a line that commit1 inserted, so it depends on it."""
    return Rebaser.from_diff_texts([
        (Commit("c2", "Capitalise b"), diff_edit_inserted),
        (Commit("c1", "Add header"), diff_insert_top),
    ])


class FakeSource:
    """In-memory ContentSource."""

    def __init__(self, files: Optional[Dict[str, str]] = None, blobs: Optional[Dict[Tuple[str, str], bytes]] = None) -> None:
        self.files = files or {}
        self.blobs = blobs or {}

    def read_text(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def read_binary(self, rev: str, path: str) -> bytes:
        return self.blobs[(rev, path)]


@pytest.fixture
def fake_source() -> Callable[..., FakeSource]:
    return FakeSource


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git() -> Callable[..., str]:
    """Run git in a repo and return stripped stdout."""
    return _git


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for integration tests."""
    subprocess.run(["git", "init", str(tmp_path)], capture_output=True, check=True)
    subprocess.run(
        ["git", "config", "user.email", "test@test.com"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    # Initial commit
    readme = tmp_path / "README.md"
    readme.write_text("# Test\n")
    subprocess.run(["git", "add", "."], cwd=tmp_path, capture_output=True, check=True)
    subprocess.run(
        ["git", "commit", "-m", "init"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    return tmp_path


def _commit_all(repo: Path, message: str) -> str:
    _git(repo, "add", "-A")
    _git(repo, "commit", "-m", message)
    return _git(repo, "rev-parse", "HEAD")


@pytest.fixture
def branch_repo(tmp_git_repo: Path) -> Tuple[Path, str, Dict[str, str]]:
    """A repo with a base commit and four feature commits on top.

    Returns ``(repo, base_hash, {message: hash})``.
    """
    repo = tmp_git_repo
    (repo / "test.txt").write_text(BASE_TEXT)
    (repo / "old.txt").write_text("one\ntwo\nthree\n")
    base = _commit_all(repo, "base")
    _git(repo, "checkout", "-b", "feature")

    hashes: Dict[str, str] = {}
    (repo / "test.txt").write_text("a\nb\n" + BASE_TEXT)
    hashes["Add header"] = _commit_all(repo, "Add header")

    (repo / "test.txt").write_text("a\nb\n" + BASE_TEXT.replace("line5", "LINE5"))
    hashes["Shout line five"] = _commit_all(repo, "Shout line five")

    (repo / "hello.txt").write_text("hello\n")
    hashes["Add hello"] = _commit_all(repo, "Add hello")

    (repo / "old.txt").rename(repo / "new.txt")
    (repo / "test.txt").write_text("a\nb\n" + BASE_TEXT.replace("line5", "LINE5") + "line9")
    hashes["Move and append"] = _commit_all(repo, "Move and append")

    return repo, base, hashes
