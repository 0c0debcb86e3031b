"""Git subprocess wrapper — branch commits, per-commit diffs, file contents."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from rehunk.rebase.models import Commit, decode_content

logger = logging.getLogger(__name__)

# Field / record separators for ``git log --format``
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"


class GitError(Exception):
    """Raised when git is unavailable or returns an unexpected error."""


def _run(args: list[str], cwd: Path, timeout: int, text: bool):
    logger.debug("git %s", " ".join(args))
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=text,
            timeout=timeout,
            **({"encoding": "utf-8", "errors": "replace"} if text else {}),
        )
    except FileNotFoundError:
        raise GitError("git is not installed or not on PATH")
    except subprocess.TimeoutExpired:
        raise GitError(f"git command timed out after {timeout}s: git {' '.join(args)}")

    if result.returncode != 0:
        stderr = result.stderr if text else result.stderr.decode("utf-8", "replace")
        raise GitError(f"git error: {stderr.strip() or 'exit code ' + str(result.returncode)}")
    return result.stdout


def _run_git(args: list[str], cwd: Path, timeout: int = 30) -> str:
    """Run a git command and return stdout. Raises GitError on failure."""
    return _run(args, cwd, timeout, text=True)


def _run_git_bytes(args: list[str], cwd: Path, timeout: int = 30) -> bytes:
    """Like ``_run_git`` but returns raw stdout bytes (binary blobs)."""
    return _run(args, cwd, timeout, text=False)


def _run_git_content(args: list[str], cwd: Path, timeout: int = 30) -> str:
    """Run git and decode stdout without newline translation or replacement.

    Used for diffs and file contents, where CRLF endings and non-UTF-8 bytes
    must come back unchanged when re-encoded.
    """
    return decode_content(_run_git_bytes(args, cwd, timeout))


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Return the root of the current git repository."""
    cwd = cwd or Path.cwd()
    out = _run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    return Path(out.strip())


def get_current_branch(repo_root: Path) -> str:
    """Return the checked-out branch name (``HEAD`` when detached)."""
    return _run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root).strip()


def get_merge_base(repo_root: Path, target: str, head: str = "HEAD") -> str:
    """Return the merge base of *target* and *head*."""
    out = _run_git(["merge-base", target, head], cwd=repo_root).strip()
    if not out:
        raise GitError(f"no merge base between {target} and {head}")
    return out


def get_branch_commits(repo_root: Path, base: str, head: str = "HEAD") -> List[Commit]:
    """Return the commits in ``base..head``, newest first (merges excluded)."""
    output = _run_git(
        [
            "log",
            "--no-merges",
            f"--format=%H{_FIELD_SEP}%B{_RECORD_SEP}",
            f"{base}..{head}",
        ],
        cwd=repo_root,
    )
    commits: List[Commit] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        commit_hash, _, message = record.partition(_FIELD_SEP)
        commits.append(Commit(hash=commit_hash.strip(), message=message.strip()))
    return commits


def get_commit_diff(repo_root: Path, commit_hash: str) -> str:
    """Return the zero-context diff a commit introduces relative to its parent."""
    return _run_git_content(
        [
            "diff",
            "--unified=0",
            "--no-color",
            "--no-ext-diff",
            "--find-renames",
            f"{commit_hash}^",
            commit_hash,
        ],
        cwd=repo_root,
    )


def file_exists_at(repo_root: Path, rev: str, path: str) -> bool:
    """Return True if *path* exists in the tree of *rev*."""
    out = _run_git(["ls-tree", "--name-only", rev, "--", path], cwd=repo_root)
    return bool(out.strip())


def read_file_at(repo_root: Path, rev: str, path: str) -> str:
    """Return the text content of *path* at *rev*."""
    return _run_git_content(["cat-file", "-p", f"{rev}:{path}"], cwd=repo_root)


def read_binary_at(repo_root: Path, rev: str, path: str) -> bytes:
    """Return the raw content of *path* at *rev*."""
    return _run_git_bytes(["cat-file", "-p", f"{rev}:{path}"], cwd=repo_root)


class GitContentSource:
    """File contents for preview and materialization, read from git.

    ``read_text`` answers with the content at the branch base (the merge
    base the session was built from), or None when the file does not exist
    there yet.
    """

    def __init__(self, repo_root: Path, base: str) -> None:
        self.repo_root = repo_root
        self.base = base

    def read_text(self, path: str) -> Optional[str]:
        if not file_exists_at(self.repo_root, self.base, path):
            return None
        return read_file_at(self.repo_root, self.base, path)

    def read_binary(self, rev: str, path: str) -> bytes:
        return read_binary_at(self.repo_root, rev, path)
