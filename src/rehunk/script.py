"""YAML edit scripts — drive a session without an interactive UI.

A script is a list of single-key steps::

    - add_commit: {message: "Extract parser", id: parser}
    - move_change: {path: src/app.py, index: 4, to: parser}
    - trash_change: {path: notes.txt, index: 7}
    - restore_change: {path: notes.txt, index: 7, to: 1a2b3c}
    - reword: {commit: 1a2b3c, message: "Fix typo"}
    - move_commit: {commit: parser, after: null}
    - remove_commit: 9f8e7d

Commit references are a full hash, a unique hash prefix, or an ``id`` given
to an earlier ``add_commit``. ``trash`` is accepted where a change target
or ``move_commit.after`` is expected.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from rehunk.rebase.models import TRASH
from rehunk.rebase.store import Rebaser

logger = logging.getLogger(__name__)


class EditScriptError(Exception):
    """Raised when an edit script is malformed or references unknown commits."""


_PLAIN_INT_RE = re.compile(r"^-?(?:0|[1-9][0-9]*)$")


class _ScriptLoader(yaml.SafeLoader):
    """SafeLoader that keeps hash-like numerals (``0123``, ``1e5``) as text.

    Only plain decimal integers load as ints, so ``str(value)`` always
    gives back what was written.
    """

    def construct_yaml_int(self, node):
        value = self.construct_scalar(node)
        if _PLAIN_INT_RE.match(value):
            return int(value)
        return value

    def construct_yaml_float(self, node):
        return self.construct_scalar(node)


_ScriptLoader.add_constructor("tag:yaml.org,2002:int", _ScriptLoader.construct_yaml_int)
_ScriptLoader.add_constructor("tag:yaml.org,2002:float", _ScriptLoader.construct_yaml_float)


class EditScript:
    """Parsed edit script, replayable against a Rebaser."""

    def __init__(self, steps: List[Dict[str, Any]]) -> None:
        self.steps = steps
        self._aliases: Dict[str, str] = {}
        self._handlers: Dict[str, Callable[[Rebaser, Any], None]] = {
            "add_commit": self._add_commit,
            "remove_commit": self._remove_commit,
            "reword": self._reword,
            "move_change": self._move_change,
            "trash_change": self._trash_change,
            "restore_change": self._restore_change,
            "move_commit": self._move_commit,
        }

    @classmethod
    def from_yaml(cls, text: str) -> "EditScript":
        try:
            data = yaml.load(text, Loader=_ScriptLoader)
        except yaml.YAMLError as exc:
            raise EditScriptError(f"Invalid YAML: {exc}") from exc
        if data is None:
            data = []
        if not isinstance(data, list):
            raise EditScriptError("An edit script must be a list of steps")
        for position, step in enumerate(data):
            if not isinstance(step, dict) or len(step) != 1:
                raise EditScriptError(f"Step {position + 1}: expected a single-key mapping")
        return cls(data)

    @classmethod
    def load(cls, path: Path) -> "EditScript":
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise EditScriptError(f"Cannot read {path}: {exc}") from exc
        return cls.from_yaml(text)

    # ---- replay ----

    def run(self, rebaser: Rebaser) -> None:
        """Apply every step in order. Store errors propagate unchanged."""
        for position, step in enumerate(self.steps, start=1):
            (action, args), = step.items()
            handler = self._handlers.get(action)
            if handler is None:
                raise EditScriptError(f"Step {position}: unknown action '{action}'")
            logger.debug("Step %d: %s %r", position, action, args)
            handler(rebaser, args)

    # ---- references ----

    def resolve_commit(self, rebaser: Rebaser, ref: Any, *, allow_trash: bool = False) -> str:
        ref = str(ref)
        if ref == TRASH:
            if not allow_trash:
                raise EditScriptError("'trash' is not a valid commit here")
            return TRASH
        if ref in self._aliases:
            return self._aliases[ref]

        hashes = [commit.hash for commit in rebaser.commits]
        if ref in hashes:
            return ref
        matches = [h for h in hashes if h.startswith(ref)]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise EditScriptError(f"Unknown commit '{ref}'")
        raise EditScriptError(f"Ambiguous commit '{ref}' matches {len(matches)} commits")

    @staticmethod
    def _fields(args: Any, *names: str) -> List[Any]:
        if not isinstance(args, dict):
            raise EditScriptError(f"Expected a mapping with {', '.join(names)}")
        missing = [name for name in names if name not in args]
        if missing:
            raise EditScriptError(f"Missing field(s): {', '.join(missing)}")
        return [args[name] for name in names]

    @staticmethod
    def _index(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise EditScriptError(f"Change index must be an integer, got {value!r}")
        return value

    # ---- actions ----

    def _add_commit(self, rebaser: Rebaser, args: Any) -> None:
        alias: Optional[str] = None
        if isinstance(args, str):
            message = args
        else:
            (message,) = self._fields(args, "message")
            alias = args.get("id")
        commit = rebaser.add_commit(str(message))
        if alias is not None:
            self._aliases[str(alias)] = commit.hash

    def _remove_commit(self, rebaser: Rebaser, args: Any) -> None:
        ref = args.get("commit") if isinstance(args, dict) else args
        rebaser.remove_commit(self.resolve_commit(rebaser, ref))

    def _reword(self, rebaser: Rebaser, args: Any) -> None:
        ref, message = self._fields(args, "commit", "message")
        rebaser.update_commit_message(self.resolve_commit(rebaser, ref), str(message))

    def _move_change(self, rebaser: Rebaser, args: Any) -> None:
        path, index, target = self._fields(args, "path", "index", "to")
        rebaser.move_change(
            str(path),
            self._index(index),
            self.resolve_commit(rebaser, target, allow_trash=True),
        )

    def _trash_change(self, rebaser: Rebaser, args: Any) -> None:
        path, index = self._fields(args, "path", "index")
        rebaser.move_change_to_trash(str(path), self._index(index))

    def _restore_change(self, rebaser: Rebaser, args: Any) -> None:
        path, index, target = self._fields(args, "path", "index", "to")
        rebaser.move_change_from_trash(
            str(path), self._index(index), self.resolve_commit(rebaser, target)
        )

    def _move_commit(self, rebaser: Rebaser, args: Any) -> None:
        (ref,) = self._fields(args, "commit")
        after = args.get("after")
        after_ref = None if after is None else self.resolve_commit(rebaser, after, allow_trash=True)
        rebaser.move_commit(self.resolve_commit(rebaser, ref), after_ref)
