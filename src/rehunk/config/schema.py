"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

OutputFormat = Literal["terminal", "json"]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RebaseConfig:
    target_branch: str = "main"
    remote: str = "origin"  # empty = compare against the local target branch
    placeholder_prefix: str = "new-"  # hash prefix for commits created in-session


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    show_trash: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class RehunkConfig:
    version: str = "1.0"
    rebase: RebaseConfig = field(default_factory=RebaseConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def base_ref(self) -> str:
        """The ref the branch is compared against, e.g. ``origin/main``."""
        if self.rebase.remote:
            return f"{self.rebase.remote}/{self.rebase.target_branch}"
        return self.rebase.target_branch
