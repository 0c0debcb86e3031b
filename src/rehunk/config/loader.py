"""Load and merge configuration from .rehunk.toml and env vars."""

from __future__ import annotations

import dataclasses
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from rehunk.config.schema import (
    LOG_LEVELS,
    LoggingConfig,
    OutputConfig,
    RebaseConfig,
    RehunkConfig,
)

CONFIG_FILE_NAME = ".rehunk.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(repo_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = repo_root / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _merge_env_overrides(cfg: RehunkConfig) -> None:
    """Apply REHUNK_* environment variable overrides. Invalid values are ignored."""
    if val := os.environ.get("REHUNK_TARGET_BRANCH"):
        cfg.rebase.target_branch = val
    if val := os.environ.get("REHUNK_FORMAT"):
        if val in ("terminal", "json"):
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get("REHUNK_LOG_LEVEL"):
        if val.upper() in LOG_LEVELS:
            cfg.logging.level = val.upper()


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    raw = data.get(section, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


def _validate(cfg: RehunkConfig) -> None:
    if cfg.output.format not in ("terminal", "json"):
        raise ConfigError(f"Unknown output format: {cfg.output.format!r}")
    if str(cfg.logging.level).upper() not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {cfg.logging.level!r}")
    cfg.logging.level = str(cfg.logging.level).upper()
    if not cfg.rebase.target_branch:
        raise ConfigError("rebase.target_branch must not be empty")


def load_config(
    repo_root: Path,
    config_override: Optional[str] = None,
) -> RehunkConfig:
    """Load, validate, and return a RehunkConfig."""
    config_path = find_config_file(repo_root, config_override)

    if config_path is None:
        cfg = RehunkConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = RehunkConfig(
            version=raw.get("version", "1.0"),
            rebase=_build_section(raw, RebaseConfig, "rebase"),
            output=_build_section(raw, OutputConfig, "output"),
            logging=_build_section(raw, LoggingConfig, "logging"),
        )
        _validate(cfg)

    _merge_env_overrides(cfg)
    return cfg
