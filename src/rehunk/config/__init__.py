"""Configuration loading, schema, and defaults."""

from rehunk.config.loader import ConfigError, load_config
from rehunk.config.schema import LOG_LEVELS, RehunkConfig

__all__ = ["ConfigError", "LOG_LEVELS", "RehunkConfig", "load_config"]
