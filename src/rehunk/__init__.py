"""rehunk: re-edit a branch's history hunk by hunk."""

__version__ = "0.1.0"
